from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Runtime configuration for shortslab.

    All settings are loaded from environment variables with the
    `SHORTSLAB_` prefix and optional `.env` support.

    One Settings instance is passed explicitly into each run; nothing
    in the pipeline reads process-wide state.
    """

    model_config = SettingsConfigDict(
        env_prefix="SHORTSLAB_",
        env_file=".env",
        extra="ignore",
        validate_assignment=True,
    )

    # ------------------------------------------------------------------
    # Runtime
    # ------------------------------------------------------------------
    workdir: str = Field(
        default=".shortslab",
        description="Root directory for per-run transient workspaces.",
    )
    output_dir: str | None = Field(
        default=None,
        description="Directory for finished clips (default: <source dir>/shorts-lab/output).",
    )

    # ------------------------------------------------------------------
    # Clip selection
    # ------------------------------------------------------------------
    target_duration: float = Field(
        default=30,
        ge=15,
        le=60,
        description="Length of the output clip in seconds.",
    )

    # ------------------------------------------------------------------
    # Captions
    # ------------------------------------------------------------------
    burn_captions: bool = Field(
        default=True,
        description="Transcribe the clip and burn captions into the video.",
    )
    caption_style: str = Field(
        default="clean",
        description="Caption style preset: clean, neon, boxed, punchy.",
    )
    caption_size: int = Field(
        default=52,
        ge=8,
        description="Caption font size in script pixels.",
    )
    caption_position: str = Field(
        default="bottom",
        description="Caption placement: bottom or middle.",
    )
    caption_max_words: int = Field(
        default=6,
        ge=1,
        description="Maximum words per caption chunk.",
    )
    caption_max_chars: int = Field(
        default=36,
        ge=1,
        description="Maximum rendered characters per caption chunk.",
    )
    word_level_captions: bool = Field(
        default=False,
        description="Request word-level timestamps and render one caption per word.",
    )
    caption_offset_ms: int = Field(
        default=0,
        ge=-1000,
        le=1000,
        description="Manual caption offset in milliseconds.",
    )
    auto_caption_offset: bool = Field(
        default=True,
        description="Shift captions by the detected leading silence of the clip audio.",
    )
    caption_speed: int = Field(
        default=100,
        ge=80,
        le=140,
        description="Caption timeline speed in percent; higher values shorten captions.",
    )
    min_word_duration_ms: int = Field(
        default=120,
        ge=50,
        le=300,
        description="Minimum visible duration of a caption event in milliseconds.",
    )

    # ------------------------------------------------------------------
    # Speech engine
    # ------------------------------------------------------------------
    speech_language: str = Field(
        default="auto",
        description="Spoken language code, or 'auto' to let the engine detect it.",
    )
    speech_model: str = Field(
        default="base",
        description="Speech model size tier (tiny, base, small, medium, large, ...).",
    )
    use_accelerator: bool = Field(
        default=False,
        description="Allow the speech engine to use a GPU.",
    )
    whisper_binary: str = Field(
        default="whisper-cli",
        description="whisper.cpp CLI executable name or path.",
    )
    models_dir: str = Field(
        default="~/.shortslab/models",
        description="Directory holding ggml model files.",
    )

    # ------------------------------------------------------------------
    # Encoder
    # ------------------------------------------------------------------
    ffmpeg_binary: str = Field(
        default="ffmpeg",
        description="ffmpeg executable name or path.",
    )
    canvas_width: int = Field(
        default=1080,
        ge=2,
        description="Output width in pixels.",
    )
    canvas_height: int = Field(
        default=1920,
        ge=2,
        description="Output height in pixels.",
    )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR).",
    )

    @property
    def min_word_duration_sec(self) -> float:
        return self.min_word_duration_ms / 1000

    # ------------------------------------------------------------------
    # Public / safe export
    # ------------------------------------------------------------------
    def to_public_dict(self) -> dict:
        """
        Return a dictionary of settings suitable for logging or CLI display.
        """
        return {
            "workdir": self.workdir,
            "output_dir": self.output_dir,
            "target_duration": self.target_duration,
            "burn_captions": self.burn_captions,
            "caption_style": self.caption_style,
            "caption_size": self.caption_size,
            "caption_position": self.caption_position,
            "caption_max_words": self.caption_max_words,
            "caption_max_chars": self.caption_max_chars,
            "word_level_captions": self.word_level_captions,
            "caption_offset_ms": self.caption_offset_ms,
            "auto_caption_offset": self.auto_caption_offset,
            "caption_speed": self.caption_speed,
            "min_word_duration_ms": self.min_word_duration_ms,
            "speech_language": self.speech_language,
            "speech_model": self.speech_model,
            "use_accelerator": self.use_accelerator,
            "whisper_binary": self.whisper_binary,
            "models_dir": self.models_dir,
            "ffmpeg_binary": self.ffmpeg_binary,
            "canvas_width": self.canvas_width,
            "canvas_height": self.canvas_height,
            "log_level": self.log_level,
        }
