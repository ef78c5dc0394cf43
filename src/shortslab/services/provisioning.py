"""
Engine provisioning for shortslab.

Locates the whisper.cpp CLI, the ggml model for the configured size tier,
and ffmpeg. Downloading binaries or models is left to the user; anything
missing is reported as a ProvisioningError with the path that was checked.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from shortslab.config.settings import Settings
from shortslab.exceptions import ConfigurationError, ProvisioningError
from shortslab.utils.checks import require_binary
from shortslab.utils.logging import get_logger

log = get_logger(__name__)

MODEL_FILES: dict[str, str] = {
    "tiny": "ggml-tiny.bin",
    "tiny.en": "ggml-tiny.en.bin",
    "base": "ggml-base.bin",
    "base.en": "ggml-base.en.bin",
    "small": "ggml-small.bin",
    "small.en": "ggml-small.en.bin",
    "medium": "ggml-medium.bin",
    "medium.en": "ggml-medium.en.bin",
    "large-v1": "ggml-large-v1.bin",
    "large": "ggml-large.bin",
    "large-v3-turbo": "ggml-large-v3-turbo.bin",
}


@dataclass(frozen=True)
class SpeechEngine:
    binary: str
    model_path: Path


def model_path_for(settings: Settings) -> Path:
    filename = MODEL_FILES.get(settings.speech_model)
    if filename is None:
        known = ", ".join(MODEL_FILES)
        raise ConfigurationError(
            f"Unknown speech model '{settings.speech_model}'. Use one of: {known}."
        )
    return Path(settings.models_dir).expanduser() / filename


@dataclass
class LocalProvisioner:
    settings: Settings

    def ensure_encoder(self) -> str:
        return require_binary(self.settings.ffmpeg_binary)

    def ensure_speech_engine(self) -> SpeechEngine:
        binary = require_binary(self.settings.whisper_binary)
        model = model_path_for(self.settings)
        if not model.is_file():
            raise ProvisioningError(
                f"Speech model '{self.settings.speech_model}' not found at {model}. "
                "Download it into the models directory and try again."
            )
        log.debug("Speech engine: %s model=%s", binary, model)
        return SpeechEngine(binary=binary, model_path=model)
