"""
Pipeline orchestration for shortslab.

One run turns a source video into a vertical short:

1) Select the clip window
2) Transcribe the window (when captions are requested)
3) Normalize transcript artifacts into timed units
4) Remap units into output-relative caption events
5) Build the ASS subtitle document
6) Encode the final clip

Responsibilities:
- Run stages strictly in order and report progress to the caller
- Own the run workspace lifecycle (cleanup on every exit path)

Does NOT:
- Parse engine output formats (services/transcript.py)
- Build ffmpeg commands (utils/ffmpeg.py)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from shortslab.config.settings import Settings
from shortslab.domain.contracts import SelectionPolicy
from shortslab.domain.models import (
    CanvasSize,
    ProgressCallback,
    SelectionWindow,
    TranscriptArtifacts,
    report,
)
from shortslab.domain.workspace import RunWorkspace
from shortslab.exceptions import ConfigurationError, ShortsLabError
from shortslab.services.encoder import EncoderOrchestrator, FilterInputs
from shortslab.services.provisioning import LocalProvisioner
from shortslab.services.selection import resolve_selection
from shortslab.services.styles import resolve_style
from shortslab.services.subtitles import write_subtitle_document
from shortslab.services.timeline import TimelineOptions, remap
from shortslab.services.transcription import TranscriptionDriver, select_caption_source
from shortslab.utils import ffmpeg
from shortslab.utils.logging import get_logger
from shortslab.utils.timing import StageTimer

log = get_logger(__name__)

SilenceDetector = Callable[..., float]

PROGRESS_SELECT = 5
PROGRESS_CAPTIONS = 32
PROGRESS_DONE = 100


def resolve_output_path(source: Path, settings: Settings, run_id: str) -> Path:
    if settings.output_dir:
        out_dir = Path(settings.output_dir).expanduser().resolve()
    else:
        out_dir = source.parent / "shorts-lab" / "output"
    return out_dir / f"short-{run_id}.mp4"


class Pipeline:
    """
    Runs the shortslab stages with injectable collaborators.

    Every collaborator defaults to the real implementation; tests pass
    fakes for the ones that would spawn processes.
    """

    def __init__(
        self,
        *,
        selection: SelectionPolicy | None = None,
        transcriber: TranscriptionDriver | None = None,
        encoder: EncoderOrchestrator | None = None,
        silence_detector: SilenceDetector | None = None,
    ) -> None:
        self.selection = selection
        self.transcriber = transcriber
        self.encoder = encoder
        self.silence_detector = silence_detector or ffmpeg.detect_leading_silence

    def run(
        self,
        source_path: str | Path,
        settings: Settings,
        *,
        on_progress: ProgressCallback | None = None,
        run_id: str | None = None,
    ) -> Path:
        """
        Run the pipeline once.

        Returns:
            Path of the finished clip. Raises a ShortsLabError subclass on
            any fatal failure, after the workspace has been cleaned up.
        """
        source = Path(source_path).expanduser().resolve()
        if not source.is_file():
            raise ConfigurationError(f"Source video not found: {source}")
        if self.encoder is None:
            LocalProvisioner(settings).ensure_encoder()

        canvas = CanvasSize(settings.canvas_width, settings.canvas_height)
        workspace = RunWorkspace.create(settings.workdir, run_id=run_id)
        output_path = resolve_output_path(source, settings, workspace.run_id)
        timer = StageTimer()
        log.info("Run %s: %s -> %s", workspace.run_id, source, output_path)

        try:
            with timer.stage("select_window"):
                report(on_progress, PROGRESS_SELECT, "Selecting clip window...")
                window = resolve_selection(source, settings, self.selection)

            subtitle_path: Path | None = None
            if settings.burn_captions:
                with timer.stage("transcribe"):
                    transcriber = self.transcriber or TranscriptionDriver()
                    artifacts = transcriber.transcribe(
                        source, window, settings, workspace, on_progress
                    )
                with timer.stage("build_captions"):
                    report(on_progress, PROGRESS_CAPTIONS, "Building captions...")
                    subtitle_path = self._build_captions(
                        artifacts, window, settings, workspace, canvas, on_progress
                    )

            with timer.stage("encode"):
                encoder = self.encoder or EncoderOrchestrator(ffmpeg_binary=settings.ffmpeg_binary)
                encoder.encode(
                    source,
                    window,
                    FilterInputs(canvas=canvas, subtitle_path=subtitle_path),
                    output_path,
                    workspace,
                    on_progress,
                )
        finally:
            workspace.cleanup()
            log.info("Run %s stages: %s", workspace.run_id, timer.summary())

        report(on_progress, PROGRESS_DONE, "Short created")
        return output_path

    def _build_captions(
        self,
        artifacts: TranscriptArtifacts,
        window: SelectionWindow,
        settings: Settings,
        workspace: RunWorkspace,
        canvas: CanvasSize,
        on_progress: ProgressCallback | None,
    ) -> Path:
        auto_offset = 0.0
        if settings.auto_caption_offset:
            auto_offset = self.silence_detector(
                artifacts.audio_path, ffmpeg_binary=settings.ffmpeg_binary
            )
            log.info("Detected leading silence: %.3fs", auto_offset)

        source = select_caption_source(artifacts, settings.word_level_captions, on_progress)
        options = TimelineOptions.from_settings(settings, auto_offset_sec=auto_offset)
        # transcripts come from audio already cut to the window, so their
        # clock starts at zero
        events = remap(
            source.units,
            window.relative(),
            options,
            word_level=source.word_level,
            max_words=settings.caption_max_words,
            max_chars=settings.caption_max_chars,
        )
        log.info("Built %d caption events from %s", len(events), source.name)

        profile = resolve_style(settings.caption_style, settings.caption_size)
        return write_subtitle_document(
            workspace.subtitle_ass,
            events,
            profile,
            settings.caption_position,
            canvas,
        )


@dataclass(frozen=True)
class ProcessResult:
    output_path: Path | None = None
    error: ShortsLabError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.output_path is not None

    @property
    def message(self) -> str:
        if self.error is not None:
            return f"{self.error.label()}: {self.error.message}"
        return "Short created. Check output folder."


def process(
    source_path: str | Path,
    settings: Settings,
    on_progress: ProgressCallback | None = None,
    *,
    run_id: str | None = None,
    pipeline: Pipeline | None = None,
) -> ProcessResult:
    """Run once and return either the output path or the error that stopped the run."""
    try:
        output = (pipeline or Pipeline()).run(
            source_path,
            settings,
            on_progress=on_progress,
            run_id=run_id,
        )
    except ShortsLabError as exc:
        log.error("%s: %s", exc.label(), exc.message)
        return ProcessResult(error=exc)
    except OSError as exc:
        log.exception("Run failed with an OS error")
        return ProcessResult(error=ShortsLabError(f"{exc.__class__.__name__}: {exc}"))
    return ProcessResult(output_path=output)
