"""
Encoder orchestration for shortslab.

Renders the final vertical clip with ffmpeg:
- scale to cover the canvas, center-crop to the exact canvas size
- optionally burn in the built subtitle document
- trim to the selection window

Progress is parsed from ffmpeg's stderr as it streams and mapped into the
40-95 range of overall pipeline progress.

The orchestrator owns the run workspace: whatever happens during the
encode, every transient artifact is deleted before `encode()` returns or
raises. Output is written to a `.partial` file next to the destination and
only renamed into place after a zero exit code, so a failed run never
leaves a file at the final path.
"""

from __future__ import annotations

import os
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path

from shortslab.domain.contracts import ProcessRunner
from shortslab.domain.models import CanvasSize, ProgressCallback, SelectionWindow, report
from shortslab.domain.workspace import RunWorkspace
from shortslab.exceptions import ConfigurationError, EncodingError
from shortslab.utils import ffmpeg
from shortslab.utils.logging import get_logger

log = get_logger(__name__)

PROGRESS_ENCODER_STARTED = 38
PROGRESS_ENCODE_FLOOR = 40
PROGRESS_ENCODE_CEILING = 95
STDERR_TAIL_LINES = 15


@dataclass(frozen=True)
class FilterInputs:
    canvas: CanvasSize = field(default_factory=CanvasSize)
    subtitle_path: Path | None = None


def build_filter_chain(inputs: FilterInputs) -> ffmpeg.FilterChain:
    chain = (
        ffmpeg.FilterChain()
        .scale_to_cover(inputs.canvas.width, inputs.canvas.height)
        .center_crop(inputs.canvas.width, inputs.canvas.height)
    )
    if inputs.subtitle_path is not None:
        chain.burn_subtitles(inputs.subtitle_path)
    return chain


def partial_path_for(output_path: Path) -> Path:
    return output_path.with_name(f"{output_path.stem}.partial{output_path.suffix}")


@dataclass
class EncoderOrchestrator:
    ffmpeg_binary: str = "ffmpeg"
    runner: ProcessRunner = field(default=ffmpeg.run_ffmpeg_with_progress)

    def encode(
        self,
        source_path: Path,
        window: SelectionWindow,
        inputs: FilterInputs,
        output_path: Path,
        workspace: RunWorkspace,
        on_progress: ProgressCallback | None = None,
    ) -> Path:
        partial = workspace.track(partial_path_for(output_path))
        try:
            try:
                output_path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise ConfigurationError(f"Cannot create output folder {output_path.parent}: {exc}") from exc
            chain = build_filter_chain(inputs)
            cmd = ffmpeg.build_encode_cmd(
                source_path,
                partial,
                window=window,
                filters=chain,
                ffmpeg_binary=self.ffmpeg_binary,
            )
            log.info("Encoding clip -> %s", output_path)
            log.debug("ffmpeg cmd: %s", " ".join(cmd))

            progress = ffmpeg.EncoderProgress(
                floor=PROGRESS_ENCODE_FLOOR,
                ceiling=PROGRESS_ENCODE_CEILING,
            )
            tail: deque[str] = deque(maxlen=STDERR_TAIL_LINES)
            started = False

            def on_line(line: str) -> None:
                nonlocal started
                tail.append(line)
                if not started:
                    started = True
                    report(on_progress, PROGRESS_ENCODER_STARTED, "Encoder running...")
                pct = progress.feed(line)
                if pct is not None:
                    report(on_progress, pct, "Encoding video...")

            code = self.runner(cmd, on_line=on_line)
            if code != 0:
                detail = "\n".join(tail).strip()
                message = f"FFmpeg failed with exit code {code}."
                raise EncodingError(f"{message}\n{detail}" if detail else message)
            if not partial.exists() or partial.stat().st_size == 0:
                raise EncodingError(f"FFmpeg produced no output: {partial}")

            try:
                os.replace(partial, output_path)
            except OSError as exc:
                raise EncodingError(f"Could not move encoded clip to {output_path}: {exc}") from exc
            return output_path
        finally:
            workspace.cleanup()
