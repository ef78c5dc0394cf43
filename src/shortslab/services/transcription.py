"""
Transcription driver for shortslab.

Runs the speech engine (whisper.cpp CLI) over the selected clip window and
collects the transcript artifacts it leaves behind.

Responsibilities:
- Extract a mono 16 kHz WAV restricted to the selection window
- Invoke the engine for line subtitles, plus word timing when requested
- Recover a line subtitle file written under an unexpected name
- Pick the best available caption source, degrading from word timing to
  token data to line subtitles

Does NOT:
- Fetch engine binaries or models (provisioning.py locates them)
- Remap caption timing (timeline.py)
"""

from __future__ import annotations

import re
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from shortslab.config.settings import Settings
from shortslab.domain.contracts import CaptionProvider, ProcessRunner
from shortslab.domain.models import (
    ProgressCallback,
    SelectionWindow,
    TimedUnit,
    TranscriptArtifacts,
    report,
)
from shortslab.domain.workspace import RunWorkspace
from shortslab.exceptions import MissingArtifactError, TranscriptionError
from shortslab.services import transcript
from shortslab.services.provisioning import LocalProvisioner, SpeechEngine
from shortslab.utils import ffmpeg
from shortslab.utils.logging import get_logger
from shortslab.utils.process import run_streaming

log = get_logger(__name__)

# 0xC0000135: the Windows loader could not find a runtime DLL
MISSING_RUNTIME_EXIT_CODE = 3221225781
MISSING_RUNTIME_HINT = (
    "whisper-cli exited with code 3221225781 (missing DLL). Install Microsoft "
    "Visual C++ Redistributable 2015-2022 (x64) and retry."
)
PROGRESS_RE = re.compile(r"progress\s*=\s*(\d+)\s*%")
OUTPUT_TAIL_LINES = 20

PROGRESS_AUDIO = 10
PROGRESS_TRANSCRIBE_START = 15
PROGRESS_TRANSCRIBE_END = 30
PROGRESS_FALLBACK = 35


def build_whisper_cmd(
    engine: SpeechEngine,
    audio: Path,
    output_base: Path,
    settings: Settings,
) -> list[str]:
    cmd = [
        engine.binary,
        "-m",
        str(engine.model_path),
        "-f",
        str(audio),
        "-of",
        str(output_base),
        "-osrt",
        "-pp",
    ]
    if settings.word_level_captions:
        cmd += ["-owts", "-ojf"]
    language = (settings.speech_language or "auto").strip()
    if language and language != "auto":
        cmd += ["-l", language]
    if not settings.use_accelerator:
        cmd.append("-ng")
    return cmd


def find_latest(directory: Path, suffix: str) -> Path | None:
    if not directory.is_dir():
        return None
    candidates = [
        p for p in directory.iterdir() if p.is_file() and p.suffix.lower() == suffix
    ]
    if not candidates:
        return None
    return max(candidates, key=lambda p: p.stat().st_mtime)


def _failure_message(code: int, tail: deque[str]) -> str:
    if code == MISSING_RUNTIME_EXIT_CODE:
        return MISSING_RUNTIME_HINT
    detail = "\n".join(tail).strip()
    message = f"whisper-cli exited with code {code}"
    return f"{message}\n{detail}" if detail else message


@dataclass
class TranscriptionDriver:
    """
    Speech engine driver.

    `engine` and `runner` are injectable; by default the engine is located
    through LocalProvisioner and run as a streaming subprocess.
    """

    engine: SpeechEngine | None = None
    runner: ProcessRunner = field(default=run_streaming)

    def transcribe(
        self,
        source_path: Path,
        window: SelectionWindow,
        settings: Settings,
        workspace: RunWorkspace,
        on_progress: ProgressCallback | None = None,
    ) -> TranscriptArtifacts:
        engine = self.engine or LocalProvisioner(settings).ensure_speech_engine()

        report(on_progress, PROGRESS_AUDIO, "Speech: preparing audio...")
        audio = self._extract_audio(source_path, window, settings, workspace)

        output_base = workspace.transcript_base
        expected = {
            suffix: workspace.track(Path(f"{output_base}{suffix}"))
            for suffix in (".srt", ".wts", ".json")
        }
        cmd = build_whisper_cmd(engine, audio, output_base, settings)

        report(on_progress, PROGRESS_TRANSCRIBE_START, "Speech: transcribing...")
        tail: deque[str] = deque(maxlen=OUTPUT_TAIL_LINES)
        span = PROGRESS_TRANSCRIBE_END - PROGRESS_TRANSCRIBE_START

        def on_line(line: str) -> None:
            tail.append(line)
            match = PROGRESS_RE.search(line)
            if match:
                pct = min(int(match.group(1)), 100)
                report(
                    on_progress,
                    PROGRESS_TRANSCRIBE_START + round(pct / 100 * span),
                    "Speech: transcribing...",
                )

        code = self.runner(cmd, on_line=on_line, cwd=workspace.captions_dir)
        if code != 0:
            raise TranscriptionError(_failure_message(code, tail))
        report(on_progress, PROGRESS_TRANSCRIBE_END, "Speech: transcript ready")

        return self._collect(expected, audio, workspace, settings)

    def _extract_audio(
        self,
        source_path: Path,
        window: SelectionWindow,
        settings: Settings,
        workspace: RunWorkspace,
    ) -> Path:
        out = workspace.audio_wav
        cmd = ffmpeg.build_extract_audio_cmd(
            source_path,
            out,
            window=window,
            ffmpeg_binary=settings.ffmpeg_binary,
        )
        log.info("Extracting speech audio -> %s", out)
        ffmpeg.run_ffmpeg(cmd, error=TranscriptionError)
        if not out.exists() or out.stat().st_size == 0:
            raise TranscriptionError(f"Audio extraction produced no output: {out}")
        return out

    def _collect(
        self,
        expected: dict[str, Path],
        audio: Path,
        workspace: RunWorkspace,
        settings: Settings,
    ) -> TranscriptArtifacts:
        srt = expected[".srt"]
        if not srt.exists():
            fallback = find_latest(workspace.captions_dir, ".srt")
            if fallback is None:
                raise MissingArtifactError(
                    f"Speech engine did not output line subtitles (expected {srt})."
                )
            log.warning("Line subtitles not at %s; using %s", srt, fallback)
            srt = workspace.track(fallback)

        wts: Path | None = None
        data: Path | None = None
        if settings.word_level_captions:
            wts = expected[".wts"] if expected[".wts"].exists() else find_latest(
                workspace.captions_dir, ".wts"
            )
            if wts is not None:
                workspace.track(wts)
            data = expected[".json"] if expected[".json"].exists() else None

        return TranscriptArtifacts(
            line_subtitle_path=srt,
            audio_path=audio,
            word_timing_path=wts,
            token_data_path=data,
        )


# ----------------------------------------------------------------------
# Caption source selection
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class CaptionSource:
    name: str
    units: list[TimedUnit]
    word_level: bool


@dataclass(frozen=True)
class FileCaptionProvider:
    name: str
    path: Path | None
    loader: Callable[[Path], list[TimedUnit]]
    word_level: bool
    skip_message: str = ""

    def load(self) -> list[TimedUnit]:
        if self.path is None or not self.path.exists():
            return []
        try:
            return self.loader(self.path)
        except (OSError, ValueError) as exc:
            log.warning("Could not read %s (%s): %s", self.name, self.path, exc)
            return []


def caption_providers(artifacts: TranscriptArtifacts, word_level: bool) -> list[CaptionProvider]:
    providers: list[CaptionProvider] = []
    if word_level:
        providers.append(
            FileCaptionProvider(
                name="word_timing",
                path=artifacts.word_timing_path,
                loader=transcript.load_word_timing,
                word_level=True,
                skip_message="Word timestamps missing, trying token data...",
            )
        )
        providers.append(
            FileCaptionProvider(
                name="token_data",
                path=artifacts.token_data_path,
                loader=transcript.load_token_data,
                word_level=True,
                skip_message="Word timestamps not supported by this engine. Using line captions.",
            )
        )
    providers.append(
        FileCaptionProvider(
            name="line_subtitles",
            path=artifacts.line_subtitle_path,
            loader=transcript.load_line_subtitles,
            word_level=False,
        )
    )
    return providers


def select_caption_source(
    artifacts: TranscriptArtifacts,
    word_level: bool,
    on_progress: ProgressCallback | None = None,
) -> CaptionSource:
    """
    First provider that yields units wins. Word-level providers that come
    up empty only report progress; the line subtitle provider is always
    returned last, even when it holds no captions (a silent clip).
    """
    providers = caption_providers(artifacts, word_level)
    for provider in providers[:-1]:
        units = provider.load()
        if units:
            log.info("Caption source: %s (%d units)", provider.name, len(units))
            return CaptionSource(provider.name, units, provider.word_level)
        report(on_progress, PROGRESS_FALLBACK, provider.skip_message)
        log.info(provider.skip_message)

    last = providers[-1]
    units = last.load()
    log.info("Caption source: %s (%d units)", last.name, len(units))
    return CaptionSource(last.name, units, last.word_level)
