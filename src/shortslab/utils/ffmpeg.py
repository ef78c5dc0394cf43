from __future__ import annotations

import re
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from shortslab.domain.models import SelectionWindow
from shortslab.exceptions import EncodingError, ProvisioningError, ShortsLabError
from shortslab.utils.logging import get_logger
from shortslab.utils.process import run_streaming

log = get_logger(__name__)

DURATION_RE = re.compile(r"Duration:\s*(\d+):(\d+):(\d+)\.(\d+)")
TIME_RE = re.compile(r"time=(\d+):(\d+):(\d+)\.(\d+)")
SILENCE_END_RE = re.compile(r"silence_end:\s*([\d.]+)")

SILENCE_NOISE_DB = -35
SILENCE_MIN_SECONDS = 0.2
SPEECH_SAMPLE_RATE = 16000


# ----------------------------------------------------------------------
# Filter graph
# ----------------------------------------------------------------------
def escape_filter_path(value: str) -> str:
    normalized = value.replace("\\", "/")
    escaped = normalized.replace(":", r"\:").replace("'", r"\'")
    return f"'{escaped}'"


@dataclass(frozen=True)
class FilterStage:
    name: str
    args: tuple[str, ...] = ()
    options: tuple[tuple[str, str], ...] = ()

    def render(self) -> str:
        parts = list(self.args) + [f"{key}={value}" for key, value in self.options]
        if not parts:
            return self.name
        return f"{self.name}={':'.join(parts)}"


@dataclass
class FilterChain:
    """Ordered video filters, serialized to ffmpeg's -vf grammar only by `render()`."""

    stages: list[FilterStage] = field(default_factory=list)

    def add(self, stage: FilterStage) -> "FilterChain":
        self.stages.append(stage)
        return self

    def scale_to_cover(self, width: int, height: int) -> "FilterChain":
        return self.add(
            FilterStage(
                "scale",
                (str(width), str(height)),
                (("force_original_aspect_ratio", "increase"),),
            )
        )

    def center_crop(self, width: int, height: int) -> "FilterChain":
        # crop centers by default when x/y are omitted
        return self.add(FilterStage("crop", (str(width), str(height))))

    def burn_subtitles(self, path: str | Path) -> "FilterChain":
        value = str(path)
        name = "ass" if value.lower().endswith((".ass", ".ssa")) else "subtitles"
        return self.add(FilterStage(name, (escape_filter_path(value),)))

    @property
    def names(self) -> list[str]:
        return [stage.name for stage in self.stages]

    def render(self) -> str:
        return ",".join(stage.render() for stage in self.stages)


# ----------------------------------------------------------------------
# Commands
# ----------------------------------------------------------------------
def build_extract_audio_cmd(
    source: str | Path,
    out: str | Path,
    *,
    window: SelectionWindow,
    ffmpeg_binary: str = "ffmpeg",
) -> list[str]:
    return [
        ffmpeg_binary,
        "-y",
        "-hide_banner",
        "-loglevel",
        "error",
        "-i",
        str(source),
        "-ss",
        f"{window.start:.3f}",
        "-t",
        f"{window.duration:.3f}",
        "-ar",
        str(SPEECH_SAMPLE_RATE),
        "-ac",
        "1",
        "-c:a",
        "pcm_s16le",
        str(out),
    ]


def build_encode_cmd(
    source: str | Path,
    out: str | Path,
    *,
    window: SelectionWindow,
    filters: FilterChain,
    ffmpeg_binary: str = "ffmpeg",
) -> list[str]:
    cmd: list[str] = [
        ffmpeg_binary,
        "-y",
        "-hide_banner",
        "-ss",
        f"{window.start:.3f}",
        "-i",
        str(source),
    ]
    if filters.stages:
        cmd += ["-vf", filters.render()]
    cmd += [
        "-t",
        f"{window.duration:.3f}",
        "-avoid_negative_ts",
        "make_zero",
        "-c:v",
        "libx264",
        "-preset",
        "veryfast",
        "-pix_fmt",
        "yuv420p",
        "-c:a",
        "aac",
        "-af",
        "aresample=async=1",
        str(out),
    ]
    return cmd


def build_silencedetect_cmd(audio: str | Path, *, ffmpeg_binary: str = "ffmpeg") -> list[str]:
    return [
        ffmpeg_binary,
        "-hide_banner",
        "-i",
        str(audio),
        "-af",
        f"silencedetect=noise={SILENCE_NOISE_DB}dB:d={SILENCE_MIN_SECONDS}",
        "-f",
        "null",
        "-",
    ]


def run_ffmpeg(
    cmd: list[str],
    *,
    error: type[ShortsLabError] = EncodingError,
) -> subprocess.CompletedProcess[str]:
    try:
        proc = subprocess.run(cmd, capture_output=True, text=True)
    except FileNotFoundError as exc:
        raise ProvisioningError(f"Executable not found: {cmd[0]}") from exc
    if proc.returncode != 0:
        raise error(
            f"ffmpeg failed with exit code {proc.returncode}.\n"
            f"STDERR:\n{(proc.stderr or '').strip()}"
        )
    return proc


def run_ffmpeg_with_progress(
    cmd: list[str],
    *,
    on_line: Callable[[str], None] | None = None,
    cwd: Path | None = None,
) -> int:
    """Run ffmpeg, streaming each diagnostic line to `on_line`; returns the exit code."""
    return run_streaming(cmd, on_line=on_line, cwd=cwd)


# ----------------------------------------------------------------------
# Diagnostic stream parsing
# ----------------------------------------------------------------------
def _clock_seconds(match: re.Match[str]) -> float:
    hours, minutes, seconds, fraction = match.groups()
    return (
        int(hours) * 3600
        + int(minutes) * 60
        + int(seconds)
        + int(fraction) / (10 ** len(fraction))
    )


def parse_duration_seconds(text: str) -> float | None:
    match = DURATION_RE.search(text)
    return _clock_seconds(match) if match else None


def parse_time_seconds(text: str) -> float | None:
    match = TIME_RE.search(text)
    return _clock_seconds(match) if match else None


@dataclass
class EncoderProgress:
    """
    Turns ffmpeg stderr lines into overall pipeline percentages.

    The first `Duration:` marker fixes the denominator; every later
    `time=` marker maps current/total into [floor, ceiling].
    """

    floor: int = 40
    ceiling: int = 95
    total_seconds: float | None = None

    def feed(self, line: str) -> int | None:
        if self.total_seconds is None:
            duration = parse_duration_seconds(line)
            if duration:
                self.total_seconds = duration
        current = parse_time_seconds(line)
        if current is None or not self.total_seconds:
            return None
        ratio = min(current / self.total_seconds, 1.0)
        return self.floor + round(ratio * (self.ceiling - self.floor))


def parse_silence_end(stderr: str) -> float:
    match = SILENCE_END_RE.search(stderr)
    if not match:
        return 0.0
    try:
        return float(match.group(1))
    except ValueError:
        return 0.0


def detect_leading_silence(audio: str | Path | None, *, ffmpeg_binary: str = "ffmpeg") -> float:
    """Seconds until the first silence ends in `audio`; 0.0 when unknown."""
    if not audio or not Path(audio).exists():
        return 0.0
    try:
        proc = subprocess.run(
            build_silencedetect_cmd(audio, ffmpeg_binary=ffmpeg_binary),
            capture_output=True,
            text=True,
        )
    except OSError as exc:
        log.debug("silencedetect unavailable: %s", exc)
        return 0.0
    return parse_silence_end(proc.stderr or "")
