from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

ProgressCallback = Callable[[int, str], None]


@dataclass(frozen=True)
class TimedUnit:
    """One spoken token or subtitle block, in seconds of the transcribed audio."""

    start: float
    end: float
    text: str


@dataclass(frozen=True)
class SelectionWindow:
    start: float
    duration: float

    def __post_init__(self) -> None:
        if self.start < 0:
            raise ValueError(f"Selection start must be >= 0 (got {self.start}).")
        if self.duration <= 0:
            raise ValueError(f"Selection duration must be > 0 (got {self.duration}).")

    @property
    def end(self) -> float:
        return self.start + self.duration

    def relative(self) -> "SelectionWindow":
        """Same length, starting at zero (for artifacts already cut to the window)."""
        return SelectionWindow(start=0.0, duration=self.duration)


@dataclass(frozen=True)
class CaptionEvent:
    """A caption line scheduled in output-relative seconds."""

    start: float
    end: float
    text: str

    @property
    def duration(self) -> float:
        return self.end - self.start


@dataclass(frozen=True)
class TranscriptArtifacts:
    line_subtitle_path: Path
    audio_path: Path
    word_timing_path: Optional[Path] = None
    token_data_path: Optional[Path] = None


@dataclass(frozen=True)
class CanvasSize:
    width: int = 1080
    height: int = 1920


def report(on_progress: ProgressCallback | None, percent: int, message: str) -> None:
    if on_progress is not None:
        on_progress(max(0, min(100, int(percent))), message)
