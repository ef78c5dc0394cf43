from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Callable, Protocol

from shortslab.domain.models import SelectionWindow, TimedUnit

if TYPE_CHECKING:
    from shortslab.config.settings import Settings


class SelectionPolicy(Protocol):
    def resolve(self, source_path: Path, settings: Settings) -> SelectionWindow: ...


class ProcessRunner(Protocol):
    """Runs an external engine, feeding each output line to `on_line`; returns the exit code."""

    def __call__(
        self,
        cmd: list[str],
        *,
        on_line: Callable[[str], None] | None = None,
        cwd: Path | None = None,
    ) -> int: ...


class CaptionProvider(Protocol):
    name: str
    word_level: bool
    skip_message: str

    def load(self) -> list[TimedUnit]: ...
