"""
Clip window selection.

The current policy keeps the first `target_duration` seconds of the
source. Any object with a matching `resolve()` can replace it (for
example a scorer based on audio energy) without touching later stages.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from shortslab.config.settings import Settings
from shortslab.domain.contracts import SelectionPolicy
from shortslab.domain.models import SelectionWindow
from shortslab.utils.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class FixedWindowPolicy:
    start: float = 0.0

    def resolve(self, source_path: Path, settings: Settings) -> SelectionWindow:
        return SelectionWindow(start=self.start, duration=float(settings.target_duration))


def resolve_selection(
    source_path: Path,
    settings: Settings,
    policy: SelectionPolicy | None = None,
) -> SelectionWindow:
    window = (policy or FixedWindowPolicy()).resolve(source_path, settings)
    log.info("Selected window start=%.3f duration=%.3f", window.start, window.duration)
    return window
