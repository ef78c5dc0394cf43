"""
Caption timeline remapping.

Source-time units are turned into output-relative caption events:

1) drop units entirely outside [window.start, window.end)
2) clip partial overlaps to the window
3) subtract window.start
4) scale by 100 / speed_percent
5) add manual offset (ms) + detected leading-silence offset (s)
6) clamp negatives to 0
7) extend events shorter than min_duration_sec

Line-level blocks that the chunker splits into N pieces are divided into
N equal slices of the block's output duration. This is an approximation;
it does not align individual words.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable

from shortslab.config.settings import Settings
from shortslab.domain.models import CaptionEvent, SelectionWindow, TimedUnit
from shortslab.services.chunker import chunk_caption_text

MIN_BLOCK_SECONDS = 0.1


@dataclass(frozen=True)
class TimelineOptions:
    manual_offset_ms: float = 0.0
    auto_offset_sec: float = 0.0
    speed_percent: float = 100.0
    min_duration_sec: float = 0.12

    def __post_init__(self) -> None:
        if self.speed_percent <= 0:
            raise ValueError(f"speed_percent must be > 0 (got {self.speed_percent}).")

    @classmethod
    def from_settings(cls, settings: Settings, *, auto_offset_sec: float = 0.0) -> "TimelineOptions":
        return cls(
            manual_offset_ms=float(settings.caption_offset_ms),
            auto_offset_sec=auto_offset_sec if settings.auto_caption_offset else 0.0,
            speed_percent=float(settings.caption_speed),
            min_duration_sec=settings.min_word_duration_sec,
        )

    @property
    def time_scale(self) -> float:
        return 100.0 / self.speed_percent

    @property
    def offset_sec(self) -> float:
        return self.manual_offset_ms / 1000.0 + self.auto_offset_sec


def remap_span(
    start: float,
    end: float,
    window: SelectionWindow,
    options: TimelineOptions,
) -> tuple[float, float] | None:
    """Steps 1-6 for one source span; None when it falls outside the window."""
    if end <= window.start or start >= window.end:
        return None
    clipped_start = max(start, window.start)
    clipped_end = min(end, window.end)
    scale = options.time_scale
    offset = options.offset_sec
    out_start = max((clipped_start - window.start) * scale + offset, 0.0)
    out_end = max((clipped_end - window.start) * scale + offset, 0.0)
    return out_start, out_end


def remap_unit(
    unit: TimedUnit,
    window: SelectionWindow,
    options: TimelineOptions,
) -> tuple[float, float] | None:
    return remap_span(unit.start, unit.end, window, options)


def _floored(start: float, end: float, min_duration: float) -> float:
    if end - start >= min_duration:
        return end
    end = start + min_duration
    # start + d - start can round below d
    while end - start < min_duration:
        end = math.nextafter(end, math.inf)
    return end


def _by_start(events: Iterable[CaptionEvent]) -> list[CaptionEvent]:
    return sorted(events, key=lambda e: e.start)


def remap_words(
    units: Iterable[TimedUnit],
    window: SelectionWindow,
    options: TimelineOptions,
) -> list[CaptionEvent]:
    events: list[CaptionEvent] = []
    for unit in units:
        span = remap_unit(unit, window, options)
        if span is None:
            continue
        start, end = span
        events.append(
            CaptionEvent(
                start=start,
                end=_floored(start, end, options.min_duration_sec),
                text=unit.text,
            )
        )
    return _by_start(events)


def remap_blocks(
    units: Iterable[TimedUnit],
    window: SelectionWindow,
    options: TimelineOptions,
    *,
    max_words: int | None,
    max_chars: int | None,
) -> list[CaptionEvent]:
    events: list[CaptionEvent] = []
    min_duration = options.min_duration_sec
    for unit in units:
        if unit.end <= unit.start:
            continue
        span = remap_unit(unit, window, options)
        if span is None:
            continue
        start, end = span
        chunks = chunk_caption_text(unit.text, max_words, max_chars)
        if not chunks:
            continue
        if len(chunks) == 1:
            events.append(CaptionEvent(start, _floored(start, end, min_duration), chunks[0]))
            continue

        total = max(end - start, MIN_BLOCK_SECONDS)
        width = total / len(chunks)
        for idx, chunk in enumerate(chunks):
            slice_start = start + width * idx
            slice_end = slice_start + width
            events.append(
                CaptionEvent(slice_start, _floored(slice_start, slice_end, min_duration), chunk)
            )
    return _by_start(events)


def remap(
    units: Iterable[TimedUnit],
    window: SelectionWindow,
    options: TimelineOptions,
    *,
    word_level: bool,
    max_words: int | None = None,
    max_chars: int | None = None,
) -> list[CaptionEvent]:
    if word_level:
        return remap_words(units, window, options)
    return remap_blocks(
        units,
        window,
        options,
        max_words=max_words,
        max_chars=max_chars,
    )
