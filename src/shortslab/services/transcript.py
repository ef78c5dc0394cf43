"""
Transcript normalization for shortslab.

The speech engine leaves up to three artifacts behind. This module turns
any of them into one ordered list of TimedUnit values:

- word timing lines:   "<start> <end> <text>"
- token data (JSON):   {"transcription": [{"tokens": [{"text", "offsets": {"from", "to"}}]}]}
- line subtitles:      SRT blocks (index, time range, text lines)

Timestamp units in the first two shapes are not declared by the engine.
If the largest end value exceeds 1000 every value is treated as
milliseconds, otherwise as seconds. A real recording longer than 1000 s
in seconds would be misread; the rule is kept as-is for compatibility.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Iterable

from shortslab.domain.models import TimedUnit
from shortslab.utils.logging import get_logger
from shortslab.utils.text import normalize_text, strip_style_markers

log = get_logger(__name__)

MILLISECOND_THRESHOLD = 1000
MILLISECOND_SCALE = 0.001

WORD_LINE_RE = re.compile(r"^(\d+(?:\.\d+)?)\s+(\d+(?:\.\d+)?)\s+(.*)$")
SRT_TIME_RE = re.compile(r"(\d+):(\d+):(\d+)[,.](\d+)")
BLOCK_SPLIT_RE = re.compile(r"\r?\n\s*\r?\n")
PUNCTUATION_ONLY_RE = re.compile(r"^[^\w\s]+$")


def _clean(text: str) -> str:
    return strip_style_markers(text).strip()


def _ordered(units: Iterable[TimedUnit]) -> list[TimedUnit]:
    return sorted(units, key=lambda u: u.start)


def apply_timestamp_scale(units: list[TimedUnit]) -> list[TimedUnit]:
    if not units:
        return []
    max_end = max(u.end for u in units)
    if max_end <= MILLISECOND_THRESHOLD:
        return list(units)
    return [
        TimedUnit(
            start=u.start * MILLISECOND_SCALE,
            end=u.end * MILLISECOND_SCALE,
            text=u.text,
        )
        for u in units
    ]


def is_non_speech_token(text: str) -> bool:
    if text.startswith("[_") and text.endswith("]"):
        return True
    return bool(PUNCTUATION_ONLY_RE.match(text))


# ----------------------------------------------------------------------
# (a) word timing lines
# ----------------------------------------------------------------------
def parse_word_timing(content: str) -> list[TimedUnit]:
    units: list[TimedUnit] = []
    for raw in content.splitlines():
        line = raw.strip()
        if not line:
            continue
        match = WORD_LINE_RE.match(line)
        if not match:
            continue
        text = _clean(match.group(3))
        if not text:
            continue
        units.append(
            TimedUnit(
                start=float(match.group(1)),
                end=float(match.group(2)),
                text=text,
            )
        )
    return _ordered(apply_timestamp_scale(units))


# ----------------------------------------------------------------------
# (b) structured token data
# ----------------------------------------------------------------------
def _offset(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def parse_token_data(payload: dict[str, Any]) -> list[TimedUnit]:
    units: list[TimedUnit] = []
    for segment in payload.get("transcription") or []:
        if not isinstance(segment, dict):
            continue
        for token in segment.get("tokens") or []:
            if not isinstance(token, dict):
                continue
            text = str(token.get("text") or "").strip()
            if not text or is_non_speech_token(text):
                continue
            text = _clean(text)
            if not text:
                continue
            offsets = token.get("offsets") or {}
            units.append(
                TimedUnit(
                    start=_offset(offsets.get("from", 0)),
                    end=_offset(offsets.get("to", 0)),
                    text=text,
                )
            )
    return _ordered(apply_timestamp_scale(units))


# ----------------------------------------------------------------------
# (c) line subtitles
# ----------------------------------------------------------------------
def parse_srt_time(value: str) -> float | None:
    match = SRT_TIME_RE.search(value)
    if not match:
        return None
    hours, minutes, seconds, millis = match.groups()
    return int(hours) * 3600 + int(minutes) * 60 + int(seconds) + int(millis) / (10 ** len(millis))


def parse_line_subtitles(content: str) -> list[TimedUnit]:
    units: list[TimedUnit] = []
    for block in BLOCK_SPLIT_RE.split(content.strip()):
        lines = [l.strip() for l in block.splitlines() if l.strip()]
        timing_idx = next((i for i, l in enumerate(lines) if "-->" in l), None)
        if timing_idx is None:
            continue
        start_raw, _, end_raw = lines[timing_idx].partition("-->")
        start = parse_srt_time(start_raw)
        end = parse_srt_time(end_raw)
        if start is None or end is None or end < start:
            continue
        text_lines = [
            l for l in lines[timing_idx + 1 :] if not l.isdigit()
        ]
        text = _clean(" ".join(text_lines))
        if not text:
            continue
        units.append(TimedUnit(start=start, end=end, text=normalize_text(text)))
    return _ordered(units)


# ----------------------------------------------------------------------
# File loaders
# ----------------------------------------------------------------------
def load_word_timing(path: Path) -> list[TimedUnit]:
    return parse_word_timing(path.read_text(encoding="utf-8", errors="ignore"))


def load_token_data(path: Path) -> list[TimedUnit]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8", errors="ignore"))
    except json.JSONDecodeError as exc:
        log.warning("Token data is not valid JSON (%s): %s", path, exc)
        return []
    if not isinstance(payload, dict):
        return []
    return parse_token_data(payload)


def load_line_subtitles(path: Path) -> list[TimedUnit]:
    return parse_line_subtitles(path.read_text(encoding="utf-8-sig", errors="ignore"))
