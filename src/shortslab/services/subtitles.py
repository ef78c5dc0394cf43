"""
Subtitle document builder for shortslab.

Renders caption events into an ASS script that ffmpeg's subtitle filter
burns into the clip.

Responsibilities:
- Declare one style derived from the chosen StyleProfile and position
- Emit one Dialogue line per caption event in ascending time order
- Strip override blocks from event text so captions cannot inject
  renderer directives

Does NOT:
- Decide timing (timeline.py does)
- Invoke ffmpeg
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable

from shortslab.domain.models import CanvasSize, CaptionEvent
from shortslab.exceptions import ShortsLabError
from shortslab.services.styles import CaptionPosition, StyleProfile
from shortslab.utils.logging import get_logger
from shortslab.utils.text import strip_style_markers

log = get_logger(__name__)

STYLE_NAME = "Default"
MARGIN_L = 60
MARGIN_R = 60
MARGIN_V = 80
SECONDARY_COLOR = "&H00000000"
BACK_COLOR = "&H80000000"

STYLE_FORMAT = (
    "Format: Name, Fontname, Fontsize, PrimaryColour, SecondaryColour, "
    "OutlineColour, BackColour, Bold, Italic, Underline, StrikeOut, "
    "ScaleX, ScaleY, Spacing, Angle, BorderStyle, Outline, Shadow, "
    "Alignment, MarginL, MarginR, MarginV, Encoding"
)
EVENT_FORMAT = "Format: Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text"


def format_ass_time(seconds: float) -> str:
    total_cs = int(max(seconds, 0.0) * 100 + 0.5)
    cs = total_cs % 100
    total_s = total_cs // 100
    s = total_s % 60
    total_m = total_s // 60
    m = total_m % 60
    h = total_m // 60
    return f"{h}:{m:02d}:{s:02d}.{cs:02d}"


def sanitize_event_text(text: str) -> str:
    cleaned = strip_style_markers(text)
    cleaned = cleaned.replace("{", "").replace("}", "")
    cleaned = re.sub(r"\r?\n", r"\\N", cleaned.strip())
    return cleaned


def _style_line(profile: StyleProfile, position: CaptionPosition) -> str:
    fields = [
        STYLE_NAME,
        profile.font,
        str(profile.size),
        profile.primary_color,
        SECONDARY_COLOR,
        profile.outline_color,
        BACK_COLOR,
        "0", "0", "0", "0",
        "100", "100", "0", "0",
        str(profile.border_style),
        str(profile.outline_width),
        str(profile.shadow),
        str(position.alignment),
        str(MARGIN_L),
        str(MARGIN_R),
        str(MARGIN_V),
        "1",
    ]
    return "Style: " + ",".join(fields)


def build_subtitle_document(
    events: Iterable[CaptionEvent],
    profile: StyleProfile,
    position: CaptionPosition | str,
    canvas: CanvasSize,
) -> str:
    if not isinstance(position, CaptionPosition):
        position = CaptionPosition.parse(position)

    lines = [
        "[Script Info]",
        "ScriptType: v4.00+",
        f"PlayResX: {canvas.width}",
        f"PlayResY: {canvas.height}",
        "WrapStyle: 0",
        "",
        "[V4+ Styles]",
        STYLE_FORMAT,
        _style_line(profile, position),
        "",
        "[Events]",
        EVENT_FORMAT,
    ]
    for event in sorted(events, key=lambda e: (e.start, e.end)):
        text = sanitize_event_text(event.text)
        if not text:
            continue
        lines.append(
            f"Dialogue: 0,{format_ass_time(event.start)},{format_ass_time(event.end)},"
            f"{STYLE_NAME},,0,0,0,,{text}"
        )
    return "\n".join(lines) + "\n"


def write_subtitle_document(
    path: Path,
    events: Iterable[CaptionEvent],
    profile: StyleProfile,
    position: CaptionPosition | str,
    canvas: CanvasSize,
) -> Path:
    content = build_subtitle_document(events, profile, position, canvas)
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise ShortsLabError(f"Could not write subtitle document {path}: {exc}") from exc
    log.info("Wrote subtitle document (%s) -> %s", profile.name, path)
    return path
