from __future__ import annotations

import re

STYLE_MARKER_RE = re.compile(r"\{.*?\}")


def normalize_text(text: str) -> str:
    return " ".join(text.split()).strip()


def strip_style_markers(text: str) -> str:
    """Remove `{...}` override/annotation blocks embedded in caption text."""
    return STYLE_MARKER_RE.sub("", text)
