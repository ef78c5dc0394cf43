from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class CaptionStyle(str, Enum):
    CLEAN = "clean"
    NEON = "neon"
    BOXED = "boxed"
    PUNCHY = "punchy"

    @classmethod
    def parse(cls, name: str | None) -> "CaptionStyle":
        try:
            return cls((name or "").strip().lower())
        except ValueError:
            return cls.CLEAN


class CaptionPosition(str, Enum):
    BOTTOM = "bottom"
    MIDDLE = "middle"

    @classmethod
    def parse(cls, name: str | None) -> "CaptionPosition":
        try:
            return cls((name or "").strip().lower())
        except ValueError:
            return cls.BOTTOM

    @property
    def alignment(self) -> int:
        # ASS numpad alignment: 2 = bottom-center, 5 = middle-center
        return 5 if self is CaptionPosition.MIDDLE else 2


@dataclass(frozen=True)
class StyleProfile:
    name: str
    font: str
    size: int
    primary_color: str
    outline_color: str
    shadow: int
    border_style: int
    outline_width: int


def style_profile(style: CaptionStyle, size: int) -> StyleProfile:
    if style is CaptionStyle.NEON:
        return StyleProfile("neon", "Space Grotesk", size, "&H00E8FFF5", "&H0031C9A9", 2, 1, 4)
    if style is CaptionStyle.BOXED:
        return StyleProfile("boxed", "IBM Plex Sans", size, "&H00FFFFFF", "&H00111111", 0, 3, 3)
    if style is CaptionStyle.PUNCHY:
        return StyleProfile("punchy", "Impact", size + 4, "&H00FFFFFF", "&H00000000", 2, 1, 4)
    return StyleProfile("clean", "Segoe UI Semibold", size, "&H00FFFFFF", "&H00111111", 1, 1, 3)


def resolve_style(name: str | None, size: int) -> StyleProfile:
    """Profile for a preset name; unknown names get the clean preset."""
    return style_profile(CaptionStyle.parse(name), size)
