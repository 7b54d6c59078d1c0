"""Color engine -- maps blame records to display colors.

Three interchangeable strategies, selected by ``Settings.style``:

  - hsl:      hue from the commit subject (first matching ColorRule wins,
              fallback 240), saturation 0.7, lightness 0.3 (oldest line)
              to 0.9 (newest line). Text color from the luminance rule.
  - gradient: background interpolated old_color -> new_color by the
              line's position in the file's timestamp range.
  - age:      foreground only, interpolated recent_color -> stale_color by
              days since commit / stale_after_days, capped at 1.

Everything here is a pure function of its inputs. The age strategy takes
``now`` explicitly.
"""

from __future__ import annotations

import math
import re
import time
from dataclasses import dataclass

from .models import (
    DEFAULT_HUE,
    ONE_DAY,
    BlameRecord,
    ColorRule,
    ConfigError,
    LineColor,
    Settings,
    TimestampRange,
)

BLACK = "#000000"
WHITE = "#ffffff"

# Relative luminance above which black text is used
CONTRAST_THRESHOLD = 0.5


# ---------------------------------------------------------------------------
# Channel helpers
# ---------------------------------------------------------------------------


def _round(value: float) -> int:
    """Round half up (2.5 -> 3), unlike Python's banker's rounding."""
    return int(math.floor(value + 0.5))


def rgb_to_hex(r: int, g: int, b: int) -> str:
    """Lowercase ``#rrggbb``, each channel clamped to 0-255."""
    return "#" + "".join(f"{max(0, min(255, c)):02x}" for c in (r, g, b))


def hex_to_rgb(color: str) -> tuple[int, int, int]:
    """Decode ``#rrggbb`` (leading # optional). Raises ValueError if malformed."""
    h = color.lstrip("#")
    if len(h) != 6:
        raise ValueError(f"not a #rrggbb color: {color!r}")
    return int(h[0:2], 16), int(h[2:4], 16), int(h[4:6], 16)


def interpolate(start: str, end: str, factor: float) -> str:
    """Linear per-channel blend of two hex colors (factor 0 -> start, 1 -> end)."""
    a = hex_to_rgb(start)
    b = hex_to_rgb(end)
    r, g, bl = (_round(a[i] + (b[i] - a[i]) * factor) for i in range(3))
    return rgb_to_hex(r, g, bl)


def hsl_to_rgb(hue: float, saturation: float, lightness: float) -> tuple[int, int, int]:
    """Sector-based HSL -> RGB. Hue in degrees (wraps), the rest in [0, 1]."""
    h = hue % 360
    c = (1 - abs(2 * lightness - 1)) * saturation
    x = c * (1 - abs((h / 60) % 2 - 1))
    m = lightness - c / 2

    if h < 60:
        r, g, b = c, x, 0.0
    elif h < 120:
        r, g, b = x, c, 0.0
    elif h < 180:
        r, g, b = 0.0, c, x
    elif h < 240:
        r, g, b = 0.0, x, c
    elif h < 300:
        r, g, b = x, 0.0, c
    else:
        r, g, b = c, 0.0, x

    return _round((r + m) * 255), _round((g + m) * 255), _round((b + m) * 255)


# ---------------------------------------------------------------------------
# Contrast
# ---------------------------------------------------------------------------


def _linearize(channel: int) -> float:
    s = channel / 255
    return s / 12.92 if s <= 0.03928 else ((s + 0.055) / 1.055) ** 2.4


def relative_luminance(color: str) -> float:
    """WCAG 2.0 relative luminance of a hex color, 0.0 (black) to 1.0 (white)."""
    r, g, b = hex_to_rgb(color)
    return 0.2126 * _linearize(r) + 0.7152 * _linearize(g) + 0.0722 * _linearize(b)


def text_color_for(background: str) -> str:
    """Black text on light backgrounds, white on dark ones."""
    return BLACK if relative_luminance(background) > CONTRAST_THRESHOLD else WHITE


# ---------------------------------------------------------------------------
# Hue selection
# ---------------------------------------------------------------------------


def select_hue(subject: str, rules: tuple[ColorRule, ...] | list[ColorRule],
               default: float = DEFAULT_HUE) -> float:
    """Hue of the first rule whose regex matches anywhere in subject."""
    for rule in rules:
        if re.search(rule.regex, subject):
            return rule.hue
    return default


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


class ColoringStrategy:
    """Turns one record into a LineColor, given the file's timestamp range."""

    name = ""

    def colorize(self, record: BlameRecord, bounds: TimestampRange) -> LineColor:
        raise NotImplementedError


@dataclass(frozen=True)
class HslCategoryStrategy(ColoringStrategy):
    """Category hue + recency lightness background."""

    rules: tuple[ColorRule, ...]
    default_hue: float = DEFAULT_HUE
    saturation: float = 0.7
    lightness_min: float = 0.3
    lightness_span: float = 0.6

    name = "hsl"

    def background(self, record: BlameRecord, bounds: TimestampRange) -> str:
        hue = select_hue(record.subject, self.rules, self.default_hue)
        lightness = self.lightness_min + bounds.normalize(record.timestamp) * self.lightness_span
        return rgb_to_hex(*hsl_to_rgb(hue, self.saturation, lightness))

    def colorize(self, record: BlameRecord, bounds: TimestampRange) -> LineColor:
        bg = self.background(record, bounds)
        return LineColor(text=text_color_for(bg), background=bg)


@dataclass(frozen=True)
class FileRelativeGradientStrategy(ColoringStrategy):
    """Background blended between two anchors by position in the file's range."""

    old_color: str
    new_color: str

    name = "gradient"

    def colorize(self, record: BlameRecord, bounds: TimestampRange) -> LineColor:
        bg = interpolate(self.old_color, self.new_color, bounds.normalize(record.timestamp))
        return LineColor(text=text_color_for(bg), background=bg)


@dataclass(frozen=True)
class AgeGradientStrategy(ColoringStrategy):
    """Foreground blended by absolute age, independent of the file's range."""

    recent_color: str
    stale_color: str
    now: float
    stale_after_days: float = 365.0

    name = "age"

    def age_factor(self, record: BlameRecord) -> float:
        days = (self.now - record.timestamp) / ONE_DAY
        return max(0.0, min(days / self.stale_after_days, 1.0))

    def colorize(self, record: BlameRecord, bounds: TimestampRange) -> LineColor:
        return LineColor(
            text=interpolate(self.recent_color, self.stale_color, self.age_factor(record)),
        )


def make_strategy(settings: Settings, now: float | None = None) -> ColoringStrategy:
    """Build the strategy named by ``settings.style``."""
    if settings.style == "hsl":
        return HslCategoryStrategy(
            rules=tuple(settings.color_rules),
            default_hue=settings.default_hue,
            saturation=settings.saturation,
            lightness_min=settings.lightness_min,
            lightness_span=settings.lightness_span,
        )
    if settings.style == "gradient":
        return FileRelativeGradientStrategy(
            old_color=settings.old_color,
            new_color=settings.new_color,
        )
    if settings.style == "age":
        return AgeGradientStrategy(
            recent_color=settings.recent_color,
            stale_color=settings.stale_color,
            now=time.time() if now is None else now,
            stale_after_days=settings.stale_after_days,
        )
    raise ConfigError(f"unknown style: {settings.style!r}")


# ---------------------------------------------------------------------------
# Mapper
# ---------------------------------------------------------------------------


class ColorMapper:
    """Range computation + per-line coloring with a fixed strategy."""

    def __init__(self, strategy: ColoringStrategy) -> None:
        self.strategy = strategy

    @staticmethod
    def bounds(records: dict[int, BlameRecord] | list[BlameRecord]) -> TimestampRange:
        """Timestamp range over every record of the current parse."""
        values = records.values() if isinstance(records, dict) else records
        return TimestampRange.from_timestamps([r.timestamp for r in values])

    def color_for(self, record: BlameRecord, bounds: TimestampRange) -> LineColor:
        return self.strategy.colorize(record, bounds)

    def colorize(self, blame: dict[int, BlameRecord]) -> dict[int, LineColor]:
        """Line number -> LineColor for every record. Empty input gives {}."""
        if not blame:
            return {}
        rng = self.bounds(blame)
        return {line: self.color_for(rec, rng) for line, rec in blame.items()}
