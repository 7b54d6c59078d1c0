"""Data models for git line author.

Zero external dependencies -- pure Python dataclasses.

Lifecycle matches a single refresh pass:
  - BlameRecord: one attributed source line (created fresh per parse, never cached)
  - TimestampRange: per-file min/max commit time, widened when degenerate
  - LineColor: computed colors for one line
  - Decoration: the per-line directive handed to the renderer
  - ColorRule / Settings: process-wide configuration, replaced wholesale on reload
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class ConfigError(ValueError):
    """Invalid line-author configuration."""


# One day in epoch seconds -- used to widen a single-timestamp range
ONE_DAY = 86400


@dataclass
class BlameRecord:
    """Blame metadata for one source line.

    ``date`` is the locale rendering of the commit time; ``date_string``
    is the fixed YY/MM/DD layout. Both default to "" when the porcelain
    block carried no committer-time.
    """

    author: str
    timestamp: int                # committer-time, epoch seconds
    date: str = ""
    date_string: str = ""
    subject: str = ""             # commit summary line, may be empty
    commit: str = ""              # 40-hex SHA from the block header

    def to_dict(self) -> dict[str, Any]:
        """Serialise to a flat dict suitable for JSON output."""
        return {
            "author": self.author,
            "timestamp": self.timestamp,
            "date": self.date,
            "date_string": self.date_string,
            "subject": self.subject,
            "commit": self.commit,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> BlameRecord:
        """Reconstruct from a dict produced by to_dict()."""
        return cls(
            author=d["author"],
            timestamp=int(d["timestamp"]),
            date=d.get("date", ""),
            date_string=d.get("date_string", ""),
            subject=d.get("subject", ""),
            commit=d.get("commit", ""),
        )


@dataclass(frozen=True)
class ColorRule:
    """Commit-subject pattern mapped to a hue (degrees, wraps at 360)."""

    regex: str
    hue: float

    def to_dict(self) -> dict[str, Any]:
        return {"regex": self.regex, "hue": self.hue}


# Conventional-commit prefixes; first match wins
DEFAULT_COLOR_RULES: tuple[ColorRule, ...] = (
    ColorRule(regex="^feat", hue=234),
    ColorRule(regex="^fix", hue=0),
    ColorRule(regex="^docs", hue=100),
    ColorRule(regex="^refactor", hue=60),
    ColorRule(regex="^test", hue=308),
)

DEFAULT_HUE = 240.0  # blue, used when no rule matches


@dataclass(frozen=True)
class TimestampRange:
    """Oldest/newest commit time for one file.

    Always satisfies maximum > minimum; build with ``from_timestamps``.
    """

    minimum: int
    maximum: int

    @classmethod
    def from_timestamps(cls, timestamps: list[int]) -> TimestampRange:
        """Min/max over timestamps, widened by one day if they are all equal."""
        if not timestamps:
            raise ValueError("cannot compute a timestamp range from no records")
        lo = min(timestamps)
        hi = max(timestamps)
        if lo == hi:
            lo = hi - ONE_DAY
        return cls(minimum=lo, maximum=hi)

    def normalize(self, timestamp: int) -> float:
        """0.0 for the oldest line in the file, 1.0 for the newest."""
        return (timestamp - self.minimum) / (self.maximum - self.minimum)


@dataclass(frozen=True)
class LineColor:
    """Colors for one line. ``background`` is None for foreground-only styles."""

    text: str
    background: str | None = None


@dataclass
class Decoration:
    """Render directive for one line of the file."""

    line_number: int
    text: str
    text_color: str
    background_color: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "line": self.line_number,
            "text": self.text,
            "color": self.text_color,
        }
        if self.background_color is not None:
            d["background"] = self.background_color
        return d


STYLES = ("hsl", "gradient", "age")
DATE_FORMATS = ("short", "locale", "none")


@dataclass(frozen=True)
class Settings:
    """Effective configuration for one controller.

    Frozen: a configuration change builds a new Settings and swaps it in.
    """

    style: str = "hsl"
    color_rules: tuple[ColorRule, ...] = DEFAULT_COLOR_RULES
    default_hue: float = DEFAULT_HUE
    saturation: float = 0.7
    lightness_min: float = 0.3    # oldest line
    lightness_span: float = 0.6   # newest line = min + span
    old_color: str = "#2b3a55"    # gradient: oldest line background
    new_color: str = "#cfe3ff"    # gradient: newest line background
    recent_color: str = "#e5c07b"  # age: committed today
    stale_color: str = "#5c6370"   # age: stale_after_days or older
    stale_after_days: float = 365.0
    date_format: str = "short"
    width: str = "250px"
    margin: str = "0 8px 0 0"
    gutter_columns: int = 24
