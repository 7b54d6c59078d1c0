"""Per-line decoration directives.

One refresh = one fresh blame parse + one coloring pass. Nothing is cached
between refreshes; overlapping refreshes for the same file are independent
and whichever finishes last is what the renderer shows.
"""

from __future__ import annotations

import logging
from pathlib import Path

from .blame import BlameParser
from .colors import ColorMapper, make_strategy
from .models import BlameRecord, Decoration, Settings

log = logging.getLogger(__name__)


def format_label(record: BlameRecord, date_format: str = "short") -> str:
    """Gutter text for a line: author, optionally prefixed with its date."""
    if date_format == "short" and record.date_string:
        return f"{record.date_string} {record.author}"
    if date_format == "locale" and record.date:
        return f"{record.date} {record.author}"
    return record.author


def build_decorations(blame: dict[int, BlameRecord], line_count: int,
                      mapper: ColorMapper, settings: Settings) -> list[Decoration]:
    """One Decoration per line in 1..line_count that has a record, in order.

    The timestamp range covers every record, including any past line_count.
    """
    if not blame or line_count <= 0:
        return []

    bounds = mapper.bounds(blame)
    decorations: list[Decoration] = []
    for line_number in range(1, line_count + 1):
        record = blame.get(line_number)
        if record is None:
            continue
        color = mapper.color_for(record, bounds)
        decorations.append(Decoration(
            line_number=line_number,
            text=format_label(record, settings.date_format),
            text_color=color.text,
            background_color=color.background,
        ))
    return decorations


class DecorationController:
    """Explicit owner of the enabled flag and current settings.

    Starts disabled; ``refresh`` returns no directives until activated.
    """

    def __init__(self, settings: Settings | None = None,
                 parser: BlameParser | None = None,
                 enabled: bool = False) -> None:
        self.settings = settings or Settings()
        self.parser = parser or BlameParser()
        self.enabled = enabled

    def activate(self) -> None:
        if not self.enabled:
            self.enabled = True
            log.info("Line author annotations enabled")

    def deactivate(self) -> None:
        if self.enabled:
            self.enabled = False
            log.info("Line author annotations disabled")

    def toggle(self) -> bool:
        """Flip the enabled flag; returns the new state."""
        if self.enabled:
            self.deactivate()
        else:
            self.activate()
        return self.enabled

    def reload(self, settings: Settings) -> None:
        """Replace the settings wholesale (configuration-change notification)."""
        self.settings = settings

    def refresh(self, file_path: str | Path, line_count: int,
                now: float | None = None) -> list[Decoration]:
        """Fresh parse -> map pass for one file. [] when disabled or no blame."""
        if not self.enabled:
            return []
        settings = self.settings
        blame = self.parser.parse(file_path)
        if not blame:
            return []
        mapper = ColorMapper(make_strategy(settings, now=now))
        return build_decorations(blame, line_count, mapper, settings)
