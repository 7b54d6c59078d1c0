"""git blame subprocess wrapper and line-porcelain parser.

Runs ``git blame --line-porcelain`` for one file and turns the output into
a ``{line_number: BlameRecord}`` mapping. Zero external dependencies beyond
Python stdlib + git CLI.

Line-porcelain emits a full metadata block for every source line, ending
with the tab-prefixed source text. Only three fields are used:

  author <name>
  committer-time <unix seconds>
  summary <subject>

Assumption: blocks arrive in physical line order with no gaps, so a simple
counter yields the line number. The header's final-line field is not
cross-checked.
"""

from __future__ import annotations

import logging
import re
import subprocess
from datetime import datetime
from pathlib import Path
from typing import Any

from .models import BlameRecord

log = logging.getLogger(__name__)

_HEADER_RE = re.compile(r"^([0-9a-f]{40}) \d+ \d+(?: \d+)?$")

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _git(args: list[str], cwd: str | Path) -> str | None:
    """Run a git command, return stdout. Returns None on failure."""
    log.debug("$ git %s (cwd=%s)", " ".join(args), cwd)
    try:
        result = subprocess.run(
            ["git"] + args,
            cwd=str(cwd),
            capture_output=True,
            text=True,
            errors="replace",
            check=False,
        )
    except (FileNotFoundError, OSError) as exc:
        log.warning("git unavailable: %s", exc)
        return None
    if result.returncode != 0:
        log.warning(
            "git %s failed (exit %d): %s",
            args[0], result.returncode, result.stderr.strip(),
        )
        return None
    return result.stdout


def _format_dates(timestamp: int) -> tuple[str, str]:
    """Return (locale date, YY/MM/DD) for an epoch timestamp in local time."""
    dt = datetime.fromtimestamp(timestamp)
    return dt.strftime("%x"), dt.strftime("%y/%m/%d")


# ---------------------------------------------------------------------------
# Porcelain parsing
# ---------------------------------------------------------------------------


def parse_porcelain(raw: str) -> dict[int, BlameRecord]:
    """Parse ``git blame --line-porcelain`` output into per-line records.

    Every tab-prefixed line advances the line counter exactly once. A block
    missing author or committer-time produces no record for that line.
    """
    result: dict[int, BlameRecord] = {}
    current_line = 1
    info: dict[str, Any] = {}
    skipped = 0

    for line in raw.split("\n"):
        if line.startswith("author "):
            info["author"] = line[len("author "):]
        elif line.startswith("committer-time "):
            try:
                timestamp = int(line[len("committer-time "):])
                dates = _format_dates(timestamp)
            except (OverflowError, OSError, ValueError):
                continue
            info["timestamp"] = timestamp
            info["date"], info["date_string"] = dates
        elif line.startswith("summary "):
            info["subject"] = line[len("summary "):]
        elif line.startswith("\t"):
            author = info.get("author")
            timestamp = info.get("timestamp")
            if author and timestamp is not None and current_line not in result:
                result[current_line] = BlameRecord(
                    author=author,
                    timestamp=timestamp,
                    date=info.get("date", ""),
                    date_string=info.get("date_string", ""),
                    subject=info.get("subject", ""),
                    commit=info.get("commit", ""),
                )
            else:
                skipped += 1
            current_line += 1
            info = {}
        else:
            m = _HEADER_RE.match(line)
            if m:
                info["commit"] = m.group(1)

    if skipped:
        log.debug("Skipped %d line(s) with incomplete blame metadata", skipped)
    return result


# ---------------------------------------------------------------------------
# Parser entry point
# ---------------------------------------------------------------------------


def blame_output(file_path: str | Path) -> str | None:
    """Raw line-porcelain output for a file, or None if git blame failed."""
    path = Path(file_path).resolve()
    return _git(["blame", "--line-porcelain", "--", path.name], cwd=path.parent)


class BlameParser:
    """Stateless parser: one ``parse`` call = one fresh git blame pass."""

    def parse(self, file_path: str | Path) -> dict[int, BlameRecord]:
        """Line number -> BlameRecord for the file. Never raises.

        Untracked files, paths outside a repository and a missing git
        binary all yield an empty mapping (logged as a warning).
        """
        raw = blame_output(file_path)
        if raw is None:
            return {}
        records = parse_porcelain(raw)
        log.debug("Parsed %d blame record(s) for %s", len(records), file_path)
        return records
