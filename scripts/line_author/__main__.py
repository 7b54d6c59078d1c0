"""CLI entry point for git line author.

Usage:
  python -m line_author annotate FILE              # Source with colored blame gutter
  python -m line_author annotate FILE --style age  # Override the coloring style
  python -m line_author annotate FILE --json       # Decoration directives as JSON
  python -m line_author blame FILE [--json]        # Parsed blame records
  python -m line_author rules [--json]             # Effective hue rules

Settings come from .line-author.json in the current directory, or
$LINE_AUTHOR_CONFIG, or --config.
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import os
import sys
from pathlib import Path

from line_author.blame import BlameParser
from line_author.colors import hex_to_rgb
from line_author.config import load_settings
from line_author.decorations import DecorationController
from line_author.models import STYLES, ConfigError, Decoration, Settings

_RESET = "\x1b[0m"

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load(args: argparse.Namespace) -> Settings:
    """Settings from --config / env / cwd, with a --style override if given."""
    settings = load_settings(getattr(args, "config", None))
    style = getattr(args, "style", None)
    if style:
        settings = dataclasses.replace(settings, style=style)
    return settings


def _read_source(path: Path) -> list[str] | None:
    try:
        return path.read_text(errors="replace").splitlines()
    except OSError as exc:
        print(f"Cannot read {path}: {exc}", file=sys.stderr)
        return None


def _ansi(color: str, background: bool = False) -> str:
    r, g, b = hex_to_rgb(color)
    return f"\x1b[{48 if background else 38};2;{r};{g};{b}m"


def render_gutter(decoration: Decoration | None, columns: int, color: bool) -> str:
    """Fixed-width gutter cell for one line (blank when undecorated)."""
    if decoration is None:
        return " " * columns
    text = decoration.text[:columns].ljust(columns)
    if not color:
        return text
    prefix = _ansi(decoration.text_color)
    if decoration.background_color:
        prefix += _ansi(decoration.background_color, background=True)
    return f"{prefix}{text}{_RESET}"


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def cmd_annotate(args: argparse.Namespace) -> int:
    """Print the file with a colored blame gutter, or its directives as JSON."""
    settings = _load(args)
    path = Path(args.file)
    lines = _read_source(path)
    if lines is None:
        return 1

    controller = DecorationController(settings, enabled=True)
    decorations = controller.refresh(path, len(lines))
    if not decorations:
        print(f"[WARN] No blame data for {path}", file=sys.stderr)

    if args.json:
        print(json.dumps({
            "file": str(path),
            "style": settings.style,
            "width": settings.width,
            "margin": settings.margin,
            "decorations": [d.to_dict() for d in decorations],
        }))
        return 0

    use_color = not args.no_color and not os.environ.get("NO_COLOR")
    by_line = {d.line_number: d for d in decorations}
    for i, source in enumerate(lines, start=1):
        gutter = render_gutter(by_line.get(i), settings.gutter_columns, use_color)
        print(f"{gutter} {source}")
    return 0


def cmd_blame(args: argparse.Namespace) -> int:
    """Dump the parsed blame records for a file."""
    path = Path(args.file)
    if not path.is_file():
        print(f"No such file: {path}", file=sys.stderr)
        return 1

    records = BlameParser().parse(path)
    if args.json:
        print(json.dumps({str(n): r.to_dict() for n, r in sorted(records.items())}))
        return 0

    if not records:
        print(f"No blame data for {path}", file=sys.stderr)
        return 0
    for line_number, rec in sorted(records.items()):
        print(f"{line_number:>5}  {rec.commit[:8] or '-':<8}  {rec.date_string}  "
              f"{rec.author:<20}  {rec.subject}")
    return 0


def cmd_rules(args: argparse.Namespace) -> int:
    """Show the effective hue rules, in evaluation order."""
    settings = _load(args)
    if args.json:
        print(json.dumps({
            "rules": [r.to_dict() for r in settings.color_rules],
            "default_hue": settings.default_hue,
        }))
        return 0

    for rule in settings.color_rules:
        print(f"{rule.hue:>6g}  {rule.regex}")
    print(f"{settings.default_hue:>6g}  (no match)")
    return 0


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for git line author."""
    parser = argparse.ArgumentParser(
        prog="line_author",
        description="Annotate source lines with git blame, colored by age and commit type",
    )
    parser.add_argument(
        "--config",
        help="Settings JSON (default: $LINE_AUTHOR_CONFIG or ./.line-author.json)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )

    sub = parser.add_subparsers(dest="command")

    # annotate
    annotate_parser = sub.add_parser("annotate", help="Show a file with its blame gutter")
    annotate_parser.add_argument("file", help="File inside a git working tree")
    annotate_parser.add_argument("--style", choices=STYLES,
                                 help="Coloring style (default: from settings)")
    annotate_parser.add_argument("--json", action="store_true",
                                 help="Emit decoration directives as JSON")
    annotate_parser.add_argument("--no-color", dest="no_color", action="store_true",
                                 help="Plain text gutter")

    # blame
    blame_parser = sub.add_parser("blame", help="Print parsed blame records")
    blame_parser.add_argument("file", help="File inside a git working tree")
    blame_parser.add_argument("--json", action="store_true", help="JSON output")

    # rules
    rules_parser = sub.add_parser("rules", help="Show commit-subject hue rules")
    rules_parser.add_argument("--json", action="store_true", help="JSON output")

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)

    try:
        if args.command == "annotate":
            return cmd_annotate(args)
        if args.command == "blame":
            return cmd_blame(args)
        if args.command == "rules":
            return cmd_rules(args)
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2
    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
