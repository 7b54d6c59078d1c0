"""Settings loading for git line author.

Config file: ``<repo>/.line-author.json`` (override with $LINE_AUTHOR_CONFIG
or an explicit path). Keys mirror the editor settings section and may be
nested under ``"gitLineAuthor"``:

  {
    "gitLineAuthor": {
      "style": "hsl",
      "colorConfigs": [{"regex": "^feat", "hue": 234}, ...],
      "dateFormat": "short"
    }
  }

$LINE_AUTHOR_STYLE overrides ``style``. A missing file means defaults.
Rules with an invalid regex or hue are dropped with a warning at load time;
every other problem raises ConfigError.
"""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any

from .models import (
    DATE_FORMATS,
    STYLES,
    ColorRule,
    ConfigError,
    Settings,
)

log = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".line-author.json"
SETTINGS_SECTION = "gitLineAuthor"

# camelCase key -> (Settings field, coercion)
_SCALAR_KEYS: dict[str, tuple[str, type]] = {
    "style": ("style", str),
    "defaultHue": ("default_hue", float),
    "saturation": ("saturation", float),
    "lightnessMin": ("lightness_min", float),
    "lightnessSpan": ("lightness_span", float),
    "oldColor": ("old_color", str),
    "newColor": ("new_color", str),
    "recentColor": ("recent_color", str),
    "staleColor": ("stale_color", str),
    "staleAfterDays": ("stale_after_days", float),
    "dateFormat": ("date_format", str),
    "width": ("width", str),
    "margin": ("margin", str),
    "gutterColumns": ("gutter_columns", int),
}

_HEX_RE = re.compile(r"^#[0-9a-fA-F]{6}$")

# HSL components that must stay in [0, 1]
_UNIT_KEYS = (
    ("saturation", "saturation"),
    ("lightnessMin", "lightness_min"),
    ("lightnessSpan", "lightness_span"),
)


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


def parse_color_rules(raw: Any) -> tuple[ColorRule, ...]:
    """Validate a ``colorConfigs`` list, dropping unusable rules.

    Order is preserved. Hues wrap into [0, 360).
    """
    if not isinstance(raw, list):
        raise ConfigError("colorConfigs must be a list of {regex, hue} objects")

    rules: list[ColorRule] = []
    for i, item in enumerate(raw):
        if not isinstance(item, dict):
            log.warning("Skipping colorConfigs[%d]: not an object", i)
            continue
        pattern = item.get("regex")
        if not isinstance(pattern, str):
            log.warning("Skipping colorConfigs[%d]: missing regex", i)
            continue
        try:
            re.compile(pattern)
        except re.error as exc:
            log.warning("Skipping colorConfigs[%d]: invalid regex %r (%s)", i, pattern, exc)
            continue
        hue = item.get("hue")
        if isinstance(hue, bool) or not isinstance(hue, (int, float)):
            log.warning("Skipping colorConfigs[%d]: hue must be a number", i)
            continue
        rules.append(ColorRule(regex=pattern, hue=hue % 360))
    return tuple(rules)


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


def settings_from_dict(data: dict[str, Any]) -> Settings:
    """Build validated Settings from a camelCase dict."""
    if not isinstance(data, dict):
        raise ConfigError("configuration must be a JSON object")
    section = data.get(SETTINGS_SECTION, data)
    if not isinstance(section, dict):
        raise ConfigError(f"{SETTINGS_SECTION} must be an object")

    kwargs: dict[str, Any] = {}
    for key, (attr, kind) in _SCALAR_KEYS.items():
        if key not in section:
            continue
        if kind is not str and isinstance(section[key], bool):
            raise ConfigError(f"{key} must be a number, got {section[key]!r}")
        try:
            kwargs[attr] = kind(section[key])
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"{key}: {exc}") from exc

    if "colorConfigs" in section:
        kwargs["color_rules"] = parse_color_rules(section["colorConfigs"])

    settings = Settings(**kwargs)
    _validate(settings)
    return settings


def _validate(settings: Settings) -> None:
    if settings.style not in STYLES:
        raise ConfigError(f"style must be one of {', '.join(STYLES)}, got {settings.style!r}")
    if settings.date_format not in DATE_FORMATS:
        raise ConfigError(
            f"dateFormat must be one of {', '.join(DATE_FORMATS)}, got {settings.date_format!r}"
        )
    for attr in ("old_color", "new_color", "recent_color", "stale_color"):
        if not _HEX_RE.match(getattr(settings, attr)):
            raise ConfigError(f"{attr} must be a #rrggbb color")
    for key, attr in _UNIT_KEYS:
        if not 0 <= getattr(settings, attr) <= 1:
            raise ConfigError(f"{key} must be between 0 and 1")
    if settings.stale_after_days <= 0:
        raise ConfigError("staleAfterDays must be positive")
    if settings.gutter_columns < 1:
        raise ConfigError("gutterColumns must be at least 1")


def config_path(repo: str | Path | None = None) -> Path:
    """Resolve the config file: $LINE_AUTHOR_CONFIG, else <repo>/.line-author.json."""
    env = os.environ.get("LINE_AUTHOR_CONFIG", "")
    if env:
        return Path(env)
    return Path(repo or os.getcwd()) / CONFIG_FILE_NAME


def load_settings(path: str | Path | None = None,
                  repo: str | Path | None = None) -> Settings:
    """Load Settings from disk, falling back to defaults when no file exists."""
    p = Path(path) if path else config_path(repo)
    data: dict[str, Any] = {}
    if p.exists():
        try:
            data = json.loads(p.read_text())
        except (OSError, json.JSONDecodeError) as exc:
            raise ConfigError(f"cannot read {p}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigError(f"{p}: configuration must be a JSON object")
        log.debug("Loaded settings from %s", p)
    elif path:
        raise ConfigError(f"config file not found: {p}")

    style = os.environ.get("LINE_AUTHOR_STYLE", "")
    if style:
        if isinstance(data.get(SETTINGS_SECTION), dict):
            data[SETTINGS_SECTION]["style"] = style
        else:
            data["style"] = style
    return settings_from_dict(data)
