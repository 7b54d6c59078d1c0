"""Git line author -- per-line blame annotations colored by age and category.

Parses ``git blame --line-porcelain`` output and maps every attributed line
to a display color. No external dependencies beyond Python stdlib + git CLI.

Modules:
  - models: Data classes (BlameRecord, ColorRule, TimestampRange, Decoration, Settings)
  - blame: git blame subprocess wrapper and porcelain parser
  - colors: HSL / gradient coloring strategies and luminance contrast
  - config: .line-author.json loading and validation
  - decorations: per-line decoration directives and the enable/disable controller
"""

from __future__ import annotations
