"""Row/field extraction for spreadsheet uploads.

- :mod:`.columns`: header-driven mapping (SchemaColumnMapper).
- :mod:`.heuristics`: headerless row classification (HeuristicRowClassifier).
- :mod:`.adapters`: file readers producing raw rows.
"""

from .columns import build_column_map, find_header, map_row, map_rows
from .heuristics import HeuristicRules, classify_row, stage_rows

__all__ = [
    "HeuristicRules",
    "build_column_map",
    "classify_row",
    "find_header",
    "map_row",
    "map_rows",
    "stage_rows",
]
