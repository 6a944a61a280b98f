"""Public interface for the ``txn_intake`` package.

Re-exports the normalization core, pipelines and public models as the stable
import surface. No runtime logic lives here.
"""

from .amounts import parse_amount
from .config import IntakeConfig, load_config
from .currency import BaseAmount, classify_currency, to_base
from .dates import correct_year, resolve_date
from .ingest.columns import build_column_map, map_row, map_rows
from .ingest.heuristics import HeuristicRules, classify_row
from .models import (
    BatchResult,
    ClassifiedRow,
    ColumnMap,
    Currency,
    RawFields,
    Rejected,
    Skipped,
    StagedSheet,
    Transaction,
    TxType,
)
from .normalize import IdSequence, NormalizeContext, make_context, normalize
from .pipeline import (
    ImageUpload,
    confirm_rows,
    import_sheet,
    ingest_manual,
    run_batch,
    scan_images,
    stage_sheet,
)

__all__ = [
    # Core
    "parse_amount",
    "resolve_date",
    "correct_year",
    "classify_currency",
    "to_base",
    "build_column_map",
    "map_row",
    "map_rows",
    "classify_row",
    "normalize",
    "make_context",
    # Pipelines
    "run_batch",
    "import_sheet",
    "stage_sheet",
    "confirm_rows",
    "scan_images",
    "ingest_manual",
    # Models / config
    "BaseAmount",
    "BatchResult",
    "ClassifiedRow",
    "ColumnMap",
    "Currency",
    "HeuristicRules",
    "IdSequence",
    "ImageUpload",
    "IntakeConfig",
    "NormalizeContext",
    "RawFields",
    "Rejected",
    "Skipped",
    "StagedSheet",
    "Transaction",
    "TxType",
    "load_config",
]
