"""Batch ingestion: extraction/mapping followed by normalization.

Every entry point returns a result object with an accepted set and a
rejected/errors set; one bad row or image never aborts its siblings. A whole
input that cannot be read (corrupt spreadsheet) is reported once through
``BatchResult.error`` with no partial results.

Temporary upload files passed with ``remove_after=True`` are deleted on every
exit path.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from os import PathLike
from pathlib import Path
from typing import Any

from .config import DEFAULT_SCAN_CONCURRENCY
from .extraction import Extractor, parse_extraction
from .ingest.adapters.spreadsheet import SpreadsheetError, read_first_sheet
from .ingest.columns import build_column_map, find_header, map_rows
from .ingest.heuristics import HeuristicRules, stage_rows
from .logging_setup import get_logger
from .models import (
    BatchResult,
    ItemError,
    RawFields,
    Rejected,
    Rejection,
    StagedRow,
    StagedSheet,
    TxType,
)
from .normalize import NormalizeContext, normalize
from .pmap import p_map_settled

_logger = get_logger("txn_intake.pipeline")


@dataclass(frozen=True, slots=True)
class ImageUpload:
    """One uploaded image: its temp ``path`` plus the user's original filename."""

    path: Path
    filename: str
    mime_type: str = "image/jpeg"


@contextmanager
def _consumed(paths: Iterable[str | PathLike[str]], remove: bool) -> Iterator[None]:
    try:
        yield
    finally:
        if remove:
            for p in paths:
                try:
                    Path(p).unlink(missing_ok=True)
                except OSError as e:
                    _logger.warning("cleanup:unlink_failed path=%s error=%s", p, e)


def run_batch(raw_items: Sequence[RawFields], ctx: NormalizeContext) -> BatchResult:
    """Normalize ``raw_items`` in order, folding outcomes into a result.

    Expected rejections come back from :func:`normalize` as values; any
    unexpected exception is logged and recorded as a rejection for that item.
    """

    result = BatchResult()
    for position, raw in enumerate(raw_items):
        try:
            outcome = normalize(raw, ctx)
        except Exception as e:  # noqa: BLE001 - isolate one item's failure
            _logger.exception("run_batch:item_failed position=%d", position)
            result.rejected.append(Rejection(position, raw, f"unexpected error: {e}"))
            continue
        if isinstance(outcome, Rejected):
            result.rejected.append(Rejection(position, raw, outcome.reason))
        else:
            result.accepted.append(outcome)
    _logger.info(
        "run_batch:done source=%s accepted=%d rejected=%d",
        ctx.source_tag,
        len(result.accepted),
        len(result.rejected),
    )
    return result


# ---- Spreadsheets -------------------------------------------------------------


def import_sheet(
    path: str | PathLike[str],
    ctx: NormalizeContext,
    *,
    remove_after: bool = False,
) -> BatchResult:
    """Import a spreadsheet whose first sheet has a recognizable header row.

    Rows failing the mapper's checks are reported with their 1-based sheet
    row number; the remaining rows are normalized.
    """

    with _consumed([path], remove_after):
        try:
            rows = read_first_sheet(path)
        except SpreadsheetError as e:
            _logger.warning("import_sheet:unreadable path=%s error=%s", path, e)
            return BatchResult(error=str(e))

        header_idx = find_header(rows)
        if header_idx is None:
            return BatchResult(
                error="no recognizable header row; stage the sheet for heuristic import instead"
            )

        column_map = build_column_map(rows[header_idx])
        mapped, row_errors = map_rows(
            rows[header_idx + 1 :],
            column_map,
            today=ctx.current_date,
            first_row_number=header_idx + 2,
        )

        batch = run_batch([fields for _, fields in mapped], ctx)
        result = BatchResult(accepted=batch.accepted)
        for rej in batch.rejected:
            row_number = mapped[rej.position][0]
            result.rejected.append(
                Rejection(row_number, rej.item, f"Row {row_number}: {rej.reason}")
            )
        for row_number, reason in row_errors:
            result.rejected.append(Rejection(row_number, None, reason))
        result.rejected.sort(key=lambda r: r.position)
        return result


def stage_sheet(
    path: str | PathLike[str],
    rules: HeuristicRules | None = None,
    *,
    remove_after: bool = False,
) -> StagedSheet:
    """Classify a headerless sheet for user review; nothing is normalized yet."""

    with _consumed([path], remove_after):
        try:
            rows = read_first_sheet(path)
        except SpreadsheetError as e:
            _logger.warning("stage_sheet:unreadable path=%s error=%s", path, e)
            return StagedSheet(error=str(e))
        staged = stage_rows(rows, rules, first_row_number=1)
        _logger.info(
            "stage_sheet:done rows=%d staged=%d skipped=%d",
            len(rows),
            len(staged.rows),
            len(staged.skipped),
        )
        return staged


def confirm_rows(
    staged: Iterable[StagedRow],
    ctx: NormalizeContext,
    *,
    tx_type: TxType = TxType.EXPENSE,
    tx_date: date | str | None = None,
) -> BatchResult:
    """Turn user-confirmed staged rows into transactions."""

    raw_items = [
        RawFields(
            date=tx_date,
            type=tx_type.value,
            subject=s.row.subject,
            amount=s.row.amount,
            note=s.row.note,
        )
        for s in staged
    ]
    return run_batch(raw_items, ctx)


# ---- AI-scanned images --------------------------------------------------------


def _extract_one(upload: ImageUpload, extract: Extractor) -> RawFields:
    data = upload.path.read_bytes()
    text = extract(data, upload.mime_type)
    return parse_extraction(text)


def scan_images(
    uploads: Sequence[ImageUpload],
    extract: Extractor,
    ctx: NormalizeContext,
    *,
    concurrency: int = DEFAULT_SCAN_CONCURRENCY,
    remove_after: bool = True,
) -> BatchResult:
    """Extract and normalize a batch of uploaded images.

    Extraction runs concurrently (bounded by ``concurrency``); failures are
    recorded in ``errors`` keyed by the original filename. Normalization then
    runs in input order so ids follow the upload order.
    """

    with _consumed([u.path for u in uploads], remove_after):
        if not uploads:
            return BatchResult()

        settled = p_map_settled(
            uploads,
            lambda u: _extract_one(u, extract),
            concurrency=min(concurrency, len(uploads)),
        )

        result = BatchResult()
        extracted: list[tuple[int, RawFields]] = []
        for position, (upload, outcome) in enumerate(zip(uploads, settled, strict=True)):
            if outcome.error is not None:
                _logger.warning(
                    "scan_images:item_failed file=%s error=%s",
                    upload.filename,
                    outcome.error,
                )
                result.errors.append(ItemError(upload.filename, str(outcome.error)))
                continue
            extracted.append((position, outcome.value))

        batch = run_batch([raw for _, raw in extracted], ctx)
        result.accepted = batch.accepted
        for rej in batch.rejected:
            position = extracted[rej.position][0]
            result.rejected.append(
                Rejection(position, rej.item, f"{uploads[position].filename}: {rej.reason}")
            )
        return result


def ingest_manual(form: dict[str, Any], ctx: NormalizeContext) -> BatchResult:
    """Normalize a single manual-entry form body."""

    return run_batch([RawFields.from_mapping(form)], ctx)


__all__ = [
    "ImageUpload",
    "confirm_rows",
    "import_sheet",
    "ingest_manual",
    "run_batch",
    "scan_images",
    "stage_sheet",
]
