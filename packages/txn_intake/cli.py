# ruff: noqa: I001
"""CLI for the ``txn_intake`` package.

A Typer console interface over :mod:`txn_intake.api`. Environment variables
(``DATABASE_URL``, ``OPENAI_API_KEY``, ``TXN_INTAKE_*``) are loaded from a
local ``.env`` with ``python-dotenv`` before any command runs. Results are
printed as JSON on stdout; errors go to stderr with a non-zero exit status.
"""

from __future__ import annotations

import json
import mimetypes
import sys
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv

from .config import IntakeConfig, load_config
from .logging_setup import configure_logging
from .models import BatchResult, StagedSheet, TxType
from .normalize import (
    SOURCE_AI_SCAN,
    SOURCE_MANUAL,
    SOURCE_SPREADSHEET,
    NormalizeContext,
    make_context,
)


# ---- Small module-level helpers ----------------------------------------------


def _fail(message: str) -> typer.Exit:
    print(f"Error: {message}", file=sys.stderr)
    return typer.Exit(1)


def _emit(payload: Any) -> None:
    typer.echo(json.dumps(payload, ensure_ascii=False, indent=2, default=str))


def _load_config() -> IntakeConfig:
    try:
        return load_config()
    except ValueError as e:
        raise _fail(f"invalid configuration: {e}") from e


def _context(
    source: str, *, created_by: str | None, convert_usd: bool = False
) -> NormalizeContext:
    return make_context(
        _load_config(),
        source=source,
        created_by=created_by,
        convert_to_base=convert_usd,
    )


def _persist_and_emit(result: BatchResult, *, persist: bool, database_url: str | None) -> None:
    if result.error is not None:
        _emit(result.summary())
        raise _fail(result.error)

    payload = result.summary()
    if persist:
        from .api import persist_batch

        try:
            payload["persistedIds"] = persist_batch(result, database_url=database_url)
        except Exception as e:
            raise _fail(f"persistence failed: {e}") from e
    _emit(payload)


def _staged_payload(staged: StagedSheet) -> dict[str, Any]:
    return {
        "rows": [
            {
                "row": s.row_number,
                "subject": s.row.subject,
                "note": s.row.note,
                "amount": f"{s.row.amount:.2f}",
                "isPersonnel": s.row.is_personnel,
            }
            for s in staged.rows
        ],
        "skipped": [{"row": s.row_number, "reason": s.reason} for s in staged.skipped],
        "error": staged.error,
    }


def _parse_assignments(assignments: list[str]) -> dict[str, str]:
    fields: dict[str, str] = {}
    for item in assignments:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise _fail(f"expected FIELD=VALUE, got {item!r}")
        fields[key.strip()] = value
    return fields


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Normalize transactions from manual entry, spreadsheets and receipt images. "
        "Loads DATABASE_URL / OPENAI_API_KEY from a local .env before running."
    ),
)

DatabaseUrl = Annotated[
    str | None, typer.Option(help="Override DATABASE_URL (falls back to env var).")
]
Persist = Annotated[bool, typer.Option(help="Insert accepted transactions into the database.")]
CreatedBy = Annotated[
    str | None, typer.Option(help="Recorded as createdBy when the source has none.")
]


@app.callback(invoke_without_command=True)
def _root(ctx: typer.Context) -> None:
    """Load ``.env`` from the working directory and configure logging."""

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging()

    if ctx.invoked_subcommand is None:
        typer.echo("No subcommand provided. Use --help to see available commands.")
        raise typer.Exit(1)


@app.command("init-db")
def init_db_cmd(database_url: DatabaseUrl = None) -> None:
    """Create the transactions table when it does not exist."""

    from db.client import init_schema

    try:
        init_schema(database_url=database_url)
    except Exception as e:
        raise _fail(f"failed to initialize database: {e}") from e
    typer.echo("Database ready.")


@app.command("add")
def add_cmd(
    subject: Annotated[str, typer.Option(help="Counterparty or shop.")],
    amount: Annotated[str, typer.Option(help="Amount, e.g. 150000 or 24.99.")],
    date_: Annotated[str | None, typer.Option("--date", help="YYYY-MM-DD or DD/MM/YYYY.")] = None,
    type_: Annotated[str, typer.Option("--type", help="Income or Expense.")] = "Expense",
    currency: Annotated[str, typer.Option(help="VND or USD.")] = "VND",
    note: Annotated[str, typer.Option(help="Free-text note.")] = "",
    created_by: CreatedBy = None,
    convert_usd: Annotated[bool, typer.Option(help="Store USD amounts as VND.")] = False,
    persist: Persist = True,
    database_url: DatabaseUrl = None,
) -> None:
    """Record one manually entered transaction."""

    from .pipeline import ingest_manual

    form = {
        "date": date_,
        "type": type_,
        "subject": subject,
        "amount": amount,
        "currency": currency,
        "note": note,
        "createdBy": created_by,
    }
    ctx = _context(SOURCE_MANUAL, created_by=created_by, convert_usd=convert_usd)
    result = ingest_manual(form, ctx)
    if result.rejected:
        _emit(result.summary())
        raise _fail(result.rejected[0].reason)
    _persist_and_emit(result, persist=persist, database_url=database_url)


@app.command("import-sheet")
def import_sheet_cmd(
    path: Annotated[Path, typer.Argument(help="Spreadsheet (.xlsx or .csv) with a header row.")],
    created_by: CreatedBy = None,
    convert_usd: Annotated[bool, typer.Option(help="Store USD amounts as VND.")] = False,
    persist: Persist = False,
    database_url: DatabaseUrl = None,
) -> None:
    """Import a spreadsheet whose header names its columns."""

    from .pipeline import import_sheet

    ctx = _context(SOURCE_SPREADSHEET, created_by=created_by, convert_usd=convert_usd)
    result = import_sheet(path, ctx)
    _persist_and_emit(result, persist=persist, database_url=database_url)


@app.command("stage-sheet")
def stage_sheet_cmd(
    path: Annotated[Path, typer.Argument(help="Headerless spreadsheet (.xlsx or .csv).")],
    confirm: Annotated[
        bool, typer.Option(help="Import every staged row instead of only previewing.")
    ] = False,
    type_: Annotated[str, typer.Option("--type", help="Type for confirmed rows.")] = "Expense",
    date_: Annotated[
        str | None, typer.Option("--date", help="Date for confirmed rows (default: today).")
    ] = None,
    created_by: CreatedBy = None,
    persist: Persist = False,
    database_url: DatabaseUrl = None,
) -> None:
    """Detect amounts and descriptions in a sheet without a usable header."""

    from .ingest.heuristics import HeuristicRules
    from .normalize import infer_type
    from .pipeline import confirm_rows, stage_sheet

    config = _load_config()
    staged = stage_sheet(path, HeuristicRules.from_config(config))
    if staged.error is not None:
        _emit(_staged_payload(staged))
        raise _fail(staged.error)
    if not confirm:
        _emit(_staged_payload(staged))
        return

    ctx = make_context(config, source=SOURCE_SPREADSHEET, created_by=created_by)
    tx_type: TxType = infer_type(type_)
    result = confirm_rows(staged.rows, ctx, tx_type=tx_type, tx_date=date_)
    _persist_and_emit(result, persist=persist, database_url=database_url)


@app.command("scan-images")
def scan_images_cmd(
    paths: Annotated[list[Path], typer.Argument(help="Receipt or transfer screenshots.")],
    created_by: CreatedBy = None,
    convert_usd: Annotated[bool, typer.Option(help="Store USD amounts as VND.")] = False,
    persist: Persist = False,
    database_url: DatabaseUrl = None,
) -> None:
    """Extract transactions from images with OpenAI and normalize them."""

    import os

    from .extraction import OpenAIImageExtractor
    from .pipeline import ImageUpload, scan_images

    if not os.getenv("OPENAI_API_KEY"):
        raise _fail("OPENAI_API_KEY is not set in the environment.")

    config = _load_config()
    ctx = make_context(
        config, source=SOURCE_AI_SCAN, created_by=created_by, convert_to_base=convert_usd
    )
    uploads = [
        ImageUpload(
            path=p,
            filename=p.name,
            mime_type=mimetypes.guess_type(p.name)[0] or "image/jpeg",
        )
        for p in paths
    ]
    # Files named on the command line belong to the user; never delete them.
    result = scan_images(
        uploads,
        OpenAIImageExtractor(model=config.model),
        ctx,
        concurrency=config.scan_concurrency,
        remove_after=False,
    )
    _persist_and_emit(result, persist=persist, database_url=database_url)


@app.command("list")
def list_cmd(database_url: DatabaseUrl = None) -> None:
    """Print stored transactions, newest first."""

    from .api import list_all

    try:
        rows = list_all(database_url=database_url)
    except Exception as e:
        raise _fail(f"failed to list transactions: {e}") from e
    _emit([t.to_dict() for t in rows])


@app.command("update")
def update_cmd(
    tx_id: Annotated[int, typer.Argument(help="Transaction id.")],
    assignments: Annotated[
        list[str], typer.Option("--set", help="FIELD=VALUE; repeat for several fields.")
    ],
    database_url: DatabaseUrl = None,
) -> None:
    """Change fields of one stored transaction."""

    from .api import update

    fields = _parse_assignments(assignments)
    try:
        found = update(tx_id, fields, database_url=database_url)
    except ValueError as e:
        raise _fail(str(e)) from e
    except Exception as e:
        raise _fail(f"update failed: {e}") from e
    if not found:
        raise _fail(f"transaction {tx_id} not found")
    _emit({"success": True, "id": tx_id})


@app.command("delete")
def delete_cmd(
    tx_id: Annotated[int, typer.Argument(help="Transaction id.")],
    database_url: DatabaseUrl = None,
) -> None:
    """Delete one stored transaction."""

    from .api import rollback

    try:
        count = rollback([tx_id], database_url=database_url)
    except Exception as e:
        raise _fail(f"delete failed: {e}") from e
    _emit({"success": count == 1, "deleted": count})


@app.command("rollback")
def rollback_cmd(
    ids: Annotated[list[int], typer.Argument(help="Ids returned by a previous import.")],
    database_url: DatabaseUrl = None,
) -> None:
    """Undo an import by deleting exactly the given ids."""

    from .api import rollback

    try:
        count = rollback(ids, database_url=database_url)
    except Exception as e:
        raise _fail(f"rollback failed: {e}") from e
    _emit({"requested": len(set(ids)), "deleted": count})


def main() -> None:  # pragma: no cover - console script entry
    app()


if __name__ == "__main__":  # pragma: no cover
    # Running as a module: `python -m txn_intake.cli`
    main()


__all__ = ["app", "main"]
