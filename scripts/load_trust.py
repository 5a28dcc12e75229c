"""
Reviewer trust loading script for the registry indexer.

The registries emit no trust events, so reviewer weights are loaded from a CSV
with the columns `reviewer,allowlisted,stake_weight,identity_weight` (an
optional `updated_block` column is kept when present). Rows are upserted, so
re-running the script with an edited file updates existing reviewers.
"""

from __future__ import annotations

import asyncio
import csv
import sys
from pathlib import Path
from typing import List

import typer
from pydantic import ValidationError

from registry_indexer.config import Settings, get_settings
from registry_indexer.domain.models import ReviewerTrust
from registry_indexer.infrastructure.db_factory import PoolManager
from registry_indexer.infrastructure.schema import apply_schema
from registry_indexer.infrastructure.store import Store
from registry_indexer.utils.logging import configure_logging

app = typer.Typer(help="Load reviewer trust weights from CSV into Postgres.")

_TRUE = {"1", "true", "yes", "y", "t"}


def parse_trust_csv(csv_path: Path) -> List[ReviewerTrust]:
    """
    Read and validate trust rows. Addresses are lowercased.

    Raises
    ------
    ValueError
        On a missing column or an invalid (e.g. negative) weight, naming the line.
    """
    rows: List[ReviewerTrust] = []
    with csv_path.open("r", newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        missing = {"reviewer", "allowlisted", "stake_weight", "identity_weight"} - set(reader.fieldnames or [])
        if missing:
            raise ValueError(f"{csv_path}: missing columns {', '.join(sorted(missing))}")
        for line_no, record in enumerate(reader, start=2):
            try:
                rows.append(
                    ReviewerTrust(
                        reviewer=record["reviewer"].strip().lower(),
                        allowlisted=record["allowlisted"].strip().lower() in _TRUE,
                        stake_weight=float(record["stake_weight"] or 0),
                        identity_weight=float(record["identity_weight"] or 0),
                        updated_block=int(record["updated_block"]) if record.get("updated_block") else None,
                    )
                )
            except (ValidationError, ValueError) as exc:
                raise ValueError(f"{csv_path}:{line_no}: {exc}") from exc
    return rows


async def _load(rows: List[ReviewerTrust], settings: Settings) -> int:
    """Upsert `rows`; returns how many reviewers the table holds afterwards."""
    manager = PoolManager()
    pool = await manager.open(settings)
    try:
        async with pool.connection() as conn:
            await apply_schema(conn)
        store = Store(pool)
        async with store.writer() as writer:
            for row in rows:
                await writer.upsert_reviewer_trust(row)
        return len(await store.list_reviewer_trust())
    finally:
        await manager.close()


@app.command()
def main(
    csv_path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Trust CSV file."),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Validate the file without writing to Postgres.",
    ),
) -> None:
    """
    Validate a reviewer trust CSV and upsert it into the reviewer_trust table.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)

    try:
        rows = parse_trust_csv(csv_path)
    except ValueError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1)

    typer.echo(f"Parsed {len(rows)} reviewer rows from {csv_path}")
    if dry_run:
        typer.echo("Skipping load (dry-run flag set).")
        return

    total = asyncio.run(_load(rows, settings))
    typer.echo(f"Loaded {len(rows)} reviewers into {settings.db_name} ({total} total).")


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
