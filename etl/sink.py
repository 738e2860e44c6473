# WORKFLOW: Batched insert-or-update of import rows into database tables.
# Used by: pipeline driver (upserting stage)
# Functions:
# 1. chunked() - Split rows into sequential batches of at most N rows
# 2. UpsertSink.upsert() - Submit each batch as INSERT ... ON CONFLICT DO UPDATE
#
# Upsert flow: rows -> batches -> one transaction per batch -> summary (inserted / failed / errors)
# A failing batch is logged, counted and skipped; later batches still run.
# No retries, no backoff and one batch in flight at a time.

"""
Batched insert-or-update of import rows into database tables.
"""

from typing import Any, Dict, Iterator, List, Mapping, Sequence, Union

import structlog
from pydantic import BaseModel, Field
from sqlalchemy import Table
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from core.errors import ConfigurationError

logger = structlog.get_logger(__name__)

DEFAULT_MAX_BATCH_SIZE = 500

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class BatchError(BaseModel):
    """A batch the database rejected."""
    batch_number: int = Field(..., description="1-based batch position")
    size: int = Field(..., description="Rows in the batch")
    message: str = Field(..., description="Database error message")


class UpsertSummary(BaseModel):
    """Outcome of one upsert call."""
    table: str
    inserted: int = 0
    failed: int = 0
    batches: int = 0
    errors: List[BatchError] = Field(default_factory=list)


def chunked(rows: Sequence[Any], size: int) -> Iterator[Sequence[Any]]:
    """
    Split rows into sequential batches.

    Args:
        rows: Rows to split
        size: Maximum batch size (>= 1)

    Returns:
        Iterator of slices; only the last may be shorter than size
    """
    if size < 1:
        raise ConfigurationError(f"Batch size must be at least 1, got {size}")
    for start in range(0, len(rows), size):
        yield rows[start:start + size]


class UpsertSink:
    """Writes rows to tables of one injected engine."""

    def __init__(self, engine: Engine, max_batch_size: int = DEFAULT_MAX_BATCH_SIZE):
        self.engine = engine
        self.max_batch_size = max_batch_size

    def upsert(
        self,
        table: Union[Table, type],
        rows: Sequence[Mapping[str, Any]],
        conflict_key: Sequence[str],
        batch_size: int,
    ) -> UpsertSummary:
        """
        Insert or update rows in bounded batches.

        Args:
            table: Table or declarative model class
            rows: Row dicts; keys are column names
            conflict_key: Columns of the unique constraint to upsert on
            batch_size: Rows per batch, 1..max_batch_size

        Returns:
            UpsertSummary with inserted/failed counts and per-batch errors

        Raises:
            ConfigurationError: If batch_size or conflict_key is invalid
        """
        table = getattr(table, "__table__", table)
        if not 1 <= batch_size <= self.max_batch_size:
            raise ConfigurationError(
                f"Batch size must be between 1 and {self.max_batch_size}, got {batch_size}"
            )
        if not conflict_key:
            raise ConfigurationError(f"A conflict key is required to upsert into {table.name}")

        summary = UpsertSummary(table=table.name)

        for batch_number, batch in enumerate(chunked(list(rows), batch_size), start=1):
            summary.batches += 1
            try:
                self._submit(table, batch, conflict_key)
            except SQLAlchemyError as e:
                message = str(getattr(e, "orig", None) or e).strip()
                summary.failed += len(batch)
                summary.errors.append(BatchError(batch_number=batch_number, size=len(batch), message=message))
                logger.error("batch_failed", table=table.name, batch=batch_number, size=len(batch), error=message)
                continue

            summary.inserted += len(batch)
            logger.info("batch_upserted", table=table.name, batch=batch_number, size=len(batch))

        logger.info(
            "upsert_finished",
            table=table.name,
            batches=summary.batches,
            inserted=summary.inserted,
            failed=summary.failed,
        )
        return summary

    def _submit(self, table: Table, batch: Sequence[Mapping[str, Any]], conflict_key: Sequence[str]) -> None:
        """Upsert one batch in its own transaction."""
        columns = list(batch[0].keys())
        params: List[Dict[str, Any]] = [{column: row.get(column) for column in columns} for row in batch]

        stmt = self._build_statement(table, columns, conflict_key)
        with self.engine.begin() as conn:
            conn.execute(stmt, params)

    def _build_statement(self, table: Table, columns: Sequence[str], conflict_key: Sequence[str]):
        dialect = self.engine.dialect.name
        insert = _INSERT_BY_DIALECT.get(dialect)
        if insert is None:
            raise ConfigurationError(f"Upserts are not supported for the {dialect} dialect")

        stmt = insert(table)
        updates = {column: stmt.excluded[column] for column in columns if column not in conflict_key}
        if not updates:
            return stmt.on_conflict_do_nothing(index_elements=list(conflict_key))
        return stmt.on_conflict_do_update(index_elements=list(conflict_key), set_=updates)
