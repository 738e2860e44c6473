# WORKFLOW: Import pipeline driver for one source file and one import job.
# Used by: scripts/run_import.py, tests
# Stages:
# 1. Reading - Open the source (missing file -> Aborted)
# 2. Normalizing - Validate each RawRow against the job's row schema
# 3. Aggregating - Fold rows by natural key (or keep them one-to-one)
# 4. Upserting - Build table rows per sink target and upsert in batches
# 5. Done - Counts and diagnostics are returned on a RunResult
#
# State machine: Idle -> Reading -> Normalizing -> Aggregating -> Upserting -> Done
#                Reading -> Aborted (source file not found)
# Only a missing source aborts. Invalid rows and failed batches are counted and
# reported; the caller decides what a non-clean run means.

"""
Import pipeline driver for one source file and one import job.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, NamedTuple, Optional, Sequence, Type, Union

import structlog
from pydantic import BaseModel, Field, ValidationError
from sqlalchemy.engine import Engine

from core.config import Settings
from core.errors import ConfigurationError, SourceNotFoundError
from etl.aggregator import aggregate
from etl.schemas import SourceRow
from etl.sink import UpsertSink, UpsertSummary
from etl.source_reader import RawRow, read_rows

logger = structlog.get_logger(__name__)

MAX_ROW_DIAGNOSTICS = 50


class Stage(str, Enum):
    IDLE = "idle"
    READING = "reading"
    NORMALIZING = "normalizing"
    AGGREGATING = "aggregating"
    UPSERTING = "upserting"
    DONE = "done"
    ABORTED = "aborted"


class Diagnostic(BaseModel):
    stage: Stage
    message: str
    level: str = "warning"


class RunResult(BaseModel):
    """Tagged outcome of a pipeline run."""
    job: str
    source: str
    ok: bool = False
    stage: Stage = Stage.IDLE
    rows_read: int = 0
    rows_skipped: int = 0
    entities: int = 0
    inserted: int = 0
    failed: int = 0
    tables: Dict[str, UpsertSummary] = Field(default_factory=dict)
    diagnostics: List[Diagnostic] = Field(default_factory=list)

    @property
    def clean(self) -> bool:
        """True when the run finished with no failed batches."""
        return self.ok and self.failed == 0


class NumberedRow(NamedTuple):
    """A normalized row with its 1-based position among the source's data rows."""
    row_number: int
    row: Any


@dataclass
class ImportContext:
    """Per-run values that table row builders may need."""
    data_source: str
    engine: Optional[Engine] = None
    fuzzy_match_threshold: float = 90.0


@dataclass
class SinkTarget:
    """One table an import job writes to."""
    table: Any
    conflict_key: Sequence[str]
    build_rows: Callable[[List[Any], ImportContext], List[Dict[str, Any]]]


@dataclass
class ImportJob:
    """
    Definition of one dataset import.

    Jobs with a key_fn fold rows into entities; jobs without one hand
    NumberedRows straight to their targets.
    """
    name: str
    schema: Type[SourceRow]
    targets: List[SinkTarget]
    key_fn: Optional[Callable[[Any], Any]] = None
    fold_fn: Optional[Callable[[Optional[Dict[str, Any]], Any], Dict[str, Any]]] = None
    accept: Optional[Callable[[Any], bool]] = None
    sheet: Optional[str] = None
    delimiter: Optional[str] = None
    description: str = ""


Reader = Callable[[Union[str, Path], Optional[str], Optional[str]], Iterator[RawRow]]


class ImportPipeline:
    """Runs an ImportJob against a source file and an injected sink."""

    def __init__(self, job: ImportJob, sink: UpsertSink, settings: Settings, reader: Reader = read_rows):
        self.job = job
        self.sink = sink
        self.settings = settings
        self.reader = reader

    def run(
        self,
        path: Union[str, Path],
        sheet: Optional[str] = None,
        delimiter: Optional[str] = None,
        batch_size: Optional[int] = None,
    ) -> RunResult:
        """
        Run the job end to end.

        Args:
            path: Source file
            sheet: Workbook sheet (defaults to the job's sheet)
            delimiter: CSV delimiter (defaults to the job's, else sniffed)
            batch_size: Rows per upsert batch (defaults to settings.batch_size)

        Returns:
            RunResult; ok is False only when the run was aborted

        Raises:
            ConfigurationError: If batch_size is outside 1..settings.max_batch_size
        """
        batch_size = batch_size if batch_size is not None else self.settings.batch_size
        if not 1 <= batch_size <= self.settings.max_batch_size:
            raise ConfigurationError(
                f"Batch size must be between 1 and {self.settings.max_batch_size}, got {batch_size}"
            )

        result = RunResult(job=self.job.name, source=str(path))

        self._transition(result, Stage.READING)
        try:
            raw_rows = self.reader(path, sheet or self.job.sheet, delimiter or self.job.delimiter)
        except SourceNotFoundError as e:
            result.diagnostics.append(Diagnostic(stage=Stage.READING, message=str(e), level="error"))
            self._transition(result, Stage.ABORTED)
            logger.error("run_aborted", job=self.job.name, source=str(path), error=str(e))
            return result

        self._transition(result, Stage.NORMALIZING)
        rows = self._normalize(raw_rows, result)

        self._transition(result, Stage.AGGREGATING)
        entities = self._aggregate(rows)
        result.entities = len(entities)

        self._transition(result, Stage.UPSERTING)
        context = ImportContext(
            data_source=self.settings.data_source,
            engine=getattr(self.sink, "engine", None),
            fuzzy_match_threshold=self.settings.fuzzy_match_threshold,
        )
        for target in self.job.targets:
            table_rows = target.build_rows(entities, context)
            summary = self.sink.upsert(target.table, table_rows, target.conflict_key, batch_size)
            result.tables[summary.table] = summary
            result.inserted += summary.inserted
            result.failed += summary.failed
            for error in summary.errors:
                result.diagnostics.append(Diagnostic(
                    stage=Stage.UPSERTING,
                    message=f"{summary.table} batch {error.batch_number} ({error.size} rows) failed: {error.message}",
                    level="error",
                ))

        result.ok = True
        self._transition(result, Stage.DONE)
        logger.info(
            "run_finished",
            job=self.job.name,
            rows_read=result.rows_read,
            rows_skipped=result.rows_skipped,
            entities=result.entities,
            inserted=result.inserted,
            failed=result.failed,
        )
        return result

    def _transition(self, result: RunResult, stage: Stage) -> None:
        logger.info("stage_changed", job=self.job.name, previous=result.stage.value, stage=stage.value)
        result.stage = stage

    def _normalize(self, raw_rows: Iterator[RawRow], result: RunResult) -> List[NumberedRow]:
        """Validate RawRows against the job schema, skipping rows that fail."""
        rows: List[NumberedRow] = []
        invalid = 0

        for row_number, raw in enumerate(raw_rows, start=1):
            result.rows_read += 1
            try:
                row = self.job.schema.model_validate(raw)
            except ValidationError as e:
                result.rows_skipped += 1
                invalid += 1
                if invalid <= MAX_ROW_DIAGNOSTICS:
                    result.diagnostics.append(Diagnostic(
                        stage=Stage.NORMALIZING,
                        message=f"Row {row_number} failed validation: {e.errors()[0]['msg']}",
                    ))
                continue

            if self.job.accept is not None and not self.job.accept(row):
                result.rows_skipped += 1
                continue

            rows.append(NumberedRow(row_number, row))

        if invalid > MAX_ROW_DIAGNOSTICS:
            result.diagnostics.append(Diagnostic(
                stage=Stage.NORMALIZING,
                message=f"{invalid - MAX_ROW_DIAGNOSTICS} more rows failed validation",
            ))
        return rows

    def _aggregate(self, rows: List[NumberedRow]) -> List[Any]:
        if self.job.key_fn is None or self.job.fold_fn is None:
            return rows
        return aggregate((numbered.row for numbered in rows), self.job.key_fn, self.job.fold_fn)
