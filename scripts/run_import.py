# WORKFLOW: Command-line entry point for one import run.
# Used by: Operators loading spreadsheet/CSV exports into the database
# Steps:
# 1. parse_args() - Job name, source path and run options
# 2. Build the engine, check connectivity, optionally create tables
# 3. Run the import pipeline for the selected job
# 4. log_summary() - Report counts and diagnostics
#
# Exit codes: 0 = done, 1 = aborted (missing source or bad configuration),
# 2 = done with failed batches when --strict is given.
# Run one import at a time per table; concurrent runs are not coordinated.

"""
Command-line entry point for AM Explorer imports.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sqlalchemy.exc import SQLAlchemyError  # noqa: E402

from core.config import settings  # noqa: E402
from core.errors import ConfigurationError  # noqa: E402
from core.logging_config import configure_logging  # noqa: E402
from db.session import check_db_connection, create_db_engine, init_db  # noqa: E402
from etl.jobs import JOBS, get_job  # noqa: E402
from etl.pipeline import ImportPipeline, RunResult  # noqa: E402
from etl.sink import UpsertSink  # noqa: E402

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ABORTED = 1
EXIT_FAILED_BATCHES = 2


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Import AM market data from CSV/XLSX exports')
    parser.add_argument('job', choices=sorted(JOBS), help='Dataset to import')
    parser.add_argument('path', help='Source CSV or XLSX file')
    parser.add_argument('--sheet', help='Workbook sheet name (defaults to the job sheet)')
    parser.add_argument('--delimiter', choices=[',', ';'], help='CSV delimiter (sniffed when omitted)')
    parser.add_argument('--batch-size', type=int, default=settings.batch_size, help='Rows per upsert batch')
    parser.add_argument('--database-url', default=settings.database_url, help='SQLAlchemy database URL')
    parser.add_argument('--data-source', default=settings.data_source, help='Provenance tag stored on imported rows')
    parser.add_argument('--init-db', action='store_true', help='Create missing tables before importing')
    parser.add_argument('--strict', action='store_true', help='Exit non-zero when any batch fails')

    args = parser.parse_args(argv)
    if not 1 <= args.batch_size <= settings.max_batch_size:
        parser.error(f"--batch-size must be between 1 and {settings.max_batch_size}")
    return args


def log_summary(result: RunResult) -> None:
    """Log the outcome of a run."""
    logger.info(f"Import summary for '{result.job}' from {result.source}")
    logger.info(f"  Stage: {result.stage.value}")
    logger.info(f"  Rows read: {result.rows_read} (skipped {result.rows_skipped})")
    logger.info(f"  Entities: {result.entities}")
    for table, summary in result.tables.items():
        logger.info(f"  {table}: {summary.inserted} upserted, {summary.failed} failed in {summary.batches} batches")

    for diagnostic in result.diagnostics:
        level = logging.ERROR if diagnostic.level == "error" else logging.WARNING
        logger.log(level, f"  [{diagnostic.stage.value}] {diagnostic.message}")


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main import function.
    """
    args = parse_args(argv)
    configure_logging(settings.log_level, settings.log_json)

    run_settings = settings.model_copy(update={
        "database_url": args.database_url,
        "batch_size": args.batch_size,
        "data_source": args.data_source,
    })

    engine = create_db_engine(run_settings.database_url, echo=run_settings.debug)
    try:
        if not check_db_connection(engine):
            logger.error("Database is not reachable")
            return EXIT_ABORTED

        if args.init_db:
            init_db(engine)

        pipeline = ImportPipeline(get_job(args.job), UpsertSink(engine, run_settings.max_batch_size), run_settings)
        result = pipeline.run(args.path, sheet=args.sheet, delimiter=args.delimiter, batch_size=args.batch_size)

    except ConfigurationError as e:
        logger.error(f"Import configuration error: {e}")
        return EXIT_ABORTED
    except SQLAlchemyError as e:
        logger.error(f"Database error: {e}")
        return EXIT_ABORTED
    finally:
        engine.dispose()

    log_summary(result)

    if not result.ok:
        logger.error("Import aborted")
        return EXIT_ABORTED
    if args.strict and result.failed:
        logger.error(f"Import finished with {result.failed} rows in failed batches")
        return EXIT_FAILED_BATCHES

    logger.info("Import completed")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
