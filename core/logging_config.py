# WORKFLOW: Logging setup for import runs.
# Used by: scripts/run_import.py, scripts/extract_workbook.py
# Two layers:
# 1. stdlib logging - per-module loggers (logging.getLogger(__name__))
# 2. structlog - structured run/batch events from the pipeline and sink
#
# Both render through the same stdlib handlers so console output stays ordered.

import logging
import sys

import structlog


def configure_logging(level: str = "INFO", json_output: bool = False) -> None:
    """
    Configure stdlib logging and structlog for a CLI run.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ...)
        json_output: Render structlog events as JSON lines instead of console text
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stdout,
        force=True,
    )

    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
