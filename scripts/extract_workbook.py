# WORKFLOW: Export every sheet of a vendor workbook to CSV and JSON.
# Used by: Operators preparing source files for scripts/run_import.py
# Functions:
# 1. safe_sheet_name() - File-system safe name for a sheet
# 2. extract_workbook() - Write <sheet>.csv and <sheet>.json per sheet
#
# Extraction flow: XLSX -> list sheets -> pandas DataFrame per sheet -> CSV + JSON records

"""
Export every sheet of a workbook to CSV and JSON.
"""

import argparse
import logging
import re
import sys
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from core.config import settings  # noqa: E402
from core.errors import SourceNotFoundError  # noqa: E402
from core.logging_config import configure_logging  # noqa: E402
from etl.normalizers import clean_header  # noqa: E402
from etl.source_reader import list_sheets  # noqa: E402

logger = logging.getLogger(__name__)


def safe_sheet_name(sheet: str) -> str:
    return re.sub(r"[^a-zA-Z0-9]", "_", sheet)


def extract_workbook(workbook_path: Path, output_dir: Path) -> Dict[str, int]:
    """
    Write each sheet of a workbook as CSV and JSON records.

    Args:
        workbook_path: Source XLSX file
        output_dir: Directory for the extracted files (created if missing)

    Returns:
        Mapping of sheet name to row count

    Raises:
        SourceNotFoundError: If the workbook does not exist
    """
    sheets = list_sheets(workbook_path)
    output_dir.mkdir(parents=True, exist_ok=True)
    logger.info(f"Found sheets: {sheets}")

    row_counts = {}
    for index, sheet in enumerate(sheets, start=1):
        df = pd.read_excel(workbook_path, sheet_name=sheet)
        df.columns = [clean_header(c) for c in df.columns]
        row_counts[sheet] = len(df)
        logger.info(f"Processing sheet {index}: '{sheet}' ({df.shape[0]} rows, {df.shape[1]} columns)")

        stem = output_dir / safe_sheet_name(sheet)
        df.to_csv(stem.with_suffix(".csv"), index=False)
        df.to_json(stem.with_suffix(".json"), orient="records", date_format="iso", indent=2)
        logger.info(f"  Saved {stem}.csv and {stem}.json")

    return row_counts


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description='Extract workbook sheets to CSV and JSON')
    parser.add_argument('workbook', help='Path to the XLSX workbook')
    parser.add_argument('--output-dir', default=str(Path(settings.data_dir) / 'extracted'), help='Output directory')
    args = parser.parse_args(argv)

    configure_logging(settings.log_level, settings.log_json)

    try:
        extract_workbook(Path(args.workbook), Path(args.output_dir))
    except SourceNotFoundError as e:
        logger.error(f"{e}. Provide the workbook path as the first argument.")
        return 1

    logger.info(f"Workbook extraction completed: {args.output_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
