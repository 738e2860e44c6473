# WORKFLOW: Source readers for XLSX workbooks and delimited text exports.
# Used by: pipeline driver (etl/pipeline.py), workbook extraction script
# Functions:
# 1. read_rows() - Dispatch on file extension to the workbook or CSV reader
# 2. read_csv_rows() - Lazily yield rows from a comma/semicolon separated file (csv module)
# 3. read_xlsx_rows() - Yield rows from one named workbook sheet
# 4. list_sheets() - List sheet names of a workbook
# 5. detect_delimiter() - Sniff ";" vs "," from the header line
#
# Read flow: File path -> Existence check -> csv/pandas reader -> Header cleanup -> RawRow dicts
# A missing file is fatal (SourceNotFoundError). A missing sheet or a short or malformed row is not.

"""
Source readers for XLSX workbooks and delimited text exports.
"""

import csv
import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

import pandas as pd

from core.errors import ConfigurationError, SourceNotFoundError
from etl.normalizers import clean_header

logger = logging.getLogger(__name__)

RawRow = Dict[str, Any]

WORKBOOK_EXTENSIONS = {".xlsx", ".xlsm", ".xls"}


def _require_file(path: Union[str, Path]) -> Path:
    source_path = Path(path).expanduser()
    if not source_path.is_file():
        raise SourceNotFoundError(source_path)
    return source_path


def _cell(value: Any) -> Any:
    """Convert a pandas cell to a plain Python value (NaN/NaT -> None)."""
    if value is None:
        return None
    if isinstance(value, pd.Timestamp):
        return None if pd.isna(value) else value.to_pydatetime()
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        return value
    if hasattr(value, "item"):
        return value.item()
    return value


def detect_delimiter(path: Union[str, Path]) -> str:
    """
    Guess the delimiter of a text export from its header line.

    Args:
        path: CSV file path

    Returns:
        ";" if the header has more semicolons than commas, otherwise ","
    """
    source_path = _require_file(path)
    with open(source_path, "r", encoding="utf-8-sig", errors="replace") as f:
        header = f.readline()
    return ";" if header.count(";") > header.count(",") else ","


def read_csv_rows(path: Union[str, Path], delimiter: str = ",") -> Iterator[RawRow]:
    """
    Lazily read a delimited text file into RawRows.

    Quoted fields may contain the delimiter. Blank lines are skipped and rows
    with fewer fields than the header, or that the csv module rejects (e.g. a
    field over the size limit), are dropped. The file is checked
    eagerly; rows are produced on iteration.

    Args:
        path: CSV file path
        delimiter: Field separator ("," or ";")

    Returns:
        Iterator of RawRow dicts keyed by cleaned header

    Raises:
        SourceNotFoundError: If the file does not exist
    """
    source_path = _require_file(path)
    return _iter_csv_rows(source_path, delimiter)


def _iter_csv_rows(source_path: Path, delimiter: str) -> Iterator[RawRow]:
    with source_path.open("r", encoding="utf-8-sig", errors="replace", newline="") as handle:
        reader = csv.reader(handle, delimiter=delimiter)
        headers = None
        dropped = 0
        while True:
            try:
                values = next(reader)
            except StopIteration:
                break
            except csv.Error as e:
                dropped += 1
                logger.warning(f"Dropped malformed row at line {reader.line_num} of {source_path}: {e}")
                continue

            if not any(v.strip() for v in values):
                continue
            if headers is None:
                headers = [clean_header(v) for v in values]
                continue
            if len(values) < len(headers):
                dropped += 1
                continue
            yield {header: value.strip() for header, value in zip(headers, values)}

    if dropped:
        logger.debug(f"Dropped {dropped} short or malformed rows from {source_path}")


def list_sheets(path: Union[str, Path]) -> List[str]:
    """Return the sheet names of a workbook."""
    source_path = _require_file(path)
    with pd.ExcelFile(source_path) as workbook:
        return list(workbook.sheet_names)


def read_xlsx_rows(path: Union[str, Path], sheet: str) -> Iterator[RawRow]:
    """
    Read one sheet of a workbook into RawRows.

    Args:
        path: Workbook path
        sheet: Sheet name

    Returns:
        Iterator of RawRow dicts; empty if the sheet does not exist

    Raises:
        SourceNotFoundError: If the workbook does not exist
    """
    source_path = _require_file(path)

    with pd.ExcelFile(source_path) as workbook:
        if sheet not in workbook.sheet_names:
            logger.warning(f"Sheet '{sheet}' not found in {source_path}; available: {workbook.sheet_names}")
            return iter(())
        df = workbook.parse(sheet_name=sheet)

    df = df.dropna(how='all')
    df.columns = [clean_header(c) for c in df.columns]
    logger.info(f"Read sheet '{sheet}' from {source_path}: {df.shape}")
    return _iter_frame_rows(df)


def _iter_frame_rows(df: pd.DataFrame) -> Iterator[RawRow]:
    columns = list(df.columns)
    for values in df.itertuples(index=False, name=None):
        yield {column: _cell(value) for column, value in zip(columns, values)}


def read_rows(
    path: Union[str, Path],
    sheet: Optional[str] = None,
    delimiter: Optional[str] = None,
) -> Iterator[RawRow]:
    """
    Read RawRows from a workbook sheet or a delimited text file.

    Args:
        path: Source file path
        sheet: Sheet name (workbooks only)
        delimiter: Field separator (text files only); sniffed when omitted

    Returns:
        Iterator of RawRow dicts

    Raises:
        SourceNotFoundError: If the file does not exist
        ConfigurationError: If a workbook is given without a sheet name
    """
    source_path = _require_file(path)

    if source_path.suffix.lower() in WORKBOOK_EXTENSIONS:
        if not sheet:
            raise ConfigurationError(f"A sheet name is required to read workbook {source_path}")
        return read_xlsx_rows(source_path, sheet)

    return read_csv_rows(source_path, delimiter or detect_delimiter(source_path))
