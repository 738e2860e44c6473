# WORKFLOW: Field normalization rules for spreadsheet and CSV imports.
# Used by: row schemas (etl/schemas.py), import jobs, company matching
# Functions:
# 1. trim_or_null() - Trim strings, map blank/"-"/"n/a" to None
# 2. to_number() / to_int() - Strip currency and unit noise, parse numbers
# 3. to_date() / parse_month_year() - Parse dates from mixed formats
# 4. enum_canonicalize() - Map value variants through an alias table
# 5. normalize_process() / normalize_material_class() - Classify AM processes and materials
# 6. clean_company_name() / clean_header() - Name and header cleanup
#
# Every rule is total: bad input degrades to None (or passes through unchanged
# for enums) and never raises, so one bad cell cannot block a whole import.

"""
Field normalization rules for spreadsheet and CSV imports.
"""

import math
import re
from datetime import MAXYEAR, MINYEAR, date, datetime
from typing import Any, Dict, Optional

import pandas as pd

NULL_TOKENS = {"", "-", "n/a"}

_NUMBER_NOISE = re.compile(r"[^0-9.\-]")
_FIRST_INT = re.compile(r"\d+")
_INVISIBLE_CHARS = re.compile("[\\u200b\\u200e\\u200f\\u2060\\ufeff]")
_SPACE_CHARS = re.compile("[\\u00a0\\u2009\\u200a\\u202f\\u205f]")

MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}

COUNTRY_ALIASES: Dict[str, str] = {
    "u.s.": "United States",
    "us": "United States",
    "usa": "United States",
    "united states of america": "United States",
    "u.k.": "United Kingdom",
    "uk": "United Kingdom",
    "korea, rep.": "South Korea",
    "republic of korea": "South Korea",
    "korea (republic of)": "South Korea",
    "korea, dem. people's rep.": "North Korea",
    "korea, democratic people's republic of": "North Korea",
    "russian federation": "Russia",
    "viet nam": "Vietnam",
    "czechia": "Czech Republic",
    "people's republic of china": "China",
    "mainland china": "China",
    "china, mainland": "China",
    "prc": "China",
    "taiwan, province of china": "Taiwan",
    "taiwan (province of china)": "Taiwan",
    "chinese taipei": "Taiwan",
}

COUNT_TYPE_ALIASES: Dict[str, str] = {
    "estimate": "Estimated",
    "estimated": "Estimated",
    "minimum": "Minimum",
    "min": "Minimum",
    "exact": "Exact",
    "actual": "Exact",
}

SEGMENT_ALIASES: Dict[str, str] = {
    "printing services": "Printing services",
    "printing service provider": "Printing services",
    "system manufacturer": "Printer sales & servicing",
    "systems manufacturer": "Printer sales & servicing",
    "materials": "Materials",
    "material": "Materials",
    "material provider": "Materials",
    "materials provider": "Materials",
    "software": "Software",
    "total": "Total",
}


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return value is pd.NaT


def trim_or_null(value: Any) -> Optional[str]:
    """
    Trim a cell value to a clean string.

    Args:
        value: Raw cell value

    Returns:
        Trimmed string, or None for blank, "-" and "n/a" (any case)
    """
    if _is_missing(value):
        return None
    text = str(value).strip()
    if text.lower() in NULL_TOKENS:
        return None
    return text


def to_number(value: Any) -> Optional[float]:
    """
    Parse a numeric cell, stripping currency symbols, commas and unit suffixes.

    Args:
        value: Raw cell value (e.g. "$1,250.00", "86.34", "12 kg", 42)

    Returns:
        Finite float, or None when nothing numeric remains
    """
    if _is_missing(value) or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else None

    cleaned = _NUMBER_NOISE.sub("", str(value))
    if not cleaned:
        return None
    try:
        number = float(cleaned)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def to_int(value: Any) -> Optional[int]:
    """Parse a numeric cell and truncate it to an int."""
    number = to_number(value)
    if number is None:
        return None
    return int(number)


def to_date(value: Any) -> Optional[date]:
    """
    Parse a date cell.

    Native datetime/date values are accepted as-is; strings go through
    pandas' generic parser.

    Args:
        value: Raw cell value

    Returns:
        Parsed date, or None if unparseable
    """
    if _is_missing(value):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = trim_or_null(value)
    if text is None:
        return None
    try:
        parsed = pd.to_datetime(text, errors="coerce")
    except (ValueError, TypeError, OverflowError):
        return None
    if _is_missing(parsed) or pd.isna(parsed):
        return None
    return parsed.date()


def parse_month_year(value: Any) -> Optional[date]:
    """
    Parse "MMM YY" deal dates (e.g. "Feb 24") to the first day of the month.

    Two-digit years below 50 are 20xx, others 19xx; years outside 1..9999 give
    None. Anything else falls back to to_date().
    """
    text = trim_or_null(value)
    if text is None:
        return to_date(value)

    parts = text.split()
    if len(parts) == 2:
        month = MONTHS.get(parts[0][:3].lower())
        year_text = parts[1].strip("'")
        if month and year_text.isdigit():
            year = int(year_text)
            if len(year_text) <= 2:
                year += 2000 if year < 50 else 1900
            if not MINYEAR <= year <= MAXYEAR:
                return None
            return date(year, month, 1)

    return to_date(value)


def parse_lead_time(value: Any) -> Optional[int]:
    """Return the first integer in a lead time value ("5-7 days" -> 5)."""
    if _is_missing(value) or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value) if math.isfinite(value) else None
    match = _FIRST_INT.search(str(value))
    return int(match.group(0)) if match else None


def enum_canonicalize(value: Any, aliases: Dict[str, str]) -> Optional[str]:
    """
    Map a value through an alias table.

    The lookup is on the trimmed, lowercased value. Unmapped values are
    returned trimmed but otherwise unchanged.

    Args:
        value: Raw cell value
        aliases: Lowercase variant -> canonical value

    Returns:
        Canonical value, the trimmed input if unmapped, or None if blank
    """
    text = trim_or_null(value)
    if text is None:
        return None
    return aliases.get(text.lower(), text)


def canonical_country(value: Any) -> Optional[str]:
    return enum_canonicalize(value, COUNTRY_ALIASES)


def canonical_count_type(value: Any) -> Optional[str]:
    return enum_canonicalize(value, COUNT_TYPE_ALIASES)


def canonical_segment(value: Any) -> Optional[str]:
    return enum_canonicalize(value, SEGMENT_ALIASES)


def normalize_material_class(value: Any) -> Optional[str]:
    """Classify a free-text material type into a coarse material class."""
    text = trim_or_null(value)
    if text is None:
        return None
    v = text.lower()
    if v.startswith("metal"):
        return "Metal"
    if v.startswith("polymer") or v in ("plastic", "resin"):
        return "Polymer"
    if v.startswith("ceramic"):
        return "Ceramic"
    if v.startswith("sand"):
        return "Sand"
    if "composite" in v or "carbon" in v:
        return "Composite"
    if "concrete" in v or "cement" in v:
        return "Concrete"
    if "bio" in v or "tissue" in v:
        return "Bio"
    return "Other"


def normalize_process(value: Any) -> Optional[str]:
    """
    Classify a free-text process label into an AM process family.

    Args:
        value: Process label (e.g. "SLS", "DED - Laser", "FDM")

    Returns:
        Process family name, "Unknown" if unrecognised, None if blank
    """
    text = trim_or_null(value)
    if text is None:
        return None
    v = text.lower()
    if "bjt" in v or "binder" in v:
        return "Binder Jetting"
    if "cold spray" in v:
        return "Cold Spray"
    if v.startswith("ded") or "directed energy deposition" in v:
        if "arc" in v or "wire" in v:
            return "DED (Arc/Wire)"
        if "laser" in v:
            return "DED (Laser)"
        return "Directed Energy Deposition"
    if "pbf" in v:
        if "eb" in v:
            return "PBF-EB (Metal)"
        if "lb/p" in v or "polymer" in v:
            return "PBF-LB (Polymer)"
        return "PBF-LB (Metal)"
    if "slm" in v:
        return "PBF-LB (Metal)"
    if "sls" in v:
        return "PBF-LB (Polymer)"
    if any(token in v for token in ("mex", "fdm", "fff", "material extrusion")):
        return "Material Extrusion"
    if any(token in v for token in ("vpp", "sla", "dlp", "vat")):
        return "Vat Photopolymerization"
    if "mj" in v or "material jetting" in v:
        return "Material Jetting"
    return "Unknown"


def clean_company_name(value: Any) -> Optional[str]:
    """
    Clean a company name for matching.

    Collapses whitespace, drops quotes, a trailing parenthetical such as a
    ticker ("(NAS: ALGN)") and anything after the first comma.
    """
    text = trim_or_null(value)
    if text is None:
        return None
    text = re.sub(r"\s+", " ", text)
    text = re.sub(r"['\"]", "", text)
    text = re.sub(r"\s*\([^)]*\)\s*$", "", text)
    text = re.sub(r"\s*,.*$", "", text)
    return text.strip() or None


def clean_header(value: Any) -> str:
    """Strip whitespace, non-breaking spaces and zero-width marks from a header."""
    text = _INVISIBLE_CHARS.sub("", str(value))
    text = _SPACE_CHARS.sub(" ", text)
    return re.sub(r"\s+", " ", text).strip()
