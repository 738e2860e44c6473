# WORKFLOW: Link free-text company names to rows of the companies table.
# Used by: M&A and service pricing import jobs
# Matching order:
# 1. Case-insensitive exact match on the cleaned name
# 2. Containment match (one cleaned name contains the other)
# 3. rapidfuzz WRatio match above a threshold
#
# The companies index is loaded once per run, so matching never queries the
# database per row.

"""
Link free-text company names to rows of the companies table.
"""

import logging
from typing import Dict, Iterable, Optional, Tuple

from rapidfuzz import fuzz, process
from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from db.models import Company
from etl.normalizers import clean_company_name

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 90.0


class CompanyMatcher:
    """In-memory name -> id index over known companies."""

    def __init__(self, companies: Iterable[Tuple[int, str]], threshold: float = DEFAULT_THRESHOLD):
        self.threshold = threshold
        self._ids: Dict[str, int] = {}
        for company_id, name in companies:
            key = self._key(name)
            if key and key not in self._ids:
                self._ids[key] = company_id
        self._names = list(self._ids.keys())

    @classmethod
    def from_engine(cls, engine: Engine, threshold: float = DEFAULT_THRESHOLD) -> "CompanyMatcher":
        """
        Build a matcher from the companies table.

        An unreadable table yields an empty matcher, so every lookup misses
        and imports proceed with unlinked rows.
        """
        try:
            with engine.connect() as conn:
                rows = conn.execute(select(Company.id, Company.name)).all()
        except SQLAlchemyError as e:
            logger.warning(f"Could not load companies for matching: {e}")
            rows = []

        logger.info(f"Loaded {len(rows)} companies for name matching")
        return cls(rows, threshold=threshold)

    @staticmethod
    def _key(name: Optional[str]) -> Optional[str]:
        cleaned = clean_company_name(name)
        return cleaned.lower() if cleaned else None

    def match(self, name: Optional[str]) -> Optional[int]:
        """
        Find the id of a company by name.

        Args:
            name: Company name as written in the source

        Returns:
            Company id, or None if no match is good enough
        """
        key = self._key(name)
        if not key or not self._names:
            return None

        if key in self._ids:
            return self._ids[key]

        for known in self._names:
            if key in known or known in key:
                logger.debug(f"Partial match: '{name}' -> '{known}'")
                return self._ids[known]

        result = process.extractOne(key, self._names, scorer=fuzz.WRatio, score_cutoff=self.threshold)
        if result:
            known, score, _ = result
            logger.debug(f"Fuzzy match: '{name}' -> '{known}' ({score:.0f})")
            return self._ids[known]

        logger.debug(f"No company found for '{name}'")
        return None
