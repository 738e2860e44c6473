# WORKFLOW: Fold normalized rows into one entity per natural key.
# Used by: pipeline driver (aggregation stage), company import job
# Functions:
# 1. aggregate() - Group rows by key_fn and fold each group with fold_fn
# 2. merge_scalars() - First non-null value wins for scalar fields
# 3. append_unique() - Ordered distinct append for tag-like child lists
#
# Aggregation flow: NormalizedRows -> key_fn -> (new entity | existing entity) -> fold_fn -> entities in first-seen order
# Rows without a key are dropped. When rows disagree on a scalar, the first-seen
# value is kept; this is a simplification, not a data-quality judgment.

"""
Fold normalized rows into one entity per natural key.
"""

import logging
from typing import Any, Callable, Dict, Hashable, Iterable, List, Mapping, MutableMapping, Optional, TypeVar

logger = logging.getLogger(__name__)

Row = TypeVar("Row")
Entity = Dict[str, Any]

KeyFn = Callable[[Row], Optional[Hashable]]
FoldFn = Callable[[Optional[Entity], Row], Entity]


def _is_blank_key(key: Optional[Hashable]) -> bool:
    if key is None:
        return True
    if isinstance(key, str):
        return not key.strip()
    return False


def aggregate(rows: Iterable[Row], key_fn: KeyFn, fold_fn: FoldFn) -> List[Entity]:
    """
    Group rows by natural key and fold every group into one entity.

    fold_fn is called with (None, row) for the first row of a key and with
    (entity, row) for every later row; it returns the (new or updated) entity.

    Args:
        rows: Normalized rows in source order
        key_fn: Returns the natural key of a row, or None/blank to drop it
        fold_fn: Creates or extends the entity for a row

    Returns:
        Entities in first-seen key order
    """
    entities: Dict[Hashable, Entity] = {}
    dropped = 0

    for row in rows:
        key = key_fn(row)
        if _is_blank_key(key):
            dropped += 1
            continue
        entities[key] = fold_fn(entities.get(key), row)

    if dropped:
        logger.info(f"Dropped {dropped} rows without a natural key")
    logger.info(f"Aggregated rows into {len(entities)} entities")

    return list(entities.values())


def merge_scalars(entity: MutableMapping[str, Any], values: Mapping[str, Any]) -> MutableMapping[str, Any]:
    """
    Merge scalar values into an entity without overwriting existing values.

    Args:
        entity: Entity being built (updated in place)
        values: Candidate scalar values from the current row

    Returns:
        The same entity
    """
    for field, value in values.items():
        if value is None:
            continue
        if entity.get(field) is None:
            entity[field] = value
    return entity


def append_unique(items: List[Any], value: Any) -> List[Any]:
    """Append value to items unless it is None or already present."""
    if value is not None and value not in items:
        items.append(value)
    return items
