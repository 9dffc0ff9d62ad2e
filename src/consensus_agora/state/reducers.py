"""Custom state reducers for Consensus Agora state management.

This module provides the reducer functions used to merge updates into
the meeting state. Reducers never mutate their inputs.
"""

from typing import Any, Dict, List, Optional

from consensus_agora.utils.logging import get_logger

logger = get_logger(__name__)


def append_items(current_list: Optional[List[Any]], new_items: Any) -> List[Any]:
    """Append one item or a batch of items to a list.

    Args:
        current_list: Current list value (may be None)
        new_items: A single item or a list of items

    Returns:
        New list with the items appended
    """
    current = list(current_list) if current_list is not None else []
    if new_items is None:
        return current
    if isinstance(new_items, list):
        return current + new_items
    return current + [new_items]


def increment_counter(existing: Optional[int], increment: Optional[int]) -> int:
    """Increment a counter value.

    Args:
        existing: Current counter value
        increment: Value to add

    Returns:
        New counter value
    """
    if existing is None:
        existing = 0

    if increment is None:
        return existing

    if increment < 0:
        raise ValueError(f"Counters never decrease (got increment {increment})")

    return existing + increment


def merge_task_store(
    existing: Optional[Dict[str, Any]], updates: Optional[Dict[str, Any]]
) -> Dict[str, Any]:
    """Merge task results keyed by task id.

    Task ids are unique per dispatch, so merges are a disjoint-key union.
    A colliding key is overwritten by the update (last writer wins).

    Args:
        existing: Current task store
        updates: Task results to merge in

    Returns:
        New merged task store
    """
    merged = dict(existing) if existing else {}
    if not updates:
        return merged

    collisions = merged.keys() & updates.keys()
    if collisions:
        logger.warning(
            f"Overwriting task store entries for re-dispatched tasks: {sorted(collisions)}"
        )

    merged.update(updates)
    return merged
