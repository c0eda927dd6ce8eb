# layer_indexer/utils/collections.py
"""
Helpers for entity id lists that behave as insertion-ordered sets
"""

from typing import Iterable, List, TypeVar

T = TypeVar('T')


def append_unique(items: List[T], value: T) -> bool:
    """Append value unless already present. Returns True if appended."""
    if value in items:
        return False
    items.append(value)
    return True


def extend_unique(items: List[T], values: Iterable[T]) -> int:
    added = 0
    for value in values:
        if append_unique(items, value):
            added += 1
    return added


def remove_value(items: List[T], value: T) -> bool:
    if value in items:
        items.remove(value)
        return True
    return False
