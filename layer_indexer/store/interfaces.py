# layer_indexer/store/interfaces.py
"""
Interface for entity persistence.

Entities are addressed by (entity type, string id). A save replaces the whole
record; there are no partial-field updates.
"""
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterator, List, Optional, Type, TypeVar

from ..types import Entity

E = TypeVar('E', bound=Entity)


class EntityStoreInterface(ABC):
    """Interface for entity store implementations."""

    @abstractmethod
    def load(self, entity_type: Type[E], entity_id: str) -> Optional[E]:
        """
        Load an entity by id.

        Returns:
            A fresh copy of the stored entity, or None when absent
        """
        pass

    @abstractmethod
    def save(self, entity: Entity) -> None:
        """Insert or replace an entity."""
        pass

    @abstractmethod
    def list_ids(self, entity_type: Type[E]) -> List[str]:
        """All stored ids for an entity type."""
        pass

    @contextmanager
    def transaction(self) -> Iterator['EntityStoreInterface']:
        """Scope for a single handler invocation. Stores without transactions just yield."""
        yield self
