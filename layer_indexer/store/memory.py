# layer_indexer/store/memory.py

from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Tuple, Type

import msgspec

from .interfaces import EntityStoreInterface, E
from ..types import Entity
from ..core.logging import LoggingMixin


class InMemoryEntityStore(EntityStoreInterface, LoggingMixin):
    """
    Dict-backed store holding msgpack-encoded records.

    Records are encoded on save and decoded on load so callers never share
    an instance with the store.
    """

    def __init__(self):
        self._records: Dict[Tuple[str, str], bytes] = {}
        self._encoder = msgspec.msgpack.Encoder()
        self.load_count = 0
        self.save_count = 0

    def load(self, entity_type: Type[E], entity_id: str) -> Optional[E]:
        self.load_count += 1
        raw = self._records.get((entity_type.entity_type(), str(entity_id)))
        if raw is None:
            return None
        return msgspec.msgpack.decode(raw, type=entity_type)

    def save(self, entity: Entity) -> None:
        self.save_count += 1
        self._records[(entity.entity_type(), entity.id)] = self._encoder.encode(entity)

    def list_ids(self, entity_type: Type[E]) -> List[str]:
        name = entity_type.entity_type()
        return [entity_id for (kind, entity_id) in self._records if kind == name]

    @contextmanager
    def transaction(self) -> Iterator['InMemoryEntityStore']:
        snapshot = dict(self._records)
        try:
            yield self
        except Exception:
            self._records = snapshot
            self.log_debug("In-memory transaction rolled back", record_count=len(snapshot))
            raise

    def __len__(self) -> int:
        return len(self._records)
