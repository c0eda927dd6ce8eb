# layer_indexer/database/entity_store.py

from contextlib import contextmanager
from typing import Iterator, List, Optional, Type

import msgspec
from sqlalchemy.orm import Session

from ..store.interfaces import EntityStoreInterface, E
from ..types import Entity
from ..core.logging import IndexerLogger, log_with_context, DEBUG, ERROR
from .connection import DatabaseManager
from .tables import DBEntity


class SqlEntityStore(EntityStoreInterface):
    """
    Entity store backed by the ``entities`` table.

    Inside ``transaction()`` every load and save shares one session and the
    whole handler invocation commits or rolls back together. Outside of it
    each call runs in its own short transaction.
    """

    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager
        self.logger = IndexerLogger.get_logger('database.entity_store')
        self._session: Optional[Session] = None
        self._encoder = msgspec.json.Encoder()

    @contextmanager
    def _use_session(self) -> Iterator[Session]:
        if self._session is not None:
            yield self._session
            return
        with self.db_manager.get_transaction() as session:
            yield session

    @contextmanager
    def transaction(self) -> Iterator['SqlEntityStore']:
        if self._session is not None:
            # Nested scopes join the outer transaction
            yield self
            return

        with self.db_manager.get_transaction() as session:
            self._session = session
            try:
                yield self
            finally:
                self._session = None

    def load(self, entity_type: Type[E], entity_id: str) -> Optional[E]:
        with self._use_session() as session:
            row = session.get(DBEntity, (entity_type.entity_type(), str(entity_id)))
            if row is None:
                return None
            try:
                return msgspec.json.decode(row.payload, type=entity_type)
            except msgspec.ValidationError as e:
                log_with_context(self.logger, ERROR, "Stored entity failed validation",
                                entity_type=entity_type.entity_type(),
                                entity_id=entity_id,
                                error=str(e))
                raise

    def save(self, entity: Entity) -> None:
        payload = self._encoder.encode(entity).decode()
        with self._use_session() as session:
            session.merge(DBEntity(
                entity_type=entity.entity_type(),
                entity_id=entity.id,
                payload=payload,
            ))
            log_with_context(self.logger, DEBUG, "Entity saved",
                            entity_type=entity.entity_type(),
                            entity_id=entity.id)

    def list_ids(self, entity_type: Type[E]) -> List[str]:
        with self._use_session() as session:
            rows = session.query(DBEntity.entity_id).filter(
                DBEntity.entity_type == entity_type.entity_type()
            ).order_by(DBEntity.entity_id).all()
            return [row[0] for row in rows]
