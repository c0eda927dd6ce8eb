# layer_indexer/database/tables/entity.py

from sqlalchemy import Column, String, Text, Index

from ..base import ModelBase, TimestampMixin


class DBEntity(ModelBase, TimestampMixin):
    """One row per domain entity; payload is the msgspec JSON encoding"""
    __tablename__ = 'entities'

    entity_type = Column(String(64), primary_key=True)
    entity_id = Column(String(255), primary_key=True)
    payload = Column(Text, nullable=False)

    __table_args__ = (
        Index('idx_entities_type', 'entity_type'),
    )

    def __repr__(self) -> str:
        return f"<DBEntity({self.entity_type}:{self.entity_id})>"
