# layer_indexer/database/base.py

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, text
from sqlalchemy.orm import declarative_base, declarative_mixin


ModelBase = declarative_base()

@declarative_mixin
class TimestampMixin:
    created_at = Column(
        DateTime(timezone=True), 
        nullable=False, 
        default=lambda: datetime.now(timezone.utc),
        server_default=text('CURRENT_TIMESTAMP')
    )
    
    updated_at = Column(
        DateTime(timezone=True), 
        nullable=False, 
        default=lambda: datetime.now(timezone.utc),
        server_default=text('CURRENT_TIMESTAMP'),
        onupdate=lambda: datetime.now(timezone.utc)
    )
