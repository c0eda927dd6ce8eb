# layer_indexer/database/tables/__init__.py

from .entity import DBEntity

__all__ = [
    'DBEntity',
]
