# layer_indexer/database/__init__.py

from .connection import DatabaseManager
from .entity_store import SqlEntityStore
from .tables import DBEntity
