# layer_indexer/store/__init__.py

from .interfaces import EntityStoreInterface
from .memory import InMemoryEntityStore
