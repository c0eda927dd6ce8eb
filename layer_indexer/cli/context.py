# layer_indexer/cli/context.py

"""
CLI context

Builds the indexer container on first use so commands that only need the
database never touch the RPC endpoint.
"""

import logging
from typing import Optional

from .. import create_indexer
from ..core.container import IndexerContainer
from ..core.logging import IndexerLogger, log_with_context
from ..database import DatabaseManager
from ..store import EntityStoreInterface


class CLIContext:

    def __init__(self):
        self.logger = IndexerLogger.get_logger('cli.context')
        self._container: Optional[IndexerContainer] = None
        self.overrides = {}

    @property
    def container(self) -> IndexerContainer:
        if self._container is None:
            self._container = create_indexer(**self.overrides)
        return self._container

    def get(self, service_type):
        return self.container.get(service_type)

    @property
    def store(self) -> EntityStoreInterface:
        return self.container.get(EntityStoreInterface)

    @property
    def db_manager(self) -> DatabaseManager:
        return self.container.get(DatabaseManager)

    def shutdown(self):
        if self._container is None:
            return
        if self._container.has_instance(DatabaseManager):
            self._container.get(DatabaseManager).shutdown()
        log_with_context(self.logger, logging.DEBUG, "CLIContext shutdown completed")
