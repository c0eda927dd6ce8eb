# layer_indexer/__init__.py

import logging
import os
from pathlib import Path
from typing import Mapping, Optional

from .core.container import IndexerContainer
from .core.config import IndexerConfig
from .core.logging import IndexerLogger, log_with_context
from .clients import RpcClient
from .contracts import ABILoader, ContractReaderInterface, Web3ContractReader
from .database import DatabaseManager, SqlEntityStore
from .decode import LogDecoder
from .handlers import ControlTokenHandler
from .pipeline import IndexingPipeline
from .services import IndexingContext
from .store import EntityStoreInterface
from .types import ConfigurationError


def create_indexer(env_vars: Optional[Mapping[str, str]] = None, **overrides) -> IndexerContainer:
    if env_vars is None:
        from dotenv import load_dotenv
        load_dotenv()
        env_vars = os.environ
    _configure_logging_early(env_vars)

    logger = IndexerLogger.get_logger('core.init')
    logger.info("Creating indexer instance")

    config = IndexerConfig.from_env(env_vars, **overrides)
    container = IndexerContainer(config)
    _register_services(container)

    log_with_context(logger, logging.INFO, "Indexer created successfully",
                    contract_address=config.contract.address,
                    database_url=config.database.url.split('@')[-1])
    return container


def _configure_logging_early(env: Mapping[str, str]) -> None:
    log_dir_env = env.get("INDEXER_LOG_DIR")
    log_dir = Path(log_dir_env) if log_dir_env else Path.cwd() / "logs"

    IndexerLogger.configure(
        log_dir=log_dir,
        log_level=env.get("INDEXER_LOG_LEVEL", "INFO"),
        console_enabled=env.get("INDEXER_LOG_CONSOLE", "true").lower() == "true",
        file_enabled=env.get("INDEXER_LOG_FILE", "false").lower() == "true",
        structured_format=env.get("INDEXER_LOG_STRUCTURED", "false").lower() == "true",
    )


def _register_services(container: IndexerContainer) -> None:
    logger = IndexerLogger.get_logger('core.services')
    logger.debug("Registering services in container")

    container.register_factory(DatabaseManager, _create_database_manager)
    container.register_factory(EntityStoreInterface, _create_entity_store)

    container.register_factory(ABILoader, _create_abi_loader)
    container.register_factory(RpcClient, _create_rpc_client)
    container.register_factory(ContractReaderInterface, _create_contract_reader)
    container.register_factory(LogDecoder, _create_log_decoder)

    container.register_factory(IndexingContext, _create_indexing_context)
    container.register_factory(ControlTokenHandler, _create_handler)
    container.register_factory(IndexingPipeline, _create_pipeline)

    logger.debug("Service registration completed")


def _create_database_manager(container: IndexerContainer) -> DatabaseManager:
    db_manager = DatabaseManager(container.config.database)
    db_manager.initialize()
    return db_manager


def _create_entity_store(container: IndexerContainer) -> EntityStoreInterface:
    return SqlEntityStore(container.get(DatabaseManager))


def _create_abi_loader(container: IndexerContainer) -> ABILoader:
    abi_dir = container.config.contract.abi_dir
    return ABILoader(Path(abi_dir) if abi_dir else None)


def _load_contract_abi(container: IndexerContainer) -> list:
    contract = container.config.contract
    loader = container.get(ABILoader)
    abi = loader.load_abi(contract.abi_file) if contract.abi_file else loader.load_abi()
    if not abi:
        raise ConfigurationError("Contract ABI could not be loaded")
    return abi


def _create_rpc_client(container: IndexerContainer) -> RpcClient:
    rpc = container.config.rpc
    if rpc is None:
        raise ConfigurationError("INDEXER_RPC_URL environment variable required")
    return RpcClient(rpc)


def _create_contract_reader(container: IndexerContainer) -> ContractReaderInterface:
    rpc_client = container.get(RpcClient)
    return Web3ContractReader(rpc_client.w3, container.config.contract.address,
                              _load_contract_abi(container))


def _create_log_decoder(container: IndexerContainer) -> LogDecoder:
    return LogDecoder(_load_contract_abi(container), container.config.contract.address)


def _create_indexing_context(container: IndexerContainer) -> IndexingContext:
    return IndexingContext(
        store=container.get(EntityStoreInterface),
        reader=container.get(ContractReaderInterface),
        contract_version=container.config.contract.version,
    )


def _create_handler(container: IndexerContainer) -> ControlTokenHandler:
    return ControlTokenHandler(container.get(IndexingContext))


def _create_pipeline(container: IndexerContainer) -> IndexingPipeline:
    context = container.get(IndexingContext)
    return IndexingPipeline(
        store=context.store,
        reader=context.reader,
        handler=container.get(ControlTokenHandler),
        decoder=container.get(LogDecoder),
        rpc_client=container.get(RpcClient),
        contract_address=container.config.contract.address,
    )
