# layer_indexer/core/config.py

import os
import logging
from typing import Mapping, Optional

from msgspec import Struct

from ..types import (
    ConfigurationError,
    ContractConfig,
    DatabaseConfig,
    DEFAULT_CONTRACT_VERSION,
    LoggingConfig,
    RpcConfig,
)
from ..types.ids import normalize_address
from .logging import IndexerLogger, log_with_context

DEFAULT_DB_URL = "sqlite:///layer_indexer.db"
DEFAULT_BATCH_SIZE = 2000


def _env_flag(env: Mapping[str, str], key: str, default: bool) -> bool:
    value = env.get(key)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(env: Mapping[str, str], key: str, default: Optional[int] = None) -> Optional[int]:
    value = env.get(key)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{key} must be an integer, got {value!r}")


class IndexerConfig(Struct):
    database: DatabaseConfig
    contract: ContractConfig
    logging_config: LoggingConfig
    rpc: Optional[RpcConfig] = None
    start_block: int = 0
    batch_size: int = DEFAULT_BATCH_SIZE

    @classmethod
    def from_env(cls, env_vars: Optional[Mapping[str, str]] = None, **overrides) -> 'IndexerConfig':
        """
        Build configuration from INDEXER_* environment variables.

        A ``.env`` file in the working directory is loaded first when reading
        the process environment. Keyword overrides replace top-level fields.
        """
        logger = IndexerLogger.get_logger('core.config')

        if env_vars is None:
            from dotenv import load_dotenv
            load_dotenv()
            env = os.environ
        else:
            env = env_vars

        address = env.get("INDEXER_CONTRACT_ADDRESS")
        if not address:
            raise ConfigurationError("INDEXER_CONTRACT_ADDRESS environment variable required")

        config = cls(
            database=cls._create_database_config(env),
            contract=ContractConfig(
                address=normalize_address(address),
                version=_env_int(env, "INDEXER_CONTRACT_VERSION", DEFAULT_CONTRACT_VERSION),
                abi_dir=env.get("INDEXER_ABI_DIR"),
                abi_file=env.get("INDEXER_ABI_FILE"),
                block_created=_env_int(env, "INDEXER_START_BLOCK"),
            ),
            logging_config=cls._create_logging_config(env),
            rpc=cls._create_rpc_config(env),
            start_block=_env_int(env, "INDEXER_START_BLOCK", 0),
            batch_size=_env_int(env, "INDEXER_BATCH_SIZE", DEFAULT_BATCH_SIZE),
        )

        for key, value in overrides.items():
            if not hasattr(config, key):
                raise ConfigurationError(f"Unknown configuration override: {key}")
            setattr(config, key, value)

        if config.batch_size < 1:
            raise ConfigurationError("INDEXER_BATCH_SIZE must be positive")

        log_with_context(logger, logging.INFO, "Configuration loaded",
                        contract_address=config.contract.address,
                        contract_version=config.contract.version,
                        has_rpc=config.rpc is not None,
                        start_block=config.start_block)
        return config

    @staticmethod
    def _create_database_config(env: Mapping[str, str]) -> DatabaseConfig:
        return DatabaseConfig(
            url=env.get("INDEXER_DB_URL", DEFAULT_DB_URL),
            pool_size=_env_int(env, "INDEXER_DB_POOL_SIZE", 5),
            max_overflow=_env_int(env, "INDEXER_DB_MAX_OVERFLOW", 10),
        )

    @staticmethod
    def _create_rpc_config(env: Mapping[str, str]) -> Optional[RpcConfig]:
        endpoint_url = env.get("INDEXER_RPC_URL")
        if not endpoint_url:
            return None
        return RpcConfig(
            endpoint_url=endpoint_url,
            timeout=_env_int(env, "INDEXER_RPC_TIMEOUT", 30),
        )

    @staticmethod
    def _create_logging_config(env: Mapping[str, str]) -> LoggingConfig:
        return LoggingConfig(
            log_dir=env.get("INDEXER_LOG_DIR"),
            log_level=env.get("INDEXER_LOG_LEVEL", "INFO"),
            console_enabled=_env_flag(env, "INDEXER_LOG_CONSOLE", True),
            file_enabled=_env_flag(env, "INDEXER_LOG_FILE", False),
            structured_format=_env_flag(env, "INDEXER_LOG_STRUCTURED", False),
        )
