# layer_indexer/types/configs/config.py

from typing import Optional

from msgspec import Struct

from ..new import EvmAddress


class DatabaseConfig(Struct):
    url: str
    pool_size: int = 5
    max_overflow: int = 10

class RpcConfig(Struct):
    endpoint_url: str
    timeout: int = 30

class ContractConfig(Struct):
    address: EvmAddress
    version: int = 2
    abi_dir: Optional[str] = None
    abi_file: Optional[str] = None
    block_created: Optional[int] = None

class LoggingConfig(Struct):
    log_dir: Optional[str] = None
    log_level: str = "INFO"
    console_enabled: bool = True
    file_enabled: bool = False
    structured_format: bool = False
