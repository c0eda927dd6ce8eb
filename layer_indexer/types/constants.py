# layer_indexer/types/constants.py

from .new import EvmAddress, EntityId

ZERO_ADDRESS = EvmAddress("0x0000000000000000000000000000000000000000")

GLOBAL_STATE_ID = EntityId("MASTER")

DEFAULT_CONTRACT_VERSION = 2
