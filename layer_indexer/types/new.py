# layer_indexer/types/new.py

from typing import NewType

EvmAddress = NewType('EvmAddress', str)   # lower-case 0x-prefixed hex
EvmHash = NewType('EvmHash', str)         # 0x-prefixed transaction hash
EntityId = NewType('EntityId', str)
ErrorId = NewType('ErrorId', str)
