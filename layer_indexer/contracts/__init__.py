# layer_indexer/contracts/__init__.py

from .interfaces import ContractReaderInterface, ContractReverted
from .abi_loader import ABILoader
from .reader import Web3ContractReader
