# layer_indexer/types/ids.py
"""
Composite entity ids.

Ids are built by string concatenation so records written by earlier
deployments of the subgraph stay addressable.
"""

from .new import EntityId, EvmAddress, EvmHash
from .constants import ZERO_ADDRESS


def normalize_address(address) -> EvmAddress:
    if address is None:
        return ZERO_ADDRESS
    if isinstance(address, (bytes, bytearray)):
        address = "0x" + bytes(address).hex()
    return EvmAddress(str(address).lower())


def normalize_hash(tx_hash) -> EvmHash:
    if isinstance(tx_hash, (bytes, bytearray)):
        tx_hash = bytes(tx_hash).hex()
    tx_hash = str(tx_hash).lower()
    if not tx_hash.startswith("0x"):
        tx_hash = "0x" + tx_hash
    return EvmHash(tx_hash)


def token_id(token: int) -> EntityId:
    return EntityId(str(token))


def master_id(token: int) -> EntityId:
    return EntityId(f"{token}-Master")


def controller_id(token: int) -> EntityId:
    return EntityId(f"{token}-Controller")


def lever_id(token: int, lever: int) -> EntityId:
    return EntityId(f"{token}-{lever}")


def layer_update_id(token: int, update_number: int) -> EntityId:
    return EntityId(f"{token}-{update_number}")


def bid_id(token: int, tx_hash: EvmHash) -> EntityId:
    return EntityId(f"{token}-{tx_hash}")


def sale_id(token: int, sale_number: int) -> EntityId:
    return EntityId(f"{token}-{sale_number}")


def transfer_id(token: int, tx_hash: EvmHash) -> EntityId:
    return EntityId(f"{token}-{tx_hash}")


def event_params_id(tx_hash: EvmHash, event_index: int) -> EntityId:
    return EntityId(f"{tx_hash}-{event_index}")


def event_param_id(tx_hash: EvmHash, event_index: int, param_index: int) -> EntityId:
    return EntityId(f"{tx_hash}-{event_index}-{param_index}")


def cursor_id(contract_address: EvmAddress) -> EntityId:
    return EntityId(normalize_address(contract_address))
