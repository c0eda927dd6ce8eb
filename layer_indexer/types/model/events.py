# layer_indexer/types/model/events.py
"""
Typed contract events.

Each event carries the log envelope (transaction, block, position) plus the
decoded parameters. ``PARAMS`` lists the parameters in ABI order as
``(abi_name, attribute, abi_type)`` and drives both decoding and the audit
trail.
"""

from typing import ClassVar, List, Tuple, Union

import msgspec
from msgspec import Struct

from ..new import EvmAddress, EvmHash


class ContractEvent(Struct, kw_only=True, tag=True):
    tx_hash: EvmHash
    log_index: int
    block_number: int
    timestamp: int
    contract_address: EvmAddress
    gas_price: int = 0
    gas_used: int = 0

    PARAMS: ClassVar[Tuple[Tuple[str, str, str], ...]] = ()

    @property
    def name(self) -> str:
        return self.__class__.__name__

    @property
    def sort_key(self) -> Tuple[int, int]:
        return (self.block_number, self.log_index)

    def param_names(self) -> List[str]:
        return [abi_name for abi_name, _, _ in self.PARAMS]

    def param_types(self) -> List[str]:
        return [abi_type for _, _, abi_type in self.PARAMS]

    def param_values(self) -> List[str]:
        return [format_param(getattr(self, attr)) for _, attr, _ in self.PARAMS]


def format_param(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return msgspec.json.encode([format_param(v) for v in value]).decode()
    return str(value)


class Approval(ContractEvent, kw_only=True):
    owner: EvmAddress
    approved: EvmAddress
    token_id: int

    PARAMS = (
        ("owner", "owner", "address"),
        ("approved", "approved", "address"),
        ("tokenId", "token_id", "uint256"),
    )


class ApprovalForAll(ContractEvent, kw_only=True):
    owner: EvmAddress
    operator: EvmAddress
    approved: bool

    PARAMS = (
        ("owner", "owner", "address"),
        ("operator", "operator", "address"),
        ("approved", "approved", "bool"),
    )


class ArtistSecondSalePercentUpdated(ContractEvent, kw_only=True):
    artist_second_percentage: int

    PARAMS = (
        ("artistSecondPercentage", "artist_second_percentage", "uint256"),
    )


class BidProposed(ContractEvent, kw_only=True):
    token_id: int
    bid_amount: int
    bidder: EvmAddress

    PARAMS = (
        ("tokenId", "token_id", "uint256"),
        ("bidAmount", "bid_amount", "uint256"),
        ("bidder", "bidder", "address"),
    )


class BidWithdrawn(ContractEvent, kw_only=True):
    token_id: int

    PARAMS = (
        ("tokenId", "token_id", "uint256"),
    )


class BuyPriceSet(ContractEvent, kw_only=True):
    token_id: int
    price: int

    PARAMS = (
        ("tokenId", "token_id", "uint256"),
        ("price", "price", "uint256"),
    )


class ControlLeverUpdated(ContractEvent, kw_only=True):
    token_id: int
    priority_tip: int
    num_remaining_updates: int
    lever_ids: List[int]
    previous_values: List[int]
    updated_values: List[int]

    PARAMS = (
        ("tokenId", "token_id", "uint256"),
        ("priorityTip", "priority_tip", "uint256"),
        ("numRemainingUpdates", "num_remaining_updates", "int256"),
        ("leverIds", "lever_ids", "uint256[]"),
        ("previousValues", "previous_values", "int256[]"),
        ("updatedValues", "updated_values", "int256[]"),
    )


class CreatorWhitelisted(ContractEvent, kw_only=True):
    token_id: int
    layer_count: int
    creator: EvmAddress

    PARAMS = (
        ("tokenId", "token_id", "uint256"),
        ("layerCount", "layer_count", "uint256"),
        ("creator", "creator", "address"),
    )


class PermissionUpdated(ContractEvent, kw_only=True):
    token_id: int
    token_owner: EvmAddress
    permissioned: EvmAddress

    PARAMS = (
        ("tokenId", "token_id", "uint256"),
        ("tokenOwner", "token_owner", "address"),
        ("permissioned", "permissioned", "address"),
    )


class PlatformAddressUpdated(ContractEvent, kw_only=True):
    platform_address: EvmAddress

    PARAMS = (
        ("platformAddress", "platform_address", "address"),
    )


class PlatformSalePercentageUpdated(ContractEvent, kw_only=True):
    token_id: int
    platform_first_percentage: int
    platform_second_percentage: int

    PARAMS = (
        ("tokenId", "token_id", "uint256"),
        ("platformFirstPercentage", "platform_first_percentage", "uint256"),
        ("platformSecondPercentage", "platform_second_percentage", "uint256"),
    )


class TokenSale(ContractEvent, kw_only=True):
    token_id: int
    sale_price: int
    buyer: EvmAddress

    PARAMS = (
        ("tokenId", "token_id", "uint256"),
        ("salePrice", "sale_price", "uint256"),
        ("buyer", "buyer", "address"),
    )


class Transfer(ContractEvent, kw_only=True):
    from_address: EvmAddress
    to_address: EvmAddress
    token_id: int

    PARAMS = (
        ("from", "from_address", "address"),
        ("to", "to_address", "address"),
        ("tokenId", "token_id", "uint256"),
    )


EVENT_TYPES = {
    cls.__name__: cls
    for cls in (
        Approval, ApprovalForAll, ArtistSecondSalePercentUpdated,
        BidProposed, BidWithdrawn, BuyPriceSet, ControlLeverUpdated,
        CreatorWhitelisted, PermissionUpdated, PlatformAddressUpdated,
        PlatformSalePercentageUpdated, TokenSale, Transfer,
    )
}

ContractEventUnion = Union[
    Approval,
    ApprovalForAll,
    ArtistSecondSalePercentUpdated,
    BidProposed,
    BidWithdrawn,
    BuyPriceSet,
    ControlLeverUpdated,
    CreatorWhitelisted,
    PermissionUpdated,
    PlatformAddressUpdated,
    PlatformSalePercentageUpdated,
    TokenSale,
    Transfer,
]
