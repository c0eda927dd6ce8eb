# layer_indexer/contracts/interfaces.py
"""
Read-only access to the control token contract.

Concrete readers implement ``_call``; the named accessors below shape the raw
return values. Accessors that are allowed to revert return a ``CallResult``;
the rest raise ``ContractReverted`` because a revert there is never expected.
"""
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Union

from ..core.logging import LoggingMixin
from ..types import (
    CallResult,
    ControlTokenMapping,
    EvmAddress,
    IndexerError,
    LeverBounds,
    WhitelistReservation,
)
from ..types.ids import normalize_address

BlockIdentifier = Union[int, str]


class ContractReverted(IndexerError):
    """The contract call reverted"""

    def __init__(self, function_name: str, reason: Optional[str] = None):
        super().__init__(f"{function_name} reverted" + (f": {reason}" if reason else ""))
        self.function_name = function_name
        self.reason = reason


class ContractReaderInterface(ABC, LoggingMixin):

    def __init__(self):
        self.block_identifier: BlockIdentifier = "latest"

    @abstractmethod
    def _call(self, function_name: str, *args) -> Any:
        """
        Execute a read against the contract.

        Raises:
            ContractReverted: the call reverted
            ContractReadError: any other failure
        """
        pass

    def at_block(self, block_identifier: BlockIdentifier) -> 'ContractReaderInterface':
        """Pin subsequent reads to a block"""
        self.block_identifier = block_identifier
        return self

    def _try_call(self, function_name: str, *args) -> CallResult:
        try:
            return CallResult.ok(self._call(function_name, *args))
        except ContractReverted as e:
            self.log_debug("Contract call reverted",
                          function_name=function_name,
                          call_args=list(args),
                          reason=e.reason)
            return CallResult.revert()

    # === Global parameters ===

    def expected_token_supply(self) -> int:
        return int(self._call("expectedTokenSupply"))

    def min_bid_increase_percent(self) -> int:
        return int(self._call("minBidIncreasePercent"))

    def artist_second_sale_percentage(self) -> int:
        return int(self._call("artistSecondSalePercentage"))

    def platform_address(self) -> EvmAddress:
        return normalize_address(self._call("platformAddress"))

    # === Per token ===

    def owner_of(self, token_id: int) -> CallResult:
        result = self._try_call("ownerOf", token_id)
        if not result.reverted:
            result.value = normalize_address(result.value)
        return result

    def token_uri(self, token_id: int) -> CallResult:
        return self._try_call("tokenURI", token_id)

    def unique_token_creators(self, token_id: int, index: int) -> CallResult:
        result = self._try_call("uniqueTokenCreators", token_id, index)
        if not result.reverted:
            result.value = normalize_address(result.value)
        return result

    def permissioned_controllers(self, owner: EvmAddress, token_id: int) -> CallResult:
        result = self._try_call("permissionedControllers", owner, token_id)
        if not result.reverted:
            result.value = normalize_address(result.value)
        return result

    def control_token_mapping(self, token_id: int) -> CallResult:
        result = self._try_call("controlTokenMapping", token_id)
        if not result.reverted:
            num_levers, num_remaining, exists, is_setup = result.value
            result.value = ControlTokenMapping(
                num_control_levers=int(num_levers),
                num_remaining_updates=int(num_remaining),
                exists=bool(exists),
                is_setup=bool(is_setup),
            )
        return result

    def get_control_token(self, token_id: int) -> List[LeverBounds]:
        """Lever table as (min, max, current) triples in lever id order"""
        flat = [int(v) for v in self._call("getControlToken", token_id)]
        return [
            LeverBounds(
                lever_id=i // 3,
                min_value=flat[i],
                max_value=flat[i + 1],
                current_value=flat[i + 2],
            )
            for i in range(0, len(flat) - len(flat) % 3, 3)
        ]

    def creator_whitelist(self, token_id: int) -> CallResult:
        result = self._try_call("creatorWhitelist", token_id)
        if not result.reverted:
            creator, layer_count = result.value
            result.value = WhitelistReservation(
                creator=normalize_address(creator),
                layer_count=int(layer_count),
            )
        return result

    def token_did_have_first_sale(self, token_id: int) -> bool:
        return bool(self._call("tokenDidHaveFirstSale", token_id))

    def platform_first_sale_percentage(self, token_id: int) -> int:
        return int(self._call("platformFirstSalePercentages", token_id))

    def platform_second_sale_percentage(self, token_id: int) -> int:
        return int(self._call("platformSecondSalePercentages", token_id))
