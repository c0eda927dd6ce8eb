# layer_indexer/types/model/entities.py
"""
Persisted domain entities.

Every entity carries a string ``id`` and refers to other entities by id only.
References are re-resolved through the entity store on each access, so an
entity loaded in one handler call is never shared with the next.
"""

from typing import List, Literal, Optional

from msgspec import Struct, field

from ..new import EntityId, EvmAddress, EvmHash

SyncState = Literal["whitelisted", "minted", "populated"]


class Entity(Struct, kw_only=True):
    id: EntityId

    @classmethod
    def entity_type(cls) -> str:
        return cls.__name__


class GlobalState(Entity, kw_only=True):
    latest_master_token_id: int = 0
    current_expected_token_supply: int = 0
    min_bid_increase_percent: int = 0
    artist_second_sale_percentage: int = 0
    platform_address: Optional[EvmAddress] = None
    token_master_ids: List[int] = field(default_factory=list)
    total_sale_amount: int = 0


class User(Entity, kw_only=True):
    is_artist: bool = False
    bids: List[EntityId] = field(default_factory=list)
    buys: List[EntityId] = field(default_factory=list)
    sells: List[EntityId] = field(default_factory=list)
    owned_masters: List[EntityId] = field(default_factory=list)
    owned_controllers: List[EntityId] = field(default_factory=list)
    created_masters: List[EntityId] = field(default_factory=list)
    created_controllers: List[EntityId] = field(default_factory=list)


class Token(Entity, kw_only=True):
    token_id: int
    is_master: bool
    sync_state: SyncState = "minted"
    owner: Optional[EntityId] = None
    uri: Optional[str] = None
    current_buy_price: int = 0
    current_bid: Optional[EntityId] = None
    last_sale: Optional[EntityId] = None
    number_of_sales: int = 0
    token_did_have_first_sale: bool = False
    permissioned_address: Optional[EvmAddress] = None
    platform_first_sale_percentage: int = 0
    platform_second_sale_percentage: int = 0
    unique_token_creators: List[EntityId] = field(default_factory=list)
    past_bids: List[EntityId] = field(default_factory=list)
    transfers: List[EntityId] = field(default_factory=list)
    sales: List[EntityId] = field(default_factory=list)
    past_owners: List[EntityId] = field(default_factory=list)
    token_master: Optional[EntityId] = None
    token_controller: Optional[EntityId] = None

    @property
    def sub_id(self) -> EntityId:
        """Id of the master or controller record that describes this token"""
        return self.token_master if self.is_master else self.token_controller


class TokenMaster(Entity, kw_only=True):
    token_details: EntityId
    layer_count: int = 0
    layers: List[EntityId] = field(default_factory=list)


class TokenController(Entity, kw_only=True):
    token_details: EntityId
    num_control_levers: int = 0
    num_remaining_updates: int = 0
    number_of_updates: int = 0
    average_update_cost: int = 0
    is_setup: bool = False
    associated_master_token: Optional[EntityId] = None
    levers: List[EntityId] = field(default_factory=list)
    update_history: List[EntityId] = field(default_factory=list)


class TokenControlLever(Entity, kw_only=True):
    lever_id: int
    layer: EntityId
    min_value: int = 0
    max_value: int = 0
    current_value: int = 0
    previous_value: int = 0
    number_of_updates: int = 0
    latest_update: Optional[EntityId] = None


class LayerUpdate(Entity, kw_only=True):
    layer: EntityId
    update_number: int
    tx_hash: EvmHash
    timestamp: int
    gas_price: int = 0
    gas_used: int = 0
    cost_in_wei: int = 0
    priority_tip: int = 0
    levers: List[EntityId] = field(default_factory=list)


class Bid(Entity, kw_only=True):
    token: EntityId
    bidder: EntityId
    bid_amount: int
    timestamp: int
    bid_active: bool = True
    bid_accepted: bool = False
    bid_withdrawn_timestamp: Optional[int] = None


class Sale(Entity, kw_only=True):
    token: EntityId
    buyer: EntityId
    seller: Optional[EntityId]
    sale_price: int
    sale_number: int
    timestamp: int
    tx_hash: EvmHash
    is_bid_sale: bool = False
    bid: Optional[EntityId] = None


class TokenTransfer(Entity, kw_only=True):
    token: EntityId
    from_address: EntityId
    to_address: EntityId
    timestamp: int


class StateChange(Entity, kw_only=True):
    timestamp: int = 0
    block_number: int = 0
    contract_version: int = 0
    tx_event_param_list: List[EntityId] = field(default_factory=list)
    user_changes: List[EntityId] = field(default_factory=list)
    token_changes: List[EntityId] = field(default_factory=list)


class EventParams(Entity, kw_only=True):
    index: int
    event_name: str
    params: List[EntityId] = field(default_factory=list)


class EventParam(Entity, kw_only=True):
    index: int
    param_name: str
    param_type: str
    param: str


class IndexingCursor(Entity, kw_only=True):
    """
    Position of the last applied log for one contract.

    ``log_index`` is None once every log of ``block_number`` is applied.
    Saved in the same store transaction as the event it covers.
    """
    contract_address: EvmAddress
    block_number: int
    log_index: Optional[int] = None

    def covers(self, block_number: int, log_index: int) -> bool:
        if block_number != self.block_number:
            return block_number < self.block_number
        return self.log_index is None or log_index <= self.log_index

    def next_block(self) -> int:
        """First block that may still hold unapplied logs"""
        return self.block_number + 1 if self.log_index is None else self.block_number


ENTITY_TYPES = {
    cls.__name__: cls
    for cls in (
        GlobalState, User, Token, TokenMaster, TokenController,
        TokenControlLever, LayerUpdate, Bid, Sale, TokenTransfer,
        StateChange, EventParams, EventParam, IndexingCursor,
    )
}
