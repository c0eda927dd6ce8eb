# layer_indexer/services/global_state.py

from ..core.logging import LoggingMixin
from ..contracts import ContractReaderInterface
from ..store import EntityStoreInterface
from ..types import GlobalState, GLOBAL_STATE_ID, InvariantViolation
from ..utils.collections import append_unique


class GlobalStateTracker(LoggingMixin):
    """
    Owns the singleton GlobalState record.

    The record is created once from contract reads and refreshed on demand.
    There is no caching: every refresh re-reads live contract state.
    """

    def __init__(self, store: EntityStoreInterface, reader: ContractReaderInterface):
        self.store = store
        self.reader = reader

    def get_or_initialise(self) -> GlobalState:
        state = self.store.load(GlobalState, GLOBAL_STATE_ID)
        if state is not None:
            return state

        state = GlobalState(
            id=GLOBAL_STATE_ID,
            latest_master_token_id=0,
            total_sale_amount=0,
            token_master_ids=[],
            current_expected_token_supply=self.reader.expected_token_supply(),
            min_bid_increase_percent=self.reader.min_bid_increase_percent(),
            artist_second_sale_percentage=self.reader.artist_second_sale_percentage(),
            platform_address=self.reader.platform_address(),
        )
        self.store.save(state)

        self.log_info("Global state initialised",
                     expected_supply=state.current_expected_token_supply,
                     platform_address=state.platform_address)
        return state

    def _load_existing(self) -> GlobalState:
        state = self.store.load(GlobalState, GLOBAL_STATE_ID)
        if state is None:
            self.log_critical("Global state requested before initialisation")
            raise InvariantViolation("GlobalState singleton does not exist")
        return state

    def refresh(self) -> GlobalState:
        state = self._load_existing()

        state.current_expected_token_supply = self.reader.expected_token_supply()
        state.min_bid_increase_percent = self.reader.min_bid_increase_percent()
        state.artist_second_sale_percentage = self.reader.artist_second_sale_percentage()
        state.platform_address = self.reader.platform_address()
        self.store.save(state)

        self.log_debug("Global state refreshed",
                      expected_supply=state.current_expected_token_supply,
                      min_bid_increase_percent=state.min_bid_increase_percent,
                      artist_second_sale_percentage=state.artist_second_sale_percentage)
        return state

    def register_master(self, token_id: int) -> None:
        state = self.get_or_initialise()
        append_unique(state.token_master_ids, token_id)
        state.latest_master_token_id = max(state.latest_master_token_id, token_id)
        self.store.save(state)

    def add_sale_volume(self, amount: int) -> None:
        state = self.get_or_initialise()
        state.total_sale_amount += amount
        self.store.save(state)
