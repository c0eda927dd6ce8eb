# tests/test_global_state.py
"""
Global state singleton: created once from contract reads, refreshed on demand
"""

import pytest

from layer_indexer.services import GlobalStateTracker
from layer_indexer.types import GlobalState, GLOBAL_STATE_ID, InvariantViolation

from conftest import PLATFORM


def test_get_or_initialise_reads_contract_once(store, reader):
    tracker = GlobalStateTracker(store, reader)

    state = tracker.get_or_initialise()

    assert state.id == GLOBAL_STATE_ID == "MASTER"
    assert state.current_expected_token_supply == 1000
    assert state.min_bid_increase_percent == 10
    assert state.artist_second_sale_percentage == 10
    assert state.platform_address == PLATFORM
    assert state.total_sale_amount == 0
    assert state.token_master_ids == []
    assert reader.read_count() == 4

    again = tracker.get_or_initialise()
    assert again == state
    assert reader.read_count() == 4


def test_refresh_requires_existing_state(store, reader):
    tracker = GlobalStateTracker(store, reader)

    with pytest.raises(InvariantViolation):
        tracker.refresh()


def test_refresh_rereads_live_values(store, reader):
    tracker = GlobalStateTracker(store, reader)
    tracker.get_or_initialise()

    reader.expected_supply = 2000
    reader.artist_second_sale = 5
    reader.platform = "0x" + "AB" * 20

    state = tracker.refresh()

    assert state.current_expected_token_supply == 2000
    assert state.artist_second_sale_percentage == 5
    assert state.platform_address == "0x" + "ab" * 20
    assert store.load(GlobalState, GLOBAL_STATE_ID) == state


def test_register_master_keeps_ids_unique(store, reader):
    tracker = GlobalStateTracker(store, reader)

    tracker.register_master(10)
    tracker.register_master(4)
    tracker.register_master(10)

    state = store.load(GlobalState, GLOBAL_STATE_ID)
    assert state.token_master_ids == [10, 4]
    assert state.latest_master_token_id == 10


def test_add_sale_volume_accumulates(store, reader):
    tracker = GlobalStateTracker(store, reader)

    tracker.add_sale_volume(100)
    tracker.add_sale_volume(250)

    assert store.load(GlobalState, GLOBAL_STATE_ID).total_sale_amount == 350
