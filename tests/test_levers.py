# tests/test_levers.py
"""
Lever ledger: lever bounds, per-update history and the incremental average
update cost of a controller
"""

import pytest

from layer_indexer.types import (
    ControlLeverUpdated,
    InvariantViolation,
    LayerUpdate,
    TokenController,
    TokenControlLever,
)

from conftest import OWNER, TX_1, TX_2, TX_3


@pytest.fixture
def controller_token(context, reader):
    reader.mint_controller(2, owner=OWNER, levers=[(0, 10, 5), (0, 100, 50)])
    return context.tokens.get_or_initialise_token(2)


def lever_update(make_event, tx_hash, gas_used, lever_ids=(0,), previous=(5,), updated=(6,),
                 remaining=99, log_index=0):
    return make_event(
        ControlLeverUpdated,
        tx_hash=tx_hash,
        log_index=log_index,
        gas_price=1,
        gas_used=gas_used,
        token_id=2,
        priority_tip=0,
        num_remaining_updates=remaining,
        lever_ids=list(lever_ids),
        previous_values=list(previous),
        updated_values=list(updated),
    )


def test_average_update_cost_is_incremental(context, store, make_event, controller_token):
    averages = []
    for tx_hash, cost in ((TX_1, 5), (TX_2, 15), (TX_3, 100)):
        context.levers.apply_update(lever_update(make_event, tx_hash, cost))
        averages.append(store.load(TokenController, "2-Controller").average_update_cost)

    assert averages == [5, 10, 40]

    controller = store.load(TokenController, "2-Controller")
    assert controller.number_of_updates == 3
    assert controller.update_history == ["2-1", "2-2", "2-3"]


def test_update_records_history_and_lever_values(context, store, make_event, controller_token):
    event = make_event(
        ControlLeverUpdated,
        tx_hash=TX_1,
        gas_price=3,
        gas_used=7,
        token_id=2,
        priority_tip=4,
        num_remaining_updates=41,
        lever_ids=[0, 1],
        previous_values=[5, 50],
        updated_values=[9, 60],
    )

    update = context.levers.apply_update(event)

    assert update.id == "2-1"
    assert update.update_number == 1
    assert update.cost_in_wei == 21
    assert update.priority_tip == 4
    assert update.levers == ["2-0", "2-1"]
    assert store.load(LayerUpdate, "2-1") == update

    lever = store.load(TokenControlLever, "2-1")
    assert lever.previous_value == 50
    assert lever.current_value == 60
    assert lever.number_of_updates == 1
    assert lever.latest_update == "2-1"
    assert (lever.min_value, lever.max_value) == (0, 100)

    controller = store.load(TokenController, "2-Controller")
    assert controller.num_remaining_updates == 41


def test_unknown_lever_is_initialised(context, store, make_event, controller_token):
    context.levers.apply_update(lever_update(make_event, TX_1, 5, lever_ids=(7,), previous=(0,), updated=(3,)))

    controller = store.load(TokenController, "2-Controller")
    assert controller.levers == ["2-0", "2-1", "2-7"]
    assert controller.number_of_updates == 1
    assert store.load(TokenControlLever, "2-7").current_value == 3


def test_mismatched_arrays_are_fatal(context, make_event, controller_token):
    event = lever_update(make_event, TX_1, 5, lever_ids=(0, 1), previous=(5,), updated=(6, 7))

    with pytest.raises(InvariantViolation):
        context.levers.apply_update(event)


def test_update_for_missing_controller_is_fatal(context, make_event):
    with pytest.raises(InvariantViolation):
        context.levers.apply_update(lever_update(make_event, TX_1, 5))


def test_sync_levers_revert_is_fatal(context, store):
    store.save(TokenController(id="9-Controller", token_details="9"))

    with pytest.raises(InvariantViolation):
        context.levers.sync_levers(9)
