# tests/test_handlers.py
"""
End-to-end event handling through ControlTokenHandler
"""

import pytest

from layer_indexer.types import (
    ArtistSecondSalePercentUpdated,
    Bid,
    BidProposed,
    BidWithdrawn,
    BuyPriceSet,
    ControlLeverUpdated,
    CreatorWhitelisted,
    GlobalState,
    InvariantViolation,
    LayerUpdate,
    PermissionUpdated,
    PlatformAddressUpdated,
    PlatformSalePercentageUpdated,
    Sale,
    StateChange,
    Token,
    TokenController,
    TokenMaster,
    TokenSale,
    Transfer,
    User,
    ZERO_ADDRESS,
)

from conftest import (
    ARTIST,
    BIDDER_B,
    BIDDER_C,
    DELEGATE,
    OWNER,
    SELLER,
    TX_1,
    TX_2,
    TX_3,
    TX_4,
)


def test_handler_covers_every_contract_event(handler):
    for name in (
        "Approval", "ApprovalForAll", "ArtistSecondSalePercentUpdated",
        "BidProposed", "BidWithdrawn", "BuyPriceSet", "ControlLeverUpdated",
        "CreatorWhitelisted", "PermissionUpdated", "PlatformAddressUpdated",
        "PlatformSalePercentageUpdated", "TokenSale", "Transfer",
    ):
        assert handler.handles(name)
    assert not handler.handles("OwnershipTransferred")


def test_creator_whitelisted_creates_master_and_layers(handler, store, make_event):
    event = make_event(CreatorWhitelisted, tx_hash=TX_1, token_id=100, layer_count=3, creator=ARTIST)

    assert handler.handle(event)

    token = store.load(Token, "100")
    assert token.is_master
    assert store.load(TokenMaster, "100-Master").layer_count == 3
    for token_id in (101, 102, 103):
        controller = store.load(TokenController, f"{token_id}-Controller")
        assert controller.associated_master_token == "100-Master"
    assert store.load(GlobalState, "MASTER").token_master_ids == [100]

    state_change = store.load(StateChange, TX_1)
    assert state_change.user_changes == [ARTIST]
    assert state_change.token_changes == ["100", "101", "102", "103"]


def test_bid_scenario(handler, reader, store, make_event):
    reader.mint_master(5, owner=SELLER)

    handler.handle(make_event(BidProposed, tx_hash=TX_1, token_id=5, bid_amount=10, bidder=BIDDER_B))
    handler.handle(make_event(BidProposed, tx_hash=TX_2, token_id=5, bid_amount=20, bidder=BIDDER_C))

    token = store.load(Token, "5")
    first = store.load(Bid, f"5-{TX_1}")
    second = store.load(Bid, f"5-{TX_2}")
    assert not first.bid_active
    assert first.id in token.past_bids
    assert token.current_bid == second.id
    assert second.bid_active

    assert store.load(StateChange, TX_2).user_changes == [BIDDER_C]
    assert store.load(StateChange, TX_2).token_changes == ["5"]


def test_bid_on_missing_token_is_skipped(handler, store, make_event):
    assert handler.handle(make_event(BidProposed, tx_hash=TX_1, token_id=77, bid_amount=10, bidder=BIDDER_B))

    assert store.list_ids(Bid) == []
    assert store.load(User, BIDDER_B) is not None
    assert store.load(StateChange, TX_1).token_changes == []


def test_bid_withdrawn_and_buy_price(handler, reader, store, make_event):
    reader.mint_master(5, owner=SELLER)
    handler.handle(make_event(BidProposed, tx_hash=TX_1, token_id=5, bid_amount=10, bidder=BIDDER_B))

    handler.handle(make_event(BidWithdrawn, tx_hash=TX_2, token_id=5))
    handler.handle(make_event(BuyPriceSet, tx_hash=TX_3, token_id=5, price=500))

    token = store.load(Token, "5")
    assert token.current_bid is None
    assert token.current_buy_price == 500
    assert store.load(StateChange, TX_2).user_changes == [BIDDER_B]
    assert store.load(StateChange, TX_3).user_changes == [SELLER]


def test_sale_after_transfer_in_same_transaction(handler, reader, store, make_event):
    reader.mint_master(5, owner=SELLER)
    handler.handle(make_event(BidProposed, tx_hash=TX_1, token_id=5, bid_amount=10, bidder=BIDDER_B))

    handler.handle(make_event(Transfer, tx_hash=TX_2, log_index=0,
                              from_address=SELLER, to_address=BIDDER_B, token_id=5))
    handler.handle(make_event(TokenSale, tx_hash=TX_2, log_index=1,
                              token_id=5, sale_price=10, buyer=BIDDER_B))

    token = store.load(Token, "5")
    assert token.owner == BIDDER_B
    assert token.past_owners == [SELLER]
    assert token.number_of_sales == 1
    assert store.load(Bid, f"5-{TX_1}").bid_accepted

    state_change = store.load(StateChange, TX_2)
    assert state_change.tx_event_param_list == [f"{TX_2}-0", f"{TX_2}-1"]
    assert state_change.user_changes == [SELLER, BIDDER_B]


def test_sale_after_buy_back_credits_current_seller(handler, reader, store, make_event):
    reader.mint_master(5, owner=SELLER)
    handler.handle(make_event(Transfer, tx_hash=TX_1, from_address=SELLER, to_address=BIDDER_B, token_id=5))
    handler.handle(make_event(Transfer, tx_hash=TX_2, from_address=BIDDER_B, to_address=SELLER, token_id=5))

    handler.handle(make_event(Transfer, tx_hash=TX_3, log_index=0,
                              from_address=SELLER, to_address=BIDDER_C, token_id=5))
    handler.handle(make_event(TokenSale, tx_hash=TX_3, log_index=1,
                              token_id=5, sale_price=30, buyer=BIDDER_C))

    sale = store.load(Sale, "5-1")
    assert sale.seller == SELLER
    assert sale.buyer == BIDDER_C
    assert store.load(User, SELLER).sells == ["5-1"]
    assert store.load(User, BIDDER_B).sells == []
    assert store.load(StateChange, TX_3).user_changes == [SELLER, BIDDER_C]


def test_sale_of_unknown_token_is_fatal(handler, make_event):
    with pytest.raises(InvariantViolation):
        handler.handle(make_event(TokenSale, tx_hash=TX_1, token_id=77, sale_price=10, buyer=BIDDER_B))


def test_mint_transfer_links_layers(handler, reader, store, make_event):
    reader.mint_master(10, owner=OWNER, layer_count=1)
    reader.mint_controller(11, owner=OWNER)

    handler.handle(make_event(Transfer, tx_hash=TX_1, log_index=0,
                              from_address=ZERO_ADDRESS, to_address=OWNER, token_id=10))
    handler.handle(make_event(Transfer, tx_hash=TX_1, log_index=1,
                              from_address=ZERO_ADDRESS, to_address=OWNER, token_id=11))

    master = store.load(TokenMaster, "10-Master")
    assert master.layers == ["11-Controller"]
    assert store.load(TokenController, "11-Controller").associated_master_token == "10-Master"

    token = store.load(Token, "10")
    assert token.owner == OWNER
    assert token.past_owners == []
    assert token.transfers == [f"10-{TX_1}"]
    assert store.load(StateChange, TX_1).user_changes == [OWNER]


def test_minting_whitelisted_layers_skips_link_pass(handler, reader, store, make_event, monkeypatch):
    tokens = handler.context.tokens
    link_passes = []
    link_master_layers = tokens.link_master_layers
    monkeypatch.setattr(tokens, "link_master_layers",
                        lambda: link_passes.append(1) or link_master_layers())

    handler.handle(make_event(CreatorWhitelisted, tx_hash=TX_1, token_id=100, layer_count=2, creator=ARTIST))
    reader.mint_master(100, owner=OWNER, layer_count=2)
    reader.mint_controller(101, owner=OWNER)
    reader.mint_controller(102, owner=OWNER)

    for log_index, token_id in enumerate((100, 101, 102)):
        handler.handle(make_event(Transfer, tx_hash=TX_2, log_index=log_index,
                                  from_address=ZERO_ADDRESS, to_address=OWNER, token_id=token_id))

    assert link_passes == []
    assert store.load(TokenMaster, "100-Master").layers == ["101-Controller", "102-Controller"]
    assert store.load(Token, "102").owner == OWNER


def test_permission_updated_by_owner(handler, reader, store, make_event):
    reader.mint_master(5, owner=SELLER)

    handler.handle(make_event(PermissionUpdated, tx_hash=TX_1, token_id=5,
                              token_owner=SELLER, permissioned=DELEGATE))
    assert store.load(Token, "5").permissioned_address == DELEGATE

    handler.handle(make_event(PermissionUpdated, tx_hash=TX_2, token_id=5,
                              token_owner=BIDDER_B, permissioned=BIDDER_C))
    assert store.load(Token, "5").permissioned_address == DELEGATE

    handler.handle(make_event(PermissionUpdated, tx_hash=TX_3, token_id=5,
                              token_owner=SELLER, permissioned=ZERO_ADDRESS))
    assert store.load(Token, "5").permissioned_address is None


def test_platform_sale_percentage_updated(handler, reader, store, make_event):
    reader.mint_master(5, owner=SELLER)

    handler.handle(make_event(PlatformSalePercentageUpdated, tx_hash=TX_1, token_id=5,
                              platform_first_percentage=70, platform_second_percentage=3))

    token = store.load(Token, "5")
    assert token.platform_first_sale_percentage == 70
    assert token.platform_second_sale_percentage == 3


def test_global_parameter_events_refresh_state(handler, reader, store, make_event):
    handler.handle(make_event(ArtistSecondSalePercentUpdated, tx_hash=TX_1, artist_second_percentage=10))

    reader.artist_second_sale = 7
    reader.platform = DELEGATE
    handler.handle(make_event(ArtistSecondSalePercentUpdated, tx_hash=TX_2, artist_second_percentage=7))
    assert store.load(GlobalState, "MASTER").artist_second_sale_percentage == 7

    handler.handle(make_event(PlatformAddressUpdated, tx_hash=TX_3, platform_address=DELEGATE))
    assert store.load(GlobalState, "MASTER").platform_address == DELEGATE
    assert store.load(StateChange, TX_3).user_changes == [DELEGATE]


def test_lever_update_on_controller(handler, reader, store, make_event):
    reader.mint_controller(2, owner=OWNER, levers=[(0, 10, 5)])

    handler.handle(make_event(ControlLeverUpdated, tx_hash=TX_4, gas_price=2, gas_used=50,
                              token_id=2, priority_tip=1, num_remaining_updates=9,
                              lever_ids=[0], previous_values=[5], updated_values=[8]))

    update = store.load(LayerUpdate, "2-1")
    assert update.cost_in_wei == 100
    assert store.load(TokenController, "2-Controller").average_update_cost == 100
    assert store.load(StateChange, TX_4).token_changes == ["2"]


def test_lever_update_on_master_is_fatal(handler, reader, make_event):
    reader.mint_master(1, owner=OWNER)

    with pytest.raises(InvariantViolation):
        handler.handle(make_event(ControlLeverUpdated, tx_hash=TX_1, token_id=1, priority_tip=0,
                                  num_remaining_updates=0, lever_ids=[0],
                                  previous_values=[0], updated_values=[1]))
