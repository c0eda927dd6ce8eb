# tests/test_tokens.py
"""
Token reconciliation: lazy discovery, backfill from contract reads and the
fully populated fast path
"""

import pytest

from layer_indexer.types import (
    InvariantViolation,
    Token,
    TokenController,
    TokenControlLever,
    TokenMaster,
    User,
)

from conftest import ARTIST, ARTIST_2, DELEGATE, OWNER


def test_master_is_discovered_and_populated(context, reader, store):
    reader.mint_master(1, owner=OWNER, creators=[ARTIST], layer_count=2)
    reader.sale_percentages[1] = (90, 5)
    reader.first_sale[1] = True

    token = context.tokens.get_or_initialise_token(1)

    assert token.is_master
    assert token.sync_state == "populated"
    assert token.owner == OWNER
    assert token.uri == "ipfs://master/1"
    assert token.unique_token_creators == [ARTIST]
    assert token.platform_first_sale_percentage == 90
    assert token.platform_second_sale_percentage == 5
    assert token.token_did_have_first_sale
    assert token.token_master == "1-Master"

    master = store.load(TokenMaster, "1-Master")
    assert master.token_details == "1"
    assert master.layer_count == 2

    artist = store.load(User, ARTIST)
    assert artist.is_artist
    assert artist.created_masters == ["1-Master"]
    assert store.load(User, OWNER).owned_masters == ["1-Master"]


def test_fast_path_makes_no_reads(context, reader):
    reader.mint_master(1, owner=OWNER)
    reader.mint_controller(2, owner=OWNER, levers=[(0, 10, 5), (0, 100, 50)])

    master = context.tokens.get_or_initialise_token(1)
    controller = context.tokens.get_or_initialise_token(2)
    reads = reader.read_count()

    assert context.tokens.get_or_initialise_token(1) == master
    assert context.tokens.get_or_initialise_token(2) == controller
    assert reader.read_count() == reads


def test_controller_is_populated_with_levers(context, reader, store):
    reader.mint_controller(2, owner=OWNER, levers=[(0, 10, 5), (-5, 100, 50)], remaining_updates=7)

    token = context.tokens.get_or_initialise_token(2)

    assert not token.is_master
    assert token.token_controller == "2-Controller"

    controller = store.load(TokenController, "2-Controller")
    assert controller.is_setup
    assert controller.num_control_levers == 2
    assert controller.num_remaining_updates == 7
    assert controller.levers == ["2-0", "2-1"]

    lever = store.load(TokenControlLever, "2-1")
    assert (lever.min_value, lever.max_value, lever.current_value) == (-5, 100, 50)
    assert lever.layer == "2-Controller"


def test_unminted_token_is_not_created(context, reader, store):
    assert context.tokens.get_or_initialise_token(50) is None
    assert store.load(Token, "50") is None


def test_token_beyond_expected_supply_is_ignored(context, reader, store):
    reader.expected_supply = 10
    reader.mint_master(11, owner=OWNER)

    assert context.tokens.get_or_initialise_token(11) is None
    assert reader.read_count("uniqueTokenCreators") == 0
    assert store.load(Token, "11") is None


def test_controller_not_set_up_is_left_partial(context, reader, store):
    reader.mint_controller(3, owner=OWNER, is_setup=False)

    token = context.tokens.get_or_initialise_token(3)

    assert not token.is_master
    assert token.sync_state == "minted"
    assert token.owner is None
    assert store.load(TokenController, "3-Controller") is not None
    assert reader.read_count("ownerOf") == 0


def test_unset_controller_is_checked_before_walking_creators(context, reader):
    reader.mint_controller(3, owner=OWNER, creators=[ARTIST, ARTIST_2], is_setup=False)
    context.tokens.get_or_initialise_token(3)
    creator_reads = reader.read_count("uniqueTokenCreators")

    context.tokens.get_or_initialise_token(3)
    context.tokens.get_or_initialise_token(3)

    assert reader.read_count("uniqueTokenCreators") == creator_reads
    assert reader.read_count("ownerOf") == 0


def test_whitelisted_layer_records_mint_before_set_up(context, reader, store):
    context.global_state.get_or_initialise()
    context.tokens.create_tokens_from_master(100, 1)

    reader.mint_controller(101, owner=OWNER, is_setup=False)
    token = context.tokens.get_or_initialise_token(101)

    assert token.sync_state == "minted"
    assert token.unique_token_creators == [ARTIST]
    assert token.owner is None


def test_sub_kind_never_changes(context, reader):
    reader.mint_controller(3, owner=OWNER, is_setup=False)
    context.tokens.get_or_initialise_token(3)

    # Contract no longer reports the controller mapping
    reader.mappings[3] = (0, 0, False, False)
    token = context.tokens.get_or_initialise_token(3)

    assert not token.is_master
    assert token.token_controller == "3-Controller"


def test_controller_setup_completes_on_later_access(context, reader, store):
    reader.mint_controller(3, owner=OWNER, is_setup=False)
    context.tokens.get_or_initialise_token(3)

    reader.mint_controller(3, owner=OWNER, levers=[(1, 2, 1)], is_setup=True)
    token = context.tokens.get_or_initialise_token(3)

    assert token.sync_state == "populated"
    assert token.owner == OWNER
    assert store.load(TokenController, "3-Controller").is_setup


def test_unique_creators_are_deduplicated(context, reader, store):
    reader.mint_master(1, owner=OWNER, creators=[ARTIST, ARTIST_2])
    context.tokens.get_or_initialise_token(1)

    context.tokens.populate_unique_creators(1)
    context.tokens.populate_unique_creators(1)

    assert store.load(Token, "1").unique_token_creators == [ARTIST, ARTIST_2]
    assert store.load(User, ARTIST).created_masters == ["1-Master"]
    assert store.load(User, ARTIST_2).created_masters == ["1-Master"]


def test_owner_revert_for_minted_token_is_fatal(context, reader):
    reader.creators[7] = [ARTIST]

    with pytest.raises(InvariantViolation):
        context.tokens.get_or_initialise_token(7)


def test_permissioned_address_follows_owner(context, reader):
    reader.mint_master(1, owner=OWNER)
    reader.permissions[(OWNER, 1)] = DELEGATE

    token = context.tokens.get_or_initialise_token(1)

    assert token.permissioned_address == DELEGATE


def test_whitelisted_master_and_layers_are_linked(context, reader, store):
    context.global_state.get_or_initialise()

    context.tokens.create_tokens_from_master(100, 3)

    token = store.load(Token, "100")
    assert token.is_master
    assert token.sync_state == "whitelisted"

    master = store.load(TokenMaster, "100-Master")
    assert master.layer_count == 3
    assert master.layers == ["101-Controller", "102-Controller", "103-Controller"]

    for token_id in (101, 102, 103):
        layer = store.load(Token, str(token_id))
        assert not layer.is_master
        controller = store.load(TokenController, f"{token_id}-Controller")
        assert controller.associated_master_token == "100-Master"


def test_whitelisted_layer_populates_after_mint(context, reader, store):
    context.global_state.get_or_initialise()
    context.tokens.create_tokens_from_master(100, 1)

    reader.mint_controller(101, owner=OWNER)
    token = context.tokens.get_or_initialise_token(101)

    assert not token.is_master
    assert token.sync_state == "populated"
    assert store.load(TokenController, "101-Controller").associated_master_token == "100-Master"


def test_link_master_layers_links_lazily_discovered_tokens(context, reader, store):
    reader.mint_master(10, owner=OWNER, layer_count=2)
    reader.mint_controller(11, owner=OWNER)
    reader.mint_controller(12, owner=OWNER)
    for token_id in (10, 11, 12):
        context.tokens.get_or_initialise_token(token_id)

    assert store.load(TokenController, "11-Controller").associated_master_token is None

    assert context.tokens.link_master_layers() == 1

    master = store.load(TokenMaster, "10-Master")
    assert master.layers == ["11-Controller", "12-Controller"]
    for token_id in (11, 12):
        controller = store.load(TokenController, f"{token_id}-Controller")
        assert controller.associated_master_token == "10-Master"

    assert context.tokens.link_master_layers() == 0
