# layer_indexer/services/tokens.py
"""
Token reconciliation.

A token id moves through three knowledge states, inferred from which
contract reads succeed:

    whitelisted  reserved by CreatorWhitelisted, nothing minted yet
    minted       at least one creator is recorded on-chain
    populated    owner, economics and (for controllers) levers pulled

``get_or_initialise_token`` is the single entry point handlers use. It
creates and backfills entities lazily and returns immediately once a token
is fully populated.
"""

from typing import Optional

from ..core.logging import LoggingMixin
from ..contracts import ContractReaderInterface
from ..store import EntityStoreInterface
from ..types import (
    EvmAddress,
    InvariantViolation,
    Token,
    TokenController,
    TokenMaster,
    ZERO_ADDRESS,
)
from ..types import ids
from ..utils.collections import append_unique
from .global_state import GlobalStateTracker
from .levers import LeverLedger
from .users import UserRegistry


class TokenReconciler(LoggingMixin):

    def __init__(self,
                 store: EntityStoreInterface,
                 reader: ContractReaderInterface,
                 global_state: GlobalStateTracker,
                 users: UserRegistry,
                 levers: LeverLedger):
        self.store = store
        self.reader = reader
        self.global_state = global_state
        self.users = users
        self.levers = levers

    # === Lookup ===

    def load_token(self, token_id: int) -> Optional[Token]:
        return self.store.load(Token, ids.token_id(token_id))

    def require_token(self, token_id: int) -> Token:
        token = self.load_token(token_id)
        if token is None:
            self.log_critical("Token expected to exist", token_id=token_id)
            raise InvariantViolation("Token does not exist", token_id=token_id)
        return token

    def is_fully_populated(self, token: Token) -> bool:
        if token.is_master:
            return bool(token.unique_token_creators)
        controller = self.store.load(TokenController, token.token_controller)
        return controller is not None and controller.is_setup

    # === Reconciliation ===

    def get_or_initialise_token(self, token_id: int) -> Optional[Token]:
        state = self.global_state.get_or_initialise()
        if token_id > state.current_expected_token_supply:
            self.log_warning("Token id beyond expected supply",
                            token_id=token_id,
                            expected_supply=state.current_expected_token_supply)
            return None

        token = self.load_token(token_id)
        if token is None:
            return self._initialise_new_token(token_id)

        if self.is_fully_populated(token):
            return token

        if not token.is_master:
            mapping = self.reader.control_token_mapping(token_id)
            if mapping.reverted or not mapping.value.is_setup:
                # Creators only need walking until the mint is seen
                if not token.unique_token_creators:
                    self.populate_unique_creators(token_id)
                    token = self.require_token(token_id)
                self.log_debug("Controller token not set up yet", token_id=token_id)
                return token

        minted = self.populate_unique_creators(token_id)
        token = self.require_token(token_id)

        if token.is_master and not minted:
            self.log_debug("Master token is only whitelisted", token_id=token_id)
            return token

        return self.populate_token_details(token_id, token)

    def _initialise_new_token(self, token_id: int) -> Optional[Token]:
        first_creator = self.reader.unique_token_creators(token_id, 0)
        if first_creator.reverted:
            self.log_warning("Token is currently only whitelisted", token_id=token_id)
            return None

        mapping = self.reader.control_token_mapping(token_id)
        is_controller = not mapping.reverted and mapping.value.exists

        if is_controller:
            token = self._create_controller(token_id, 0, 0)
        else:
            token = self._create_master(token_id, 0, 0, layer_count=0)
        token.sync_state = "minted"
        self.store.save(token)

        self.log_info("Token discovered",
                     token_id=token_id,
                     is_master=token.is_master)

        self.populate_unique_creators(token_id)
        token = self.require_token(token_id)

        if is_controller and not mapping.value.is_setup:
            return token

        return self.populate_token_details(token_id, token)

    def populate_unique_creators(self, token_id: int) -> bool:
        """Record every on-chain creator of the token. True if any was found."""
        token = self.require_token(token_id)

        index = 0
        while True:
            creator = self.reader.unique_token_creators(token_id, index)
            if creator.reverted or creator.value == ZERO_ADDRESS:
                break

            user = self.users.get_or_create(creator.value)
            user.is_artist = True
            if token.is_master:
                append_unique(user.created_masters, token.token_master)
            else:
                append_unique(user.created_controllers, token.token_controller)
            self.users.save(user)

            append_unique(token.unique_token_creators, user.id)
            index += 1

        if index > 0 and token.sync_state == "whitelisted":
            token.sync_state = "minted"
        self.store.save(token)

        return index > 0

    def populate_token_details(self, token_id: int, token: Token) -> Token:
        owner = self.reader.owner_of(token_id)
        if owner.reverted:
            self.log_critical("Owner should be defined for a minted token", token_id=token_id)
            raise InvariantViolation("ownerOf reverted for minted token", token_id=token_id)

        user = self.users.get_or_create(owner.value)
        if token.is_master:
            append_unique(user.owned_masters, token.token_master)
        else:
            append_unique(user.owned_controllers, token.token_controller)
        self.users.save(user)
        token.owner = user.id

        token.platform_first_sale_percentage = self.reader.platform_first_sale_percentage(token_id)
        token.platform_second_sale_percentage = self.reader.platform_second_sale_percentage(token_id)
        token.token_did_have_first_sale = self.reader.token_did_have_first_sale(token_id)

        uri = self.reader.token_uri(token_id)
        if uri.reverted:
            self.log_warning("Token URI does not exist yet", token_id=token_id)
        else:
            token.uri = uri.value

        token.permissioned_address = self.get_permissioned_address(token_id, owner.value)
        token.sync_state = "populated"
        self.store.save(token)

        if token.is_master:
            self._pull_master_data(token_id)
        else:
            self._pull_controller_data(token_id)
            self.levers.sync_levers(token_id)

        self.log_info("Token populated",
                     token_id=token_id,
                     is_master=token.is_master,
                     owner=token.owner)
        return token

    def get_permissioned_address(self, token_id: int, owner: EvmAddress) -> Optional[EvmAddress]:
        result = self.reader.permissioned_controllers(owner, token_id)
        if result.reverted or result.value == ZERO_ADDRESS:
            return None
        return result.value

    def _pull_master_data(self, token_id: int) -> None:
        master = self.store.load(TokenMaster, ids.master_id(token_id))
        if master is None:
            self.log_critical("Master record missing", token_id=token_id)
            raise InvariantViolation("TokenMaster does not exist", token_id=token_id)

        reservation = self.reader.creator_whitelist(token_id)
        if reservation.reverted:
            self.log_warning("Whitelist reservation unavailable", token_id=token_id)
            return

        master.layer_count = reservation.value.layer_count
        self.store.save(master)

    def _pull_controller_data(self, token_id: int) -> None:
        controller = self.store.load(TokenController, ids.controller_id(token_id))
        if controller is None:
            self.log_critical("Controller record missing", token_id=token_id)
            raise InvariantViolation("TokenController does not exist", token_id=token_id)

        mapping = self.reader.control_token_mapping(token_id)
        if mapping.reverted:
            self.log_critical("Control token mapping reverted", token_id=token_id)
            raise InvariantViolation("controlTokenMapping reverted", token_id=token_id)

        controller.num_control_levers = mapping.value.num_control_levers
        controller.num_remaining_updates = mapping.value.num_remaining_updates
        controller.is_setup = mapping.value.is_setup
        self.store.save(controller)

    # === Creation ===

    def _create_token(self, token_id: int, is_master: bool,
                      platform_first_sale_percentage: int,
                      platform_second_sale_percentage: int) -> Token:
        return Token(
            id=ids.token_id(token_id),
            token_id=token_id,
            is_master=is_master,
            platform_first_sale_percentage=platform_first_sale_percentage,
            platform_second_sale_percentage=platform_second_sale_percentage,
            current_buy_price=0,
            number_of_sales=0,
            token_did_have_first_sale=False,
        )

    def _create_master(self, token_id: int,
                       platform_first_sale_percentage: int,
                       platform_second_sale_percentage: int,
                       layer_count: int) -> Token:
        token = self._create_token(token_id, True,
                                   platform_first_sale_percentage,
                                   platform_second_sale_percentage)
        self.global_state.register_master(token_id)

        master = TokenMaster(
            id=ids.master_id(token_id),
            token_details=token.id,
            layer_count=layer_count,
        )
        self.store.save(master)

        token.token_master = master.id
        return token

    def _create_controller(self, token_id: int,
                           platform_first_sale_percentage: int,
                           platform_second_sale_percentage: int,
                           master_token_id: Optional[int] = None) -> Token:
        token = self._create_token(token_id, False,
                                   platform_first_sale_percentage,
                                   platform_second_sale_percentage)

        controller = TokenController(
            id=ids.controller_id(token_id),
            token_details=token.id,
        )
        if master_token_id is not None:
            controller.associated_master_token = ids.master_id(master_token_id)
        self.store.save(controller)

        token.token_controller = controller.id
        return token

    def create_tokens_from_master(self, master_token_id: int, layer_count: int) -> Token:
        """Create a whitelisted master and its layer controllers, linked to each other"""
        existing = self.load_token(master_token_id)
        if existing is not None:
            self.log_warning("Whitelisted master already known",
                            token_id=master_token_id,
                            is_master=existing.is_master)
            return existing

        first_pct = self.reader.platform_first_sale_percentage(master_token_id)
        second_pct = self.reader.platform_second_sale_percentage(master_token_id)

        token = self._create_master(master_token_id, first_pct, second_pct, layer_count)
        token.sync_state = "whitelisted"
        self.store.save(token)

        master = self.store.load(TokenMaster, ids.master_id(master_token_id))
        for offset in range(1, layer_count + 1):
            layer_token_id = master_token_id + offset
            if self.load_token(layer_token_id) is not None:
                self.log_warning("Layer token already exists",
                                token_id=layer_token_id,
                                master_token_id=master_token_id)
                self._link_controller(master, layer_token_id)
                continue

            layer = self._create_controller(layer_token_id, first_pct, second_pct,
                                            master_token_id=master_token_id)
            layer.sync_state = "whitelisted"
            self.store.save(layer)
            append_unique(master.layers, layer.token_controller)

        self.store.save(master)

        self.log_info("Master and layers whitelisted",
                     token_id=master_token_id,
                     layer_count=layer_count)
        return token

    # === Master / layer linking ===

    def _link_controller(self, master: TokenMaster, token_id: int) -> bool:
        controller = self.store.load(TokenController, ids.controller_id(token_id))
        if controller is None:
            return False
        controller.associated_master_token = master.id
        self.store.save(controller)
        append_unique(master.layers, controller.id)
        return True

    def needs_layer_link(self, token: Token) -> bool:
        """True for a controller without a master, or a master missing known layers"""
        if token.is_master:
            master = self.store.load(TokenMaster, token.token_master)
            return master is not None and len(master.layers) < master.layer_count
        controller = self.store.load(TokenController, token.token_controller)
        return controller is not None and controller.associated_master_token is None

    def link_master_layers(self) -> int:
        """
        Link controllers to the master that precedes them.

        Controllers discovered lazily do not know their master. Layers are
        laid out at consecutive ids after the master id, so walk forward from
        each known master until a non-controller id is reached.
        Returns the number of masters whose layer list changed.
        """
        state = self.global_state.get_or_initialise()
        updated = 0

        for master_token_id in state.token_master_ids:
            master = self.store.load(TokenMaster, ids.master_id(master_token_id))
            if master is None:
                self.log_warning("Known master id without record", token_id=master_token_id)
                continue

            if master.layer_count > 0 and len(master.layers) == master.layer_count:
                continue

            before = len(master.layers)
            token_id = master_token_id + 1
            while master.layer_count == 0 or token_id - master_token_id <= master.layer_count:
                if not self._link_controller(master, token_id):
                    if master.layer_count == 0 and self.store.load(TokenMaster, ids.master_id(token_id)):
                        master.layer_count = token_id - master_token_id - 1
                    break
                token_id += 1

            self.store.save(master)
            if len(master.layers) != before:
                updated += 1
                self.log_debug("Master layers linked",
                              token_id=master_token_id,
                              layer_count=master.layer_count,
                              linked=len(master.layers))

        return updated
