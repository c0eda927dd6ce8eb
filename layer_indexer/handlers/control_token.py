# layer_indexer/handlers/control_token.py

from ..services import IndexingContext
from ..types import (
    Approval,
    ApprovalForAll,
    ArtistSecondSalePercentUpdated,
    BidProposed,
    BidWithdrawn,
    BuyPriceSet,
    ControlLeverUpdated,
    CreatorWhitelisted,
    InvariantViolation,
    PermissionUpdated,
    PlatformAddressUpdated,
    PlatformSalePercentageUpdated,
    Token,
    TokenSale,
    Transfer,
    ZERO_ADDRESS,
)
from ..types.ids import normalize_address
from .base import BaseHandler


class ControlTokenHandler(BaseHandler):
    """Handlers for every event emitted by the control token contract"""

    def __init__(self, context: IndexingContext):
        super().__init__(context)

        self.handler_map = {
            "Approval": self._handle_approval,
            "ApprovalForAll": self._handle_approval_for_all,
            "ArtistSecondSalePercentUpdated": self._handle_artist_second_sale_percent_updated,
            "BidProposed": self._handle_bid_proposed,
            "BidWithdrawn": self._handle_bid_withdrawn,
            "BuyPriceSet": self._handle_buy_price_set,
            "ControlLeverUpdated": self._handle_control_lever_updated,
            "CreatorWhitelisted": self._handle_creator_whitelisted,
            "PermissionUpdated": self._handle_permission_updated,
            "PlatformAddressUpdated": self._handle_platform_address_updated,
            "PlatformSalePercentageUpdated": self._handle_platform_sale_percentage_updated,
            "TokenSale": self._handle_token_sale,
            "Transfer": self._handle_transfer,
        }

        self.log_info("ControlTokenHandler initialized",
                     handler_count=len(self.handler_map),
                     contract_version=context.contract_version)

    def _require_token(self, token_id: int, event_name: str) -> Token:
        token = self.context.tokens.get_or_initialise_token(token_id)
        if token is None:
            self.log_critical("Token must exist for event",
                             token_id=token_id,
                             event_name=event_name)
            raise InvariantViolation(f"{event_name} for unknown token", token_id=token_id)
        return token

    # === Approvals ===

    def _handle_approval(self, event: Approval) -> None:
        users = self._touch_users(event.owner, event.approved)
        self._record(event, users, self._token_ids([event.token_id]))

    def _handle_approval_for_all(self, event: ApprovalForAll) -> None:
        users = self._touch_users(event.owner, event.operator)
        self._record(event, users)

    # === Contract-wide parameters ===

    def _handle_artist_second_sale_percent_updated(self, event: ArtistSecondSalePercentUpdated) -> None:
        self.context.global_state.get_or_initialise()
        self.context.global_state.refresh()
        self._record(event)

    def _handle_platform_address_updated(self, event: PlatformAddressUpdated) -> None:
        self.context.global_state.get_or_initialise()
        self.context.global_state.refresh()
        self._record(event, self._touch_users(event.platform_address))

    def _handle_creator_whitelisted(self, event: CreatorWhitelisted) -> None:
        self.context.global_state.get_or_initialise()
        self.context.global_state.refresh()

        self.context.tokens.create_tokens_from_master(event.token_id, event.layer_count)

        users = self._touch_users(event.creator)
        tokens = self._token_ids(range(event.token_id, event.token_id + event.layer_count + 1))
        self._record(event, users, tokens)

    # === Bids and prices ===

    def _handle_bid_proposed(self, event: BidProposed) -> None:
        users = self._touch_users(event.bidder)
        token = self.context.tokens.get_or_initialise_token(event.token_id)
        if token is None:
            self.log_warning("Bid proposed on non-existent token",
                            token_id=event.token_id,
                            tx_hash=event.tx_hash)
            self._record(event, users)
            return

        self.context.market.propose_bid(token, event.bidder, event.bid_amount,
                                        event.tx_hash, event.timestamp)
        self._record(event, users, [token.id])

    def _handle_bid_withdrawn(self, event: BidWithdrawn) -> None:
        token = self.context.tokens.get_or_initialise_token(event.token_id)
        if token is None:
            self.log_warning("Bid withdrawn on non-existent token",
                            token_id=event.token_id,
                            tx_hash=event.tx_hash)
            self._record(event)
            return

        users = []
        bid = self.context.market.withdraw_bid(token, event.timestamp)
        if bid is not None:
            users.append(bid.bidder)
        self._record(event, users, [token.id])

    def _handle_buy_price_set(self, event: BuyPriceSet) -> None:
        token = self.context.tokens.get_or_initialise_token(event.token_id)
        if token is None:
            self.log_warning("Buy price set on non-existent token",
                            token_id=event.token_id,
                            tx_hash=event.tx_hash)
            self._record(event)
            return

        self.context.market.set_buy_price(token, event.price)
        users = [token.owner] if token.owner else []
        self._record(event, users, [token.id])

    def _handle_token_sale(self, event: TokenSale) -> None:
        token = self._require_token(event.token_id, event.name)
        sale = self.context.market.record_sale(token, event.buyer, event.sale_price,
                                               event.tx_hash, event.timestamp)
        users = [sale.buyer] + ([sale.seller] if sale.seller else [])
        self._record(event, users, [token.id])

    # === Ownership and permissions ===

    def _handle_transfer(self, event: Transfer) -> None:
        token = self._require_token(event.token_id, event.name)

        minted = normalize_address(event.from_address) == ZERO_ADDRESS
        if minted and self.context.tokens.needs_layer_link(token):
            self.context.tokens.link_master_layers()
            token = self.context.tokens.require_token(event.token_id)

        self.context.market.record_transfer(token, event.from_address, event.to_address,
                                            event.tx_hash, event.timestamp)
        users = self._touch_users(event.from_address, event.to_address)
        self._record(event, users, [token.id])

    def _handle_permission_updated(self, event: PermissionUpdated) -> None:
        users = self._touch_users(event.token_owner, event.permissioned)
        token = self.context.tokens.get_or_initialise_token(event.token_id)
        if token is None:
            self.log_warning("Permission updated on non-existent token",
                            token_id=event.token_id,
                            tx_hash=event.tx_hash)
            self._record(event, users)
            return

        token_owner = normalize_address(event.token_owner)
        if token.owner == token_owner:
            permissioned = normalize_address(event.permissioned)
            token.permissioned_address = None if permissioned == ZERO_ADDRESS else permissioned
            self.context.store.save(token)
        else:
            self.log_debug("Permission granted by non-current owner",
                          token_id=event.token_id,
                          user=token_owner)
        self._record(event, users, [token.id])

    def _handle_platform_sale_percentage_updated(self, event: PlatformSalePercentageUpdated) -> None:
        token = self.context.tokens.get_or_initialise_token(event.token_id)
        if token is None:
            self.log_warning("Sale percentages updated on non-existent token",
                            token_id=event.token_id,
                            tx_hash=event.tx_hash)
            self._record(event)
            return

        token.platform_first_sale_percentage = event.platform_first_percentage
        token.platform_second_sale_percentage = event.platform_second_percentage
        self.context.store.save(token)
        self._record(event, tokens=[token.id])

    # === Levers ===

    def _handle_control_lever_updated(self, event: ControlLeverUpdated) -> None:
        token = self._require_token(event.token_id, event.name)
        if token.is_master:
            self.log_critical("Lever update on a master token", token_id=event.token_id)
            raise InvariantViolation("ControlLeverUpdated for master token", token_id=event.token_id)

        self.context.levers.apply_update(event)
        users = [token.owner] if token.owner else []
        self._record(event, users, [token.id])
