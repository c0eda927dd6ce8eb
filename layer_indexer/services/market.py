# layer_indexer/services/market.py

from typing import Optional

from ..core.logging import LoggingMixin
from ..store import EntityStoreInterface
from ..types import (
    Bid,
    EvmAddress,
    EvmHash,
    Sale,
    Token,
    TokenTransfer,
    User,
    ZERO_ADDRESS,
)
from ..types import ids
from ..types.ids import normalize_address
from ..utils.collections import append_unique, remove_value
from .global_state import GlobalStateTracker
from .tokens import TokenReconciler
from .users import UserRegistry


class MarketLedger(LoggingMixin):
    """
    Bids, sales, transfers and buy prices for a token.

    At most one bid per token is active: ``Token.current_bid``. Every bid that
    stops being current is deactivated and archived in ``past_bids``; bids are
    never deleted.
    """

    def __init__(self,
                 store: EntityStoreInterface,
                 users: UserRegistry,
                 tokens: TokenReconciler,
                 global_state: GlobalStateTracker):
        self.store = store
        self.users = users
        self.tokens = tokens
        self.global_state = global_state

    def _archive_current_bid(self, token: Token) -> Optional[Bid]:
        if not token.current_bid:
            return None
        bid = self.store.load(Bid, token.current_bid)
        if bid is None:
            self.log_warning("Current bid reference has no record",
                            token_id=token.token_id,
                            bid=token.current_bid)
            token.current_bid = None
            return None
        bid.bid_active = False
        self.store.save(bid)
        append_unique(token.past_bids, bid.id)
        token.current_bid = None
        return bid

    def _seller_from_transfer(self, token: Token, buyer: EvmAddress, tx_hash: EvmHash) -> Optional[EvmAddress]:
        """Seller when a Transfer in the same transaction already moved ownership to the buyer"""
        transfer = self.store.load(TokenTransfer, ids.transfer_id(token.token_id, tx_hash))
        if transfer is not None and transfer.to_address == buyer:
            return transfer.from_address

        self.log_warning("Buyer already owns token without a transfer in this transaction",
                        token_id=token.token_id,
                        tx_hash=tx_hash,
                        user=buyer)
        return buyer

    def _owned_list(self, user: User, token: Token):
        return user.owned_masters if token.is_master else user.owned_controllers

    # === Bids ===

    def propose_bid(self, token: Token, bidder: EvmAddress, bid_amount: int,
                    tx_hash: EvmHash, timestamp: int) -> Bid:
        user = self.users.get_or_create(bidder)

        bid = Bid(
            id=ids.bid_id(token.token_id, tx_hash),
            token=token.id,
            bidder=user.id,
            bid_amount=bid_amount,
            timestamp=timestamp,
            bid_active=True,
            bid_accepted=False,
        )

        previous = self._archive_current_bid(token)

        self.store.save(bid)
        token.current_bid = bid.id
        self.store.save(token)

        append_unique(user.bids, bid.id)
        self.users.save(user)

        self.log_info("Bid proposed",
                     token_id=token.token_id,
                     tx_hash=tx_hash,
                     bid_amount=bid_amount,
                     user=user.id,
                     superseded=previous.id if previous else None)
        return bid

    def withdraw_bid(self, token: Token, timestamp: int) -> Optional[Bid]:
        if not token.current_bid:
            self.log_warning("Withdrawn bid is not defined", token_id=token.token_id)
            return None

        bid = self.store.load(Bid, token.current_bid)
        if bid is None:
            self.log_warning("Withdrawn bid has no record",
                            token_id=token.token_id,
                            bid=token.current_bid)
            return None

        bid.bid_active = False
        bid.bid_withdrawn_timestamp = timestamp
        self.store.save(bid)

        append_unique(token.past_bids, bid.id)
        token.current_bid = None
        self.store.save(token)

        self.log_info("Bid withdrawn", token_id=token.token_id, bid=bid.id)
        return bid

    # === Prices, sales and transfers ===

    def set_buy_price(self, token: Token, price: int) -> None:
        token.current_buy_price = price
        self.store.save(token)

    def record_sale(self, token: Token, buyer: EvmAddress, sale_price: int,
                    tx_hash: EvmHash, timestamp: int) -> Sale:
        buyer_user = self.users.get_or_create(buyer)

        seller_id = token.owner
        if seller_id == buyer_user.id:
            seller_id = self._seller_from_transfer(token, buyer_user.id, tx_hash)

        sale_number = token.number_of_sales + 1
        sale = Sale(
            id=ids.sale_id(token.token_id, sale_number),
            token=token.id,
            buyer=buyer_user.id,
            seller=seller_id,
            sale_price=sale_price,
            sale_number=sale_number,
            timestamp=timestamp,
            tx_hash=tx_hash,
        )

        if token.current_bid:
            bid = self.store.load(Bid, token.current_bid)
            if (bid is not None and bid.bid_active
                    and bid.bid_amount == sale_price
                    and bid.bidder == buyer_user.id):
                bid.bid_accepted = True
                self.store.save(bid)
                sale.is_bid_sale = True
                sale.bid = bid.id
        self._archive_current_bid(token)
        self.store.save(sale)

        token.owner = buyer_user.id
        token.current_buy_price = 0
        token.number_of_sales = sale_number
        token.token_did_have_first_sale = True
        token.last_sale = sale.id
        token.sales.append(sale.id)
        # Delegates are keyed by owner, so a buy-back restores the earlier delegate
        token.permissioned_address = self.tokens.get_permissioned_address(token.token_id, buyer_user.id)
        self.store.save(token)

        append_unique(buyer_user.buys, sale.id)
        self.users.save(buyer_user)

        if seller_id and seller_id != ZERO_ADDRESS:
            seller = self.users.get_or_create(seller_id)
            append_unique(seller.sells, sale.id)
            self.users.save(seller)

        self.global_state.add_sale_volume(sale_price)

        self.log_info("Token sold",
                     token_id=token.token_id,
                     tx_hash=tx_hash,
                     sale_price=sale_price,
                     is_bid_sale=sale.is_bid_sale,
                     user=buyer_user.id)
        return sale

    def record_transfer(self, token: Token, from_address: EvmAddress, to_address: EvmAddress,
                        tx_hash: EvmHash, timestamp: int) -> TokenTransfer:
        from_address = normalize_address(from_address)
        to_address = normalize_address(to_address)

        transfer = TokenTransfer(
            id=ids.transfer_id(token.token_id, tx_hash),
            token=token.id,
            from_address=from_address,
            to_address=to_address,
            timestamp=timestamp,
        )
        self.store.save(transfer)
        append_unique(token.transfers, transfer.id)

        if from_address != ZERO_ADDRESS:
            append_unique(token.past_owners, from_address)
            if from_address != to_address:
                previous_owner = self.users.get_or_create(from_address)
                remove_value(self._owned_list(previous_owner, token), token.sub_id)
                self.users.save(previous_owner)

        new_owner = self.users.get_or_create(to_address)
        append_unique(self._owned_list(new_owner, token), token.sub_id)
        self.users.save(new_owner)

        token.owner = new_owner.id
        token.current_buy_price = 0
        token.permissioned_address = self.tokens.get_permissioned_address(token.token_id, new_owner.id)
        self.store.save(token)

        self.log_info("Token transferred",
                     token_id=token.token_id,
                     tx_hash=tx_hash,
                     from_address=from_address,
                     user=new_owner.id)
        return transfer
