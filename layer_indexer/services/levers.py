# layer_indexer/services/levers.py

from ..core.logging import LoggingMixin
from ..contracts import ContractReaderInterface, ContractReverted
from ..store import EntityStoreInterface
from ..types import (
    ControlLeverUpdated,
    InvariantViolation,
    LayerUpdate,
    TokenController,
    TokenControlLever,
)
from ..types import ids
from ..utils.collections import append_unique


class LeverLedger(LoggingMixin):
    """Control levers of controller tokens and their update history"""

    def __init__(self, store: EntityStoreInterface, reader: ContractReaderInterface):
        self.store = store
        self.reader = reader

    def _load_controller(self, token_id: int) -> TokenController:
        controller = self.store.load(TokenController, ids.controller_id(token_id))
        if controller is None:
            self.log_critical("Controller record missing for lever access", token_id=token_id)
            raise InvariantViolation("TokenController does not exist", token_id=token_id)
        return controller

    def get_or_initialise_lever(self, token_id: int, lever_id: int) -> TokenControlLever:
        lever = self.store.load(TokenControlLever, ids.lever_id(token_id, lever_id))
        if lever is not None:
            return lever

        controller = self._load_controller(token_id)
        lever = TokenControlLever(
            id=ids.lever_id(token_id, lever_id),
            lever_id=lever_id,
            layer=controller.id,
        )
        append_unique(controller.levers, lever.id)
        self.store.save(controller)
        self.store.save(lever)

        self.log_debug("Lever initialised", token_id=token_id, lever_id=lever_id)
        return lever

    def sync_levers(self, token_id: int) -> int:
        """Pull bounds and current values for every lever from the contract"""
        try:
            table = self.reader.get_control_token(token_id)
        except ContractReverted as e:
            self.log_critical("Lever table unavailable for set up controller",
                             token_id=token_id,
                             error=str(e))
            raise InvariantViolation("getControlToken reverted for set up controller",
                                     token_id=token_id) from e

        for bounds in table:
            lever = self.get_or_initialise_lever(token_id, bounds.lever_id)
            lever.min_value = bounds.min_value
            lever.max_value = bounds.max_value
            lever.current_value = bounds.current_value
            self.store.save(lever)

        self.log_debug("Levers synchronised", token_id=token_id, lever_count=len(table))
        return len(table)

    def apply_update(self, event: ControlLeverUpdated) -> LayerUpdate:
        token_id = event.token_id
        if not (len(event.lever_ids) == len(event.previous_values) == len(event.updated_values)):
            self.log_critical("Lever update arrays differ in length",
                             token_id=token_id,
                             tx_hash=event.tx_hash)
            raise InvariantViolation("Mismatched lever update arrays", token_id=token_id)

        controller = self._load_controller(token_id)
        update_number = controller.number_of_updates + 1
        cost = event.gas_price * event.gas_used

        update = LayerUpdate(
            id=ids.layer_update_id(token_id, update_number),
            layer=controller.id,
            update_number=update_number,
            tx_hash=event.tx_hash,
            timestamp=event.timestamp,
            gas_price=event.gas_price,
            gas_used=event.gas_used,
            cost_in_wei=cost,
            priority_tip=event.priority_tip,
        )

        for lever_id, previous_value, updated_value in zip(
                event.lever_ids, event.previous_values, event.updated_values):
            lever = self.get_or_initialise_lever(token_id, lever_id)
            lever.previous_value = previous_value
            lever.current_value = updated_value
            lever.number_of_updates += 1
            lever.latest_update = update.id
            self.store.save(lever)
            update.levers.append(lever.id)

        self.store.save(update)

        # Lever initialisation may have rewritten the controller
        controller = self._load_controller(token_id)
        count = controller.number_of_updates
        if count == 0:
            controller.average_update_cost = cost
        else:
            controller.average_update_cost = (controller.average_update_cost * count + cost) // (count + 1)
        controller.number_of_updates = count + 1
        controller.num_remaining_updates = event.num_remaining_updates
        controller.update_history.append(update.id)
        self.store.save(controller)

        self.log_info("Control levers updated",
                     token_id=token_id,
                     tx_hash=event.tx_hash,
                     update_number=update_number,
                     lever_count=len(update.levers),
                     cost_in_wei=cost)
        return update
