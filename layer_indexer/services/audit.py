# layer_indexer/services/audit.py

from typing import Iterable, List, Optional, Sequence

from ..core.logging import LoggingMixin
from ..store import EntityStoreInterface
from ..types import (
    ContractEvent,
    EventParam,
    EventParams,
    EvmHash,
    StateChange,
)
from ..types import ids
from ..utils.collections import extend_unique


class AuditTrail(LoggingMixin):
    """
    Append-only per-transaction record of every handled event.

    One StateChange per transaction hash collects an EventParams group per
    event occurrence (indexed 0, 1, 2... in arrival order) and the
    deduplicated ids of the users and tokens those events touched.
    """

    def __init__(self, store: EntityStoreInterface, contract_version: int):
        self.store = store
        self.contract_version = contract_version

    def get_or_initialise_state_change(self, tx_hash: EvmHash) -> StateChange:
        state_change = self.store.load(StateChange, tx_hash)
        if state_change is None:
            state_change = StateChange(id=tx_hash)
        return state_change

    def record_event(self,
                     tx_hash: EvmHash,
                     timestamp: int,
                     block_number: int,
                     event_name: str,
                     param_values: Sequence[str],
                     param_names: Sequence[str],
                     param_types: Sequence[str],
                     touched_users: Iterable[str] = (),
                     touched_tokens: Iterable[str] = (),
                     contract_version: Optional[int] = None) -> EventParams:
        if not (len(param_values) == len(param_names) == len(param_types)):
            raise ValueError(
                f"Parameter lists differ in length for {event_name}: "
                f"{len(param_values)} values, {len(param_names)} names, {len(param_types)} types"
            )

        state_change = self.get_or_initialise_state_change(tx_hash)
        event_index = len(state_change.tx_event_param_list)

        param_ids: List[str] = []
        for param_index, (value, name, abi_type) in enumerate(zip(param_values, param_names, param_types)):
            param = EventParam(
                id=ids.event_param_id(tx_hash, event_index, param_index),
                index=param_index,
                param_name=name,
                param_type=abi_type,
                param=value,
            )
            self.store.save(param)
            param_ids.append(param.id)

        event_params = EventParams(
            id=ids.event_params_id(tx_hash, event_index),
            index=event_index,
            event_name=event_name,
            params=param_ids,
        )
        self.store.save(event_params)

        state_change.timestamp = timestamp
        state_change.block_number = block_number
        state_change.contract_version = (
            contract_version if contract_version is not None else self.contract_version
        )
        state_change.tx_event_param_list.append(event_params.id)
        extend_unique(state_change.user_changes, touched_users)
        extend_unique(state_change.token_changes, touched_tokens)
        self.store.save(state_change)

        self.log_debug("Event recorded",
                      tx_hash=tx_hash,
                      event_name=event_name,
                      event_index=event_index,
                      param_count=len(param_ids))
        return event_params

    def record(self, event: ContractEvent,
               touched_users: Iterable[str] = (),
               touched_tokens: Iterable[str] = ()) -> EventParams:
        return self.record_event(
            tx_hash=event.tx_hash,
            timestamp=event.timestamp,
            block_number=event.block_number,
            event_name=event.name,
            param_values=event.param_values(),
            param_names=event.param_names(),
            param_types=event.param_types(),
            touched_users=touched_users,
            touched_tokens=touched_tokens,
        )
