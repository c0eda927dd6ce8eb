# layer_indexer/handlers/base.py

from abc import ABC
from typing import Callable, Dict, Iterable, List

from ..core.logging import LoggingMixin, event_context
from ..services import IndexingContext
from ..types import ContractEvent, InvariantViolation
from ..types import ids


EVENT_KEYS = ("event_name", "tx_hash", "block_number", "log_index", "error")


class BaseHandler(ABC, LoggingMixin):
    def __init__(self, context: IndexingContext):
        self.context = context
        self.name = self.__class__.__name__
        self.handler_map: Dict[str, Callable[[ContractEvent], None]] = {}

    def handles(self, event_name: str) -> bool:
        return event_name in self.handler_map

    def handle(self, event: ContractEvent) -> bool:
        """
        Dispatch one event. Returns False when no handler is registered.

        Invariant violations abort the call and propagate to the caller,
        which owns the transaction boundary.
        """
        if not self.handler_map:
            self.log_error("Handler has no handler map configured",
                          handler_name=self.name)
            raise ValueError(f"Handler {self.name} has no handler map configured")

        handler = self.handler_map.get(event.name)
        if handler is None:
            self.log_debug("No handler found for event", **event_context(event))
            return False

        self.log_debug("Handling event", **event_context(event))
        try:
            handler(event)
        except InvariantViolation as e:
            self.log_error("Invariant violated, aborting event",
                          **event_context(event, error=str(e), **{
                              k: v for k, v in e.context.items() if k not in EVENT_KEYS}))
            raise
        return True

    # === Helpers shared by handlers ===

    def _touch_users(self, *addresses) -> List[str]:
        return self.context.users.touch(addresses)

    def _token_ids(self, token_ids: Iterable[int]) -> List[str]:
        return [ids.token_id(token_id) for token_id in token_ids]

    def _record(self, event: ContractEvent, users: Iterable[str] = (), tokens: Iterable[str] = ()) -> None:
        self.context.audit.record(event, touched_users=users, touched_tokens=tokens)
