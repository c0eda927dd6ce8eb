# layer_indexer/pipeline/indexing_pipeline.py

from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from msgspec import Struct, field

from ..clients import RpcClient
from ..contracts import ContractReaderInterface
from ..core.logging import IndexerLogger, event_context, log_with_context, INFO, DEBUG, WARNING, ERROR
from ..decode import LogDecoder
from ..handlers import BaseHandler
from ..store import EntityStoreInterface
from ..types import (
    ContractEvent,
    ContractReadError,
    EvmAddress,
    IndexingCursor,
    InvariantViolation,
    ProcessingError,
    create_decode_error,
    create_handler_error,
)
from ..types import ids
from ..types.ids import normalize_hash

DEFAULT_BATCH_SIZE = 2000

# Events whose handlers need the gas data of their transaction
GAS_EVENTS = frozenset({"ControlLeverUpdated"})


class PipelineResult(Struct, kw_only=True):
    from_block: int
    to_block: int
    logs_fetched: int = 0
    events_processed: int = 0
    events_skipped: int = 0
    events_already_applied: int = 0
    last_processed_block: Optional[int] = None
    errors: List[ProcessingError] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


class IndexingPipeline:
    """
    Block range indexing: RPC logs -> decode -> handle -> store.

    Events are applied strictly in (block number, log index) order, one store
    transaction per event, with contract reads pinned to the event's block.
    The first failing event halts the run; its transaction is rolled back and
    the failure is reported in the result.

    Progress is kept in an ``IndexingCursor`` saved with every applied event.
    Handlers are not idempotent, so logs the cursor already covers are never
    applied again, whatever range a run is given.
    """

    def __init__(self,
                 store: EntityStoreInterface,
                 reader: ContractReaderInterface,
                 handler: BaseHandler,
                 decoder: LogDecoder,
                 rpc_client: Optional[RpcClient] = None,
                 contract_address: Optional[EvmAddress] = None):
        self.store = store
        self.reader = reader
        self.handler = handler
        self.decoder = decoder
        self.rpc_client = rpc_client
        self.contract_address = contract_address

        self.logger = IndexerLogger.get_logger('pipeline.indexing_pipeline')

        log_with_context(self.logger, INFO, "IndexingPipeline initialized",
                        contract_address=contract_address,
                        handler_name=type(handler).__name__)

    def run(self, from_block: int, to_block: int, batch_size: int = DEFAULT_BATCH_SIZE) -> PipelineResult:
        if self.rpc_client is None or self.contract_address is None:
            raise ValueError("run requires an RPC client and contract address")
        if from_block > to_block:
            raise ValueError(f"from_block {from_block} is after to_block {to_block}")
        if batch_size < 1:
            raise ValueError("batch_size must be positive")

        result = PipelineResult(from_block=from_block, to_block=to_block)

        log_with_context(self.logger, INFO, "Starting indexing run",
                        from_block=from_block,
                        to_block=to_block,
                        batch_size=batch_size)

        start = from_block
        while start <= to_block:
            end = min(start + batch_size - 1, to_block)

            logs = self.rpc_client.get_logs(self.contract_address, start, end)
            result.logs_fetched += len(logs)

            events, decode_errors = self.decode_logs(logs)
            if decode_errors:
                result.errors.extend(decode_errors)
                break

            self.process_events(events, result)
            if result.errors:
                break

            with self.store.transaction():
                self._advance_cursor(self.contract_address, end, None)
            self.rpc_client.clear_block_cache()

            result.last_processed_block = end
            start = end + 1

        log_with_context(self.logger, INFO if result.success else ERROR, "Indexing run finished",
                        from_block=from_block,
                        to_block=to_block,
                        logs_fetched=result.logs_fetched,
                        events_processed=result.events_processed,
                        events_skipped=result.events_skipped,
                        events_already_applied=result.events_already_applied,
                        last_processed_block=result.last_processed_block,
                        error_count=len(result.errors))
        return result

    def decode_logs(self, logs: Sequence[Mapping[str, Any]]) -> Tuple[List[ContractEvent], List[ProcessingError]]:
        events = []
        errors = []

        for log in sorted(logs, key=lambda entry: (int(entry["blockNumber"]), int(entry["logIndex"]))):
            if log.get("removed"):
                continue

            name = self.decoder.event_name(log)
            if name is None:
                continue

            tx_hash = normalize_hash(log["transactionHash"])
            try:
                timestamp = self.rpc_client.get_block_timestamp(int(log["blockNumber"]))
                gas: Dict[str, int] = {}
                if name in GAS_EVENTS:
                    gas = self.rpc_client.get_transaction_gas(tx_hash)
                event = self.decoder.decode(log, timestamp, **gas)
            except Exception as e:
                log_with_context(self.logger, ERROR, "Failed to decode log",
                                tx_hash=tx_hash,
                                log_index=log.get("logIndex"),
                                event_name=name,
                                error=str(e),
                                exception_type=type(e).__name__)
                errors.append(create_decode_error(
                    error_type="decode_failed",
                    message=str(e),
                    tx_hash=tx_hash,
                    log_index=int(log["logIndex"]),
                    block_number=int(log["blockNumber"]),
                ))
                break

            if event is not None:
                events.append(event)

        return events, errors

    # === Cursor ===

    def load_cursor(self, contract_address: Optional[EvmAddress] = None) -> Optional[IndexingCursor]:
        address = contract_address or self.contract_address
        if address is None:
            return None
        return self.store.load(IndexingCursor, ids.cursor_id(address))

    def resume_block(self, start_block: int) -> int:
        """First block a run has to fetch: after the cursor, never before start_block"""
        cursor = self.load_cursor()
        if cursor is None:
            return start_block
        return max(start_block, cursor.next_block())

    def _advance_cursor(self, contract_address: EvmAddress, block_number: int,
                        log_index: Optional[int]) -> None:
        cursor = self.load_cursor(contract_address)
        if cursor is None:
            cursor = IndexingCursor(
                id=ids.cursor_id(contract_address),
                contract_address=ids.normalize_address(contract_address),
                block_number=block_number,
                log_index=log_index,
            )
        else:
            if log_index is None:
                behind = (cursor.block_number > block_number
                          or (cursor.block_number == block_number and cursor.log_index is None))
            else:
                behind = cursor.covers(block_number, log_index)
            if behind:
                return
            cursor.block_number = block_number
            cursor.log_index = log_index
        self.store.save(cursor)

    # === Event application ===

    def process_event(self, event: ContractEvent) -> bool:
        """Apply one event in its own store transaction. Returns False if no handler took it."""
        with self.store.transaction():
            self.reader.at_block(event.block_number)
            handled = self.handler.handle(event)
            self._advance_cursor(event.contract_address, event.block_number, event.log_index)
            return handled

    def process_events(self, events: Sequence[ContractEvent],
                       result: Optional[PipelineResult] = None) -> PipelineResult:
        ordered = sorted(events, key=lambda e: e.sort_key)
        if result is None:
            blocks = [e.block_number for e in ordered] or [0]
            result = PipelineResult(from_block=min(blocks), to_block=max(blocks))

        for event in ordered:
            cursor = self.load_cursor(event.contract_address)
            if cursor is not None and cursor.covers(event.block_number, event.log_index):
                log_with_context(self.logger, DEBUG, "Event already applied", **event_context(event))
                result.events_already_applied += 1
                continue

            try:
                handled = self.process_event(event)
            except InvariantViolation as e:
                result.errors.append(self._handler_error("invariant_violation", e, event))
                break
            except ContractReadError as e:
                result.errors.append(self._handler_error("read_failed", e, event))
                break
            except Exception as e:
                log_with_context(self.logger, ERROR, "Unexpected handler failure",
                                **event_context(event, error=str(e),
                                                exception_type=type(e).__name__))
                result.errors.append(self._handler_error("handler_failed", e, event))
                break

            if handled:
                result.events_processed += 1
            else:
                result.events_skipped += 1

        log_with_context(self.logger, DEBUG, "Events processed",
                        event_count=len(ordered),
                        events_processed=result.events_processed,
                        events_skipped=result.events_skipped,
                        events_already_applied=result.events_already_applied)
        return result

    def _handler_error(self, error_type: str, error: Exception, event: ContractEvent) -> ProcessingError:
        log_with_context(self.logger, WARNING, "Halting on failed event",
                        **event_context(event, error_type=error_type))
        return create_handler_error(
            error_type=error_type,
            message=str(error),
            tx_hash=event.tx_hash,
            log_index=event.log_index,
            event_name=event.name,
            block_number=event.block_number,
        )
