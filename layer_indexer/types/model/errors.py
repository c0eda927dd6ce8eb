# layer_indexer/types/model/errors.py

from typing import Optional, Dict, Any
import hashlib
import msgspec
from msgspec import Struct

from ..new import ErrorId, EvmHash


class IndexerError(Exception):
    """Base class for indexer failures"""


class InvariantViolation(IndexerError):
    """State that must exist per contract rules is missing. Aborts the handler."""

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.context = context


class ContractReadError(IndexerError):
    """A contract read failed for a reason other than a revert"""

    def __init__(self, function_name: str, message: str):
        super().__init__(f"{function_name}: {message}")
        self.function_name = function_name


class ConfigurationError(IndexerError):
    pass


class ProcessingError(Struct):
    """A log or event the pipeline stopped on"""
    stage: str  # "decode" or "handle"
    error_type: str  # "decode_failed", "invariant_violation", "read_failed", "handler_failed"
    message: str
    context: Dict[str, Any] = {}
    error_id: Optional[ErrorId] = None

    def __post_init__(self) -> None:
        if not self.error_id:
            self.error_id = self.generate_error_id()

    def generate_error_id(self) -> ErrorId:
        content = msgspec.msgpack.encode({
            "stage": self.stage,
            "error_type": self.error_type,
            "message": self.message,
            "context": self.context,
        })
        return ErrorId(hashlib.sha256(content).hexdigest()[:12])


def _location(tx_hash: Optional[EvmHash], log_index: Optional[int], **extra) -> Dict[str, Any]:
    context = {key: value for key, value in extra.items() if value is not None}
    if tx_hash:
        context["tx_hash"] = tx_hash
    if log_index is not None:
        context["log_index"] = log_index
    return context


def create_handler_error(
    error_type: str,
    message: str,
    tx_hash: Optional[EvmHash] = None,
    log_index: Optional[int] = None,
    event_name: Optional[str] = None,
    block_number: Optional[int] = None,
) -> ProcessingError:
    return ProcessingError(
        stage="handle",
        error_type=error_type,
        message=message,
        context=_location(tx_hash, log_index, event_name=event_name, block_number=block_number),
    )


def create_decode_error(
    error_type: str,
    message: str,
    tx_hash: Optional[EvmHash] = None,
    log_index: Optional[int] = None,
    block_number: Optional[int] = None,
) -> ProcessingError:
    return ProcessingError(
        stage="decode",
        error_type=error_type,
        message=message,
        context=_location(tx_hash, log_index, block_number=block_number),
    )
