# layer_indexer/types/model/contract.py

from typing import Any, Generic, Optional, TypeVar

from msgspec import Struct

from ..new import EvmAddress

T = TypeVar('T')


class CallResult(Struct, Generic[T]):
    """Outcome of a contract read that is allowed to revert"""
    value: Optional[T] = None
    reverted: bool = False

    @classmethod
    def ok(cls, value: Any) -> 'CallResult':
        return cls(value=value, reverted=False)

    @classmethod
    def revert(cls) -> 'CallResult':
        return cls(value=None, reverted=True)


class ControlTokenMapping(Struct):
    num_control_levers: int
    num_remaining_updates: int
    exists: bool
    is_setup: bool


class WhitelistReservation(Struct):
    creator: EvmAddress
    layer_count: int


class LeverBounds(Struct):
    lever_id: int
    min_value: int
    max_value: int
    current_value: int
