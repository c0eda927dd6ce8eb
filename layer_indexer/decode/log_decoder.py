# layer_indexer/decode/log_decoder.py

from typing import Any, Dict, List, Mapping, Optional

from eth_utils import event_abi_to_log_topic
from hexbytes import HexBytes
from web3 import Web3
from web3._utils.events import get_event_data

from ..core.logging import LoggingMixin
from ..types import EVENT_TYPES, ContractEvent
from ..types.ids import normalize_address, normalize_hash


class LogDecoder(LoggingMixin):
    """
    Decode raw contract logs into typed events.

    Logs are matched on topic0 against the event ABIs of the contract. Logs
    with an unknown signature, or for an event with no typed counterpart,
    decode to None.
    """

    def __init__(self, abi: List[Dict[str, Any]], contract_address: Optional[str] = None):
        self.w3 = Web3()
        self.contract_address = normalize_address(contract_address) if contract_address else None
        self.event_abis: Dict[str, Dict[str, Any]] = {}

        for item in abi:
            if item.get("type") != "event":
                continue
            topic = self._topic_hex(event_abi_to_log_topic(item))
            self.event_abis[topic] = item

        self.log_debug("Log decoder initialized",
                      event_count=len(self.event_abis),
                      contract_address=self.contract_address)

    @staticmethod
    def _topic_hex(topic) -> str:
        return "0x" + HexBytes(topic).hex().removeprefix("0x").lower()

    def event_name(self, log: Mapping[str, Any]) -> Optional[str]:
        topics = log.get("topics") or []
        if not topics:
            return None
        event_abi = self.event_abis.get(self._topic_hex(topics[0]))
        return event_abi["name"] if event_abi else None

    def decode(self,
               log: Mapping[str, Any],
               timestamp: int,
               gas_price: int = 0,
               gas_used: int = 0) -> Optional[ContractEvent]:
        """
        Build the typed event for a log.

        Raises:
            ValueError: the log matches a known signature but its data does not decode
        """
        log_address = normalize_address(log.get("address"))
        if self.contract_address and log_address != self.contract_address:
            self.log_debug("Skipping log from other contract", contract_address=log_address)
            return None

        topics = log.get("topics") or []
        if not topics:
            return None

        event_abi = self.event_abis.get(self._topic_hex(topics[0]))
        if event_abi is None:
            self.log_debug("Unknown event signature", signature=self._topic_hex(topics[0]))
            return None

        event_cls = EVENT_TYPES.get(event_abi["name"])
        if event_cls is None:
            self.log_debug("No typed event for signature", event_name=event_abi["name"])
            return None

        try:
            event_data = get_event_data(self.w3.codec, event_abi, log)
        except Exception as e:
            self.log_error("Failed to decode log",
                          event_name=event_abi["name"],
                          tx_hash=normalize_hash(log.get("transactionHash")),
                          log_index=log.get("logIndex"),
                          error=str(e),
                          exception_type=type(e).__name__)
            raise ValueError(f"Could not decode {event_abi['name']} log: {e}") from e

        args = event_data["args"]
        params = {}
        for abi_name, attr, abi_type in event_cls.PARAMS:
            params[attr] = self._convert_arg(args[abi_name], abi_type)

        return event_cls(
            tx_hash=normalize_hash(log["transactionHash"]),
            log_index=self._to_int(log["logIndex"]),
            block_number=self._to_int(log["blockNumber"]),
            timestamp=timestamp,
            contract_address=log_address,
            gas_price=gas_price,
            gas_used=gas_used,
            **params,
        )

    def _to_int(self, value) -> int:
        if isinstance(value, str):
            return self.w3.to_int(hexstr=value)
        return int(value)

    def _convert_arg(self, value, abi_type: str):
        if abi_type == "address":
            return normalize_address(value)
        if abi_type.endswith("[]"):
            return [self._convert_arg(item, abi_type[:-2]) for item in value]
        if abi_type == "bool":
            return bool(value)
        return int(value)
