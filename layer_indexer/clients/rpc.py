# layer_indexer/clients/rpc.py

from typing import Any, Dict, List, Optional

from web3 import Web3

from ..core.logging import LoggingMixin
from ..types import EvmAddress, RpcConfig


class RpcClient(LoggingMixin):
    """
    A client for reading chain data over a web3 HTTP provider.
    """

    def __init__(self, config: RpcConfig, w3: Optional[Web3] = None):
        self.endpoint_url = config.endpoint_url
        self.w3 = w3 or Web3(Web3.HTTPProvider(config.endpoint_url,
                                               request_kwargs={"timeout": config.timeout}))
        self._timestamps: Dict[int, int] = {}

    def check_connection(self) -> None:
        if not self.w3.is_connected():
            raise ConnectionError("Failed to connect to RPC endpoint")

    def get_latest_block_number(self) -> int:
        return self.w3.eth.block_number

    def get_logs(self, address: EvmAddress, from_block: int, to_block: int) -> List[Dict[str, Any]]:
        """
        Get all logs emitted by a contract in a block range (inclusive).
        """
        logs = self.w3.eth.get_logs({
            "address": Web3.to_checksum_address(address),
            "fromBlock": from_block,
            "toBlock": to_block,
        })
        self.log_debug("Fetched logs",
                      from_block=from_block,
                      to_block=to_block,
                      log_count=len(logs))
        return [dict(log) for log in logs]

    def get_block_timestamp(self, block_number: int) -> int:
        if block_number not in self._timestamps:
            block = self.w3.eth.get_block(block_number)
            self._timestamps[block_number] = int(block["timestamp"])
        return self._timestamps[block_number]

    def clear_block_cache(self) -> None:
        """Drop cached block timestamps; the pipeline calls this after every batch"""
        self._timestamps.clear()

    def get_transaction_gas(self, tx_hash: str) -> Dict[str, int]:
        """
        Gas price and gas used for a mined transaction.

        Uses the receipt's effective gas price where the chain reports one and
        falls back to the transaction's gas price.
        """
        receipt = self.w3.eth.get_transaction_receipt(tx_hash)
        gas_price = receipt.get("effectiveGasPrice")
        if gas_price is None:
            gas_price = self.w3.eth.get_transaction(tx_hash)["gasPrice"]
        return {"gas_price": int(gas_price), "gas_used": int(receipt["gasUsed"])}
