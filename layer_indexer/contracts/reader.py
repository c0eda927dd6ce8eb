# layer_indexer/contracts/reader.py

from typing import Any, Dict, List

from web3 import Web3
from web3.contract import Contract
from web3.exceptions import ContractLogicError, BadFunctionCallOutput

from .interfaces import ContractReaderInterface, ContractReverted
from ..types import ContractReadError, EvmAddress


class Web3ContractReader(ContractReaderInterface):
    """
    Contract reader over a web3 HTTP provider.

    Reads are executed at ``block_identifier`` so that state matches the
    block of the event being handled.
    """

    def __init__(self, w3: Web3, address: EvmAddress, abi: List[Dict[str, Any]]):
        super().__init__()
        if not abi:
            raise ValueError("Contract ABI is required for Web3ContractReader")
        self.w3 = w3
        self.address = Web3.to_checksum_address(address)
        self.contract: Contract = w3.eth.contract(address=self.address, abi=abi)
        self.call_count = 0

        self.log_info("Contract reader initialized", contract_address=self.address)

    def _call(self, function_name: str, *args) -> Any:
        self.call_count += 1
        args = tuple(
            Web3.to_checksum_address(arg) if isinstance(arg, str) and Web3.is_address(arg) else arg
            for arg in args
        )
        try:
            func = getattr(self.contract.functions, function_name)
            return func(*args).call(block_identifier=self.block_identifier)
        except (ContractLogicError, BadFunctionCallOutput) as e:
            raise ContractReverted(function_name, str(e)) from e
        except Exception as e:
            self.log_error("Contract call failed",
                          function_name=function_name,
                          block_number=self.block_identifier,
                          error=str(e),
                          exception_type=type(e).__name__)
            raise ContractReadError(function_name, str(e)) from e
