# tests/conftest.py
"""
pytest configuration and fixtures for the layer indexer
"""

from typing import Dict, List, Optional, Sequence, Tuple

import pytest

from layer_indexer.contracts import ContractReaderInterface, ContractReverted
from layer_indexer.core.logging import IndexerLogger
from layer_indexer.database import DatabaseManager, SqlEntityStore
from layer_indexer.handlers import ControlTokenHandler
from layer_indexer.services import IndexingContext
from layer_indexer.store import InMemoryEntityStore
from layer_indexer.types import DatabaseConfig, ZERO_ADDRESS

ARTIST = "0x" + "a1" * 20
ARTIST_2 = "0x" + "a2" * 20
OWNER = "0x" + "0e" * 20
SELLER = "0x" + "5e" * 20
BIDDER_B = "0x" + "bb" * 20
BIDDER_C = "0x" + "cc" * 20
DELEGATE = "0x" + "de" * 20
PLATFORM = "0x" + "f0" * 20

TX_1 = "0x" + "11" * 32
TX_2 = "0x" + "22" * 32
TX_3 = "0x" + "33" * 32
TX_4 = "0x" + "44" * 32

CONTRACT = "0x" + "c0" * 20


class FakeContractReader(ContractReaderInterface):
    """
    Scriptable contract state.

    Every read is recorded in ``calls``. Reads for state that does not exist
    raise ContractReverted the way the deployed contract does.
    """

    def __init__(self):
        super().__init__()
        self.calls: List[Tuple[str, tuple]] = []

        self.expected_supply = 1000
        self.min_bid_increase = 10
        self.artist_second_sale = 10
        self.platform = PLATFORM

        self.owners: Dict[int, str] = {}
        self.creators: Dict[int, List[str]] = {}
        self.mappings: Dict[int, Tuple[int, int, bool, bool]] = {}
        self.levers: Dict[int, List[int]] = {}
        self.whitelist: Dict[int, Tuple[str, int]] = {}
        self.first_sale: Dict[int, bool] = {}
        self.sale_percentages: Dict[int, Tuple[int, int]] = {}
        self.permissions: Dict[Tuple[str, int], str] = {}
        self.uris: Dict[int, str] = {}

    # === Scenario helpers ===

    def mint_master(self, token_id: int, owner: str, creators: Sequence[str] = (ARTIST,),
                    layer_count: int = 0) -> None:
        self.owners[token_id] = owner
        self.creators[token_id] = list(creators)
        self.whitelist[token_id] = (creators[0] if creators else ZERO_ADDRESS, layer_count)
        self.uris[token_id] = f"ipfs://master/{token_id}"

    def mint_controller(self, token_id: int, owner: str, creators: Sequence[str] = (ARTIST,),
                        levers: Sequence[Tuple[int, int, int]] = ((0, 10, 5),),
                        is_setup: bool = True, remaining_updates: int = 100) -> None:
        self.owners[token_id] = owner
        self.creators[token_id] = list(creators)
        self.mappings[token_id] = (len(levers), remaining_updates, True, is_setup)
        self.levers[token_id] = [value for triple in levers for value in triple]
        self.uris[token_id] = f"ipfs://layer/{token_id}"

    def read_count(self, function_name: Optional[str] = None) -> int:
        if function_name is None:
            return len(self.calls)
        return sum(1 for name, _ in self.calls if name == function_name)

    # === Reader ===

    def _call(self, function_name: str, *args):
        self.calls.append((function_name, args))

        if function_name == "expectedTokenSupply":
            return self.expected_supply
        if function_name == "minBidIncreasePercent":
            return self.min_bid_increase
        if function_name == "artistSecondSalePercentage":
            return self.artist_second_sale
        if function_name == "platformAddress":
            return self.platform

        if function_name == "ownerOf":
            return self._lookup(function_name, self.owners, args[0])
        if function_name == "tokenURI":
            return self._lookup(function_name, self.uris, args[0])
        if function_name == "uniqueTokenCreators":
            token_id, index = args
            creators = self.creators.get(token_id, [])
            if index >= len(creators):
                raise ContractReverted(function_name)
            return creators[index]
        if function_name == "permissionedControllers":
            owner, token_id = args
            return self.permissions.get((owner.lower(), token_id), ZERO_ADDRESS)
        if function_name == "controlTokenMapping":
            return self.mappings.get(args[0], (0, 0, False, False))
        if function_name == "getControlToken":
            token_id = args[0]
            mapping = self.mappings.get(token_id)
            if mapping is None or not mapping[2]:
                raise ContractReverted(function_name, "Control token does not exist")
            return self.levers.get(token_id, [])
        if function_name == "creatorWhitelist":
            return self.whitelist.get(args[0], (ZERO_ADDRESS, 0))
        if function_name == "tokenDidHaveFirstSale":
            return self.first_sale.get(args[0], False)
        if function_name == "platformFirstSalePercentages":
            return self.sale_percentages.get(args[0], (85, 10))[0]
        if function_name == "platformSecondSalePercentages":
            return self.sale_percentages.get(args[0], (85, 10))[1]

        raise AssertionError(f"Unexpected contract read {function_name}{args}")

    @staticmethod
    def _lookup(function_name: str, values: Dict[int, str], token_id: int):
        if token_id not in values:
            raise ContractReverted(function_name)
        return values[token_id]


@pytest.fixture
def reader():
    return FakeContractReader()


@pytest.fixture
def store():
    return InMemoryEntityStore()


@pytest.fixture
def context(store, reader):
    return IndexingContext(store, reader, contract_version=2)


@pytest.fixture
def handler(context):
    return ControlTokenHandler(context)


@pytest.fixture
def db_manager():
    manager = DatabaseManager(DatabaseConfig(url="sqlite://"))
    manager.initialize()
    manager.create_tables()
    yield manager
    manager.shutdown()


@pytest.fixture
def sql_store(db_manager):
    return SqlEntityStore(db_manager)


@pytest.fixture
def logger():
    """Get test logger"""
    return IndexerLogger.get_logger('testing.pytest')


@pytest.fixture
def make_event():
    """Build a typed event with a default log envelope"""

    def _make_event(event_cls, tx_hash: str = TX_1, log_index: int = 0,
                    block_number: int = 100, timestamp: int = 1_600_000_000, **params):
        params.setdefault("contract_address", CONTRACT)
        return event_cls(
            tx_hash=tx_hash,
            log_index=log_index,
            block_number=block_number,
            timestamp=timestamp,
            **params,
        )

    return _make_event
