# layer_indexer/services/context.py

from ..contracts import ContractReaderInterface
from ..core.logging import LoggingMixin
from ..store import EntityStoreInterface
from ..types import DEFAULT_CONTRACT_VERSION
from .audit import AuditTrail
from .global_state import GlobalStateTracker
from .levers import LeverLedger
from .market import MarketLedger
from .tokens import TokenReconciler
from .users import UserRegistry


class IndexingContext(LoggingMixin):
    """
    The collaborators every handler call needs, built once and passed explicitly.

    Nothing here caches entities; all state lives in the store.
    """

    def __init__(self,
                 store: EntityStoreInterface,
                 reader: ContractReaderInterface,
                 contract_version: int = DEFAULT_CONTRACT_VERSION):
        self.store = store
        self.reader = reader
        self.contract_version = contract_version

        self.global_state = GlobalStateTracker(store, reader)
        self.users = UserRegistry(store)
        self.levers = LeverLedger(store, reader)
        self.tokens = TokenReconciler(store, reader, self.global_state, self.users, self.levers)
        self.market = MarketLedger(store, self.users, self.tokens, self.global_state)
        self.audit = AuditTrail(store, contract_version)

        self.log_debug("Indexing context created",
                      store_type=type(store).__name__,
                      reader_type=type(reader).__name__,
                      contract_version=contract_version)
