# layer_indexer/services/__init__.py

from .audit import AuditTrail
from .context import IndexingContext
from .global_state import GlobalStateTracker
from .levers import LeverLedger
from .market import MarketLedger
from .tokens import TokenReconciler
from .users import UserRegistry
