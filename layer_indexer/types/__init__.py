# layer_indexer/types/__init__.py

from .constants import ZERO_ADDRESS, GLOBAL_STATE_ID, DEFAULT_CONTRACT_VERSION

from .new import (
    EvmAddress,
    EvmHash,
    EntityId,
    ErrorId,
)

# Configuration Types
from .configs.config import (
    DatabaseConfig,
    RpcConfig,
    ContractConfig,
    LoggingConfig,
)

# Errors
from .model.errors import (
    IndexerError,
    InvariantViolation,
    ContractReadError,
    ConfigurationError,
    ProcessingError,
    create_handler_error,
    create_decode_error,
)

# Contract read results
from .model.contract import (
    CallResult,
    ControlTokenMapping,
    WhitelistReservation,
    LeverBounds,
)

# Entities
from .model.entities import (
    Entity,
    SyncState,
    GlobalState,
    User,
    Token,
    TokenMaster,
    TokenController,
    TokenControlLever,
    LayerUpdate,
    Bid,
    Sale,
    TokenTransfer,
    StateChange,
    EventParams,
    EventParam,
    IndexingCursor,
    ENTITY_TYPES,
)

# Events
from .model.events import (
    ContractEvent,
    ContractEventUnion,
    EVENT_TYPES,
    Approval,
    ApprovalForAll,
    ArtistSecondSalePercentUpdated,
    BidProposed,
    BidWithdrawn,
    BuyPriceSet,
    ControlLeverUpdated,
    CreatorWhitelisted,
    PermissionUpdated,
    PlatformAddressUpdated,
    PlatformSalePercentageUpdated,
    TokenSale,
    Transfer,
    format_param,
)

from . import ids
