"""
zVote Client Library

Encrypted yes/no voting against a homomorphic-encryption enabled contract:
vote encryption, proposal tracking, creator-only result decryption and a local
advisory cache.
"""

from .types import (
    VoteChoice,
    ProposalOutcome,
    TransactionStatus,
    DecryptionState,
    TimeUnit,
    VoteRecord,
    EncryptedVoteInput,
    VoteTally,
    EphemeralKeypair,
    DecryptionSession,
    ReconciledVote,
    ProposalPartition,
    Page,
    TransactionReceipt,
    VoteCastEvent,
    VoteReceipt,
    MyVote
)

from .exceptions import (
    VotingError,
    InvalidIdentity,
    SdkUnavailable,
    Unauthorized,
    AlreadyVoted,
    AlreadyInProgress,
    SignatureRejected,
    DecryptionMismatch,
    TransportFailure
)

from .interfaces import (
    IFheBackend,
    IFheInstance,
    IEncryptedInput,
    ITypedDataSigner,
    IKeyValueStore,
    ILedgerClient
)

from .models import Proposal

from .codec import (
    validate_address,
    checksum_address,
    encode_handle,
    normalize_signature
)

from .engine import EncryptionEngine, EngineState
from .encryption import VoteEncryptionPipeline
from .proposals import ProposalStateTracker, paginate, format_time_remaining, duration_to_seconds
from .decryption import ResultDecryptionProtocol, build_user_decrypt_typed_data, parse_decryption_response
from .cache import LocalCacheReconciler, InMemoryKeyValueStore
from .guards import InFlightGuard
from .events import VoteCastSubscription
from .ledger import LedgerClient
from .config import Settings, get_settings
from .service import VotingClient

__all__ = [
    # Types
    "VoteChoice",
    "ProposalOutcome",
    "TransactionStatus",
    "DecryptionState",
    "TimeUnit",
    "VoteRecord",
    "EncryptedVoteInput",
    "VoteTally",
    "EphemeralKeypair",
    "DecryptionSession",
    "ReconciledVote",
    "ProposalPartition",
    "Page",
    "TransactionReceipt",
    "VoteCastEvent",
    "VoteReceipt",
    "MyVote",

    # Errors
    "VotingError",
    "InvalidIdentity",
    "SdkUnavailable",
    "Unauthorized",
    "AlreadyVoted",
    "AlreadyInProgress",
    "SignatureRejected",
    "DecryptionMismatch",
    "TransportFailure",

    # Interfaces
    "IFheBackend",
    "IFheInstance",
    "IEncryptedInput",
    "ITypedDataSigner",
    "IKeyValueStore",
    "ILedgerClient",

    # Models
    "Proposal",

    # Codec
    "validate_address",
    "checksum_address",
    "encode_handle",
    "normalize_signature",

    # Components
    "EncryptionEngine",
    "EngineState",
    "VoteEncryptionPipeline",
    "ProposalStateTracker",
    "paginate",
    "format_time_remaining",
    "duration_to_seconds",
    "ResultDecryptionProtocol",
    "build_user_decrypt_typed_data",
    "parse_decryption_response",
    "LocalCacheReconciler",
    "InMemoryKeyValueStore",
    "InFlightGuard",
    "VoteCastSubscription",
    "LedgerClient",

    # Configuration & facade
    "Settings",
    "get_settings",
    "VotingClient"
]

__version__ = "1.0.0"
