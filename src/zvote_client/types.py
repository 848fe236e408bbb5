"""
Core types and enums for encrypted voting operations.
"""

import json
from enum import Enum
from typing import Optional, Dict, Any, List, Tuple
from dataclasses import dataclass, field


class VoteChoice(Enum):
    """A voter's plaintext choice"""
    YES = "yes"
    NO = "no"

    @property
    def plaintext(self) -> int:
        """Value encrypted as a 32-bit unsigned integer"""
        return 1 if self is VoteChoice.YES else 0

    @classmethod
    def parse(cls, value: Any) -> "VoteChoice":
        if isinstance(value, VoteChoice):
            return value
        if isinstance(value, bool):
            return cls.YES if value else cls.NO
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise ValueError(f"Invalid vote choice: {value!r}")


class ProposalOutcome(Enum):
    """Interpretation of a decrypted tally"""
    NO_VOTES = "no_votes"
    PASSED = "passed"
    FAILED = "failed"
    TIED = "tied"


class TransactionStatus(Enum):
    """Transaction status states"""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REVERTED = "reverted"


class DecryptionState(Enum):
    """States of one result decryption attempt"""
    IDLE = "idle"
    AUTHORIZATION_REQUIRED = "authorization_required"
    KEY_GENERATED = "key_generated"
    MESSAGE_SIGNED = "message_signed"
    DECRYPT_REQUESTED = "decrypt_requested"
    DECRYPTED = "decrypted"
    FAILED = "failed"


class TimeUnit(Enum):
    """Units accepted for proposal durations"""
    MINUTES = "minutes"
    HOURS = "hours"
    DAYS = "days"

    @property
    def seconds(self) -> int:
        return {"minutes": 60, "hours": 3600, "days": 86400}[self.value]


@dataclass(frozen=True)
class VoteRecord:
    """Locally remembered vote choice"""
    proposal_id: int
    voter_address: str
    choice: VoteChoice


@dataclass(frozen=True)
class EncryptedVoteInput:
    """Ciphertext handle and validity proof for one vote"""
    handle: str
    proof: str


@dataclass(frozen=True)
class EncryptedInputResult:
    """Raw output of an encrypted-input builder"""
    handles: List[bytes]
    input_proof: bytes


@dataclass(frozen=True)
class VoteTally:
    """Decrypted yes/no counts for a proposal"""
    yes_votes: int
    no_votes: int

    def __post_init__(self):
        for name in ("yes_votes", "no_votes"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValueError(f"{name} must be a non-negative integer, got {value!r}")

    @property
    def total(self) -> int:
        return self.yes_votes + self.no_votes

    @property
    def outcome(self) -> ProposalOutcome:
        if self.total == 0:
            return ProposalOutcome.NO_VOTES
        if self.yes_votes > self.no_votes:
            return ProposalOutcome.PASSED
        if self.yes_votes < self.no_votes:
            return ProposalOutcome.FAILED
        return ProposalOutcome.TIED

    def to_dict(self) -> Dict[str, int]:
        """Convert to the persisted wire form"""
        return {"yesVotes": self.yes_votes, "noVotes": self.no_votes}

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, raw: str) -> "VoteTally":
        data = json.loads(raw)
        return cls(yes_votes=data["yesVotes"], no_votes=data["noVotes"])


@dataclass
class EphemeralKeypair:
    """Session-scoped keypair for user decryption"""
    public_key: str
    private_key: str = field(repr=False)


@dataclass
class DecryptionSession:
    """Authorization scope of a single decryption attempt"""
    keypair: EphemeralKeypair
    authorized_contracts: List[str]
    valid_from: int
    validity_duration_days: int
    signature: Optional[str] = field(default=None, repr=False)


@dataclass(frozen=True)
class ReconciledVote:
    """Vote status with the ledger's answer taking precedence over the cache"""
    has_voted: bool
    last_known_choice: Optional[VoteChoice] = None

    @property
    def choice(self) -> Optional[VoteChoice]:
        """Local choice, only when the ledger confirms the vote"""
        return self.last_known_choice if self.has_voted else None


@dataclass(frozen=True)
class ProposalPartition:
    """Proposal ids split by the ledger's isActive flag"""
    active: Tuple[int, ...]
    closed: Tuple[int, ...]


@dataclass(frozen=True)
class Page:
    """One page of a paginated listing"""
    items: List[Any]
    page_number: int
    page_size: int
    total_items: int
    total_pages: int

    @property
    def has_next(self) -> bool:
        return self.page_number < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page_number > 1


@dataclass(frozen=True)
class TransactionReceipt:
    """Result of a confirmed ledger write"""
    transaction_hash: str
    block_number: int
    gas_used: int
    status: TransactionStatus


@dataclass(frozen=True)
class VoteCastEvent:
    """VoteCast log entry; only proposal_id is acted upon"""
    proposal_id: int
    voter: str
    block_number: int
    transaction_hash: str


@dataclass(frozen=True)
class VoteReceipt:
    """Outcome of a successful vote submission"""
    record: VoteRecord
    transaction: TransactionReceipt


@dataclass(frozen=True)
class MyVote:
    """A proposal the ledger says this voter voted on"""
    proposal_id: int
    choice: Optional[VoteChoice] = None

    @property
    def label(self) -> str:
        return self.choice.value if self.choice else "unknown"
