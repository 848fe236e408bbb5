"""
Interfaces (protocols) for the collaborators of the voting client.
Using Python's Protocol for structural subtyping.
"""

from typing import Protocol, Dict, Any, Optional, List, Tuple, Mapping
from abc import abstractmethod

from .types import (
    EncryptedInputResult, EncryptedVoteInput, EphemeralKeypair,
    TransactionReceipt, VoteCastEvent
)
from .models import Proposal


class IEncryptedInput(Protocol):
    """Encrypted-input builder scoped to one (contract, user) pair"""

    @abstractmethod
    def add32(self, value: int) -> None:
        """Append a 32-bit unsigned value"""
        ...

    @abstractmethod
    async def encrypt(self) -> EncryptedInputResult:
        """Finalize into ciphertext handles and an input proof"""
        ...


class IFheInstance(Protocol):
    """An initialized homomorphic-encryption engine instance"""

    @abstractmethod
    def create_encrypted_input(self, contract_address: str, user_address: str) -> IEncryptedInput:
        ...

    @abstractmethod
    async def generate_keypair(self) -> EphemeralKeypair:
        ...

    @abstractmethod
    async def user_decrypt(self,
                           handle_contract_pairs: List[Dict[str, str]],
                           private_key: str,
                           public_key: str,
                           signature: str,
                           contract_addresses: List[str],
                           user_address: str,
                           start_timestamp: str,
                           duration_days: str) -> Mapping[str, Any]:
        """Decrypt handles the user is authorized for; keyed by handle"""
        ...


class IFheBackend(Protocol):
    """Loader for the homomorphic-encryption library"""

    @abstractmethod
    async def is_available(self) -> bool:
        """Whether the library is loaded and reachable"""
        ...

    @abstractmethod
    async def init_sdk(self) -> None:
        ...

    @abstractmethod
    async def create_instance(self) -> IFheInstance:
        ...

    @abstractmethod
    async def aclose(self) -> None:
        ...


class ITypedDataSigner(Protocol):
    """Produces signatures over EIP-712 structured data"""

    @abstractmethod
    async def sign_typed_data(self, typed_data: Dict[str, Any]) -> str:
        """Sign a full eth_signTypedData_v4 message and return 0x-prefixed hex"""
        ...


class IKeyValueStore(Protocol):
    """String-keyed advisory store"""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...

    @abstractmethod
    async def keys(self, prefix: str = "") -> List[str]:
        ...

    @abstractmethod
    async def aclose(self) -> None:
        ...


class ILedgerClient(Protocol):
    """Read/write operations of the voting contract"""

    contract_address: str

    @abstractmethod
    async def get_proposal(self, proposal_id: int) -> Proposal:
        ...

    @abstractmethod
    async def get_all_proposals(self) -> List[int]:
        ...

    @abstractmethod
    async def check_if_voted(self, proposal_id: int, voter: str) -> bool:
        ...

    @abstractmethod
    async def proposal_count(self) -> int:
        ...

    @abstractmethod
    async def get_encrypted_votes(self, proposal_id: int, caller: str) -> Tuple[str, str]:
        """Yes/no tally handles, read as the calling identity"""
        ...

    @abstractmethod
    async def create_proposal(self, title: str, description: str,
                              duration_seconds: int, sender: str) -> TransactionReceipt:
        ...

    @abstractmethod
    async def cast_vote(self, proposal_id: int, encrypted: EncryptedVoteInput,
                        sender: str) -> TransactionReceipt:
        ...

    @abstractmethod
    async def get_block_number(self) -> int:
        ...

    @abstractmethod
    async def get_vote_cast_events(self, from_block: int, to_block: int) -> List[VoteCastEvent]:
        ...
