"""
Shared fakes for the voting client tests
"""

import asyncio
import os
from typing import Any, Dict, List, Optional, Set, Tuple

import pytest

from zvote_client.cache import InMemoryKeyValueStore
from zvote_client.engine import EncryptionEngine
from zvote_client.exceptions import TransportFailure
from zvote_client.models import Proposal
from zvote_client.service import VotingClient
from zvote_client.types import (
    EncryptedInputResult, EphemeralKeypair, TransactionReceipt, TransactionStatus, VoteCastEvent
)

CONTRACT = "0x" + "5f" * 20
VOTER = "0x" + "a1" * 20
CREATOR = "0x" + "c3" * 20
OTHER = "0x" + "0d" * 20
VERIFIER = "0xb6e160b1ff80d67bfe90a85ee06ce0a2613607d1"

YES_HANDLE = "0x" + "11" * 32
NO_HANDLE = "0x" + "22" * 32

NOW = 1_700_100_000


def make_proposal(proposal_id: int, creator: str = CREATOR, is_active: bool = True,
                  created_at: int = 1_700_000_000, duration: int = 86400) -> Proposal:
    return Proposal(
        id=proposal_id,
        creator=creator,
        title=f"Proposal {proposal_id}",
        description="Should we do the thing?",
        deadline=created_at + duration,
        created_at=created_at,
        is_active=is_active,
    )


def make_receipt(block_number: int = 101) -> TransactionReceipt:
    return TransactionReceipt(
        transaction_hash="0x" + "ee" * 32,
        block_number=block_number,
        gas_used=210000,
        status=TransactionStatus.CONFIRMED,
    )


class FakeEncryptedInput:
    def __init__(self, contract_address: str, user_address: str, handle_size: int = 32,
                 proof: bytes = b"\x01" * 100):
        self.contract_address = contract_address
        self.user_address = user_address
        self.values: List[int] = []
        self.handle_size = handle_size
        self.proof = proof

    def add32(self, value: int) -> None:
        self.values.append(value)

    async def encrypt(self) -> EncryptedInputResult:
        await asyncio.sleep(0)
        return EncryptedInputResult(handles=[os.urandom(self.handle_size)], input_proof=self.proof)


class FakeFheInstance:
    def __init__(self):
        self.inputs: List[FakeEncryptedInput] = []
        self.decrypt_calls: List[Tuple] = []
        self.decrypt_response: Any = {}
        self.keypair_calls = 0
        self.handle_size = 32
        self.proof = b"\x01" * 100

    def create_encrypted_input(self, contract_address: str, user_address: str) -> FakeEncryptedInput:
        encrypted_input = FakeEncryptedInput(contract_address, user_address, self.handle_size, self.proof)
        self.inputs.append(encrypted_input)
        return encrypted_input

    async def generate_keypair(self) -> EphemeralKeypair:
        self.keypair_calls += 1
        return EphemeralKeypair(public_key="0x" + "ab" * 32, private_key="cd" * 32)

    async def user_decrypt(self, *args) -> Dict[str, Any]:
        self.decrypt_calls.append(args)
        if isinstance(self.decrypt_response, Exception):
            raise self.decrypt_response
        return self.decrypt_response


class FakeFheBackend:
    """Engine backend that becomes available after a number of probes"""

    def __init__(self, available_after: int = 0, fail_init: bool = False):
        self.instance = FakeFheInstance()
        self.available_after = available_after
        self.fail_init = fail_init
        self.probe_calls = 0
        self.init_calls = 0
        self.create_calls = 0
        self.closed = False

    async def is_available(self) -> bool:
        self.probe_calls += 1
        return self.probe_calls > self.available_after

    async def init_sdk(self) -> None:
        self.init_calls += 1
        await asyncio.sleep(0.01)
        if self.fail_init:
            raise RuntimeError("wasm module failed to load")

    async def create_instance(self) -> FakeFheInstance:
        self.create_calls += 1
        return self.instance

    async def aclose(self) -> None:
        self.closed = True


class FakeSigner:
    def __init__(self, signature: str = "0x" + "1b" * 65, error: Optional[Exception] = None):
        self.signature = signature
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def sign_typed_data(self, typed_data: Dict[str, Any]) -> str:
        self.calls.append(typed_data)
        if self.error:
            raise self.error
        return self.signature


class FakeLedger:
    """In-memory stand-in for the voting contract"""

    def __init__(self, contract_address: str = CONTRACT):
        self.contract_address = contract_address
        self.proposals: Dict[int, Proposal] = {}
        self.votes: Set[Tuple[int, str]] = set()
        self.handles: Dict[int, Tuple[str, str]] = {}
        self.failing_ids: Set[int] = set()
        self.cast_calls: List[Tuple] = []
        self.created: List[Tuple] = []
        self.encrypted_reads: List[Tuple[int, str]] = []
        self.events: List[VoteCastEvent] = []
        self.event_queries: List[Tuple[int, int]] = []
        self.block_number = 100
        self.cast_error: Optional[Exception] = None
        self.closed = False

    def add_proposal(self, proposal: Proposal):
        self.proposals[proposal.id] = proposal

    async def get_proposal(self, proposal_id: int) -> Proposal:
        await asyncio.sleep(0)
        if proposal_id in self.failing_ids or proposal_id not in self.proposals:
            raise TransportFailure(f"getProposal({proposal_id}) reverted", step="getProposal")
        return self.proposals[proposal_id]

    async def get_all_proposals(self) -> List[int]:
        return sorted(self.proposals)

    async def check_if_voted(self, proposal_id: int, voter: str) -> bool:
        await asyncio.sleep(0)
        if proposal_id in self.failing_ids:
            raise TransportFailure("rpc unavailable", step="checkIfVoted")
        return (proposal_id, voter.lower()) in self.votes

    async def proposal_count(self) -> int:
        return len(self.proposals)

    async def get_encrypted_votes(self, proposal_id: int, caller: str) -> Tuple[str, str]:
        self.encrypted_reads.append((proposal_id, caller))
        return self.handles.get(proposal_id, (YES_HANDLE, NO_HANDLE))

    async def create_proposal(self, title: str, description: str,
                              duration_seconds: int, sender: str) -> TransactionReceipt:
        self.created.append((title, description, duration_seconds, sender))
        return make_receipt()

    async def cast_vote(self, proposal_id: int, encrypted, sender: str) -> TransactionReceipt:
        self.cast_calls.append((proposal_id, encrypted, sender))
        await asyncio.sleep(0.01)
        if self.cast_error:
            raise self.cast_error
        self.votes.add((proposal_id, sender.lower()))
        return make_receipt()

    async def get_block_number(self) -> int:
        return self.block_number

    async def get_vote_cast_events(self, from_block: int, to_block: int) -> List[VoteCastEvent]:
        self.event_queries.append((from_block, to_block))
        return [e for e in self.events if from_block <= e.block_number <= to_block]

    async def close(self):
        self.closed = True


@pytest.fixture
def ledger():
    return FakeLedger()


@pytest.fixture
def backend():
    return FakeFheBackend()


@pytest.fixture
def engine(backend):
    return EncryptionEngine(backend, poll_interval=0.001, ready_timeout=0.5)


@pytest.fixture
def signer():
    return FakeSigner()


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
def client(ledger, engine, signer, store):
    return VotingClient(
        ledger, engine, signer, store=store,
        verifying_contract=VERIFIER, gateway_chain_id=55815,
        clock=lambda: NOW,
    )
