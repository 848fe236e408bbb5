"""
Voting client facade.

Composes the encryption engine, ledger client, proposal tracker, local cache,
in-flight guard and decryption protocol into the operations a voting front end
needs. The ledger is authoritative for every decision; the local cache only
adds display detail.
"""

import asyncio
import logging
import time
from typing import Callable, List, Optional, Union

from .adapters.http_backend import HttpFheBackend
from .adapters.ignite_store import IgniteKeyValueStore
from .cache import InMemoryKeyValueStore, LocalCacheReconciler
from .codec import validate_address
from .decryption import ResultDecryptionProtocol
from .encryption import VoteEncryptionPipeline
from .engine import EncryptionEngine
from .events import InvalidateCallback, VoteCastSubscription
from .exceptions import AlreadyVoted, Unauthorized
from .guards import InFlightGuard
from .interfaces import IKeyValueStore, ILedgerClient, ITypedDataSigner
from .ledger import LedgerClient
from .models import Proposal
from .proposals import PROPOSALS_PER_PAGE, ProposalStateTracker, duration_to_seconds
from .types import (
    MyVote, Page, ReconciledVote, TimeUnit, TransactionReceipt, VoteChoice,
    VoteReceipt, VoteTally
)

logger = logging.getLogger(__name__)


class VotingClient:
    """
    High-level encrypted voting client.

    Args:
        ledger: Voting contract client
        engine: Shared encryption engine
        signer: Signs decryption authorizations for the requester
        store: Backing store for the local cache (in-memory by default)
        verifying_contract: Decryption verifier address used in the EIP-712 domain
        gateway_chain_id: Chain id of the decryption gateway
    """

    def __init__(self,
                 ledger: ILedgerClient,
                 engine: EncryptionEngine,
                 signer: ITypedDataSigner,
                 store: Optional[IKeyValueStore] = None,
                 verifying_contract: str = "0xb6E160B1ff80D67Bfe90A85eE06Ce0A2613607D1",
                 gateway_chain_id: int = 55815,
                 max_concurrent_reads: int = 8,
                 page_size: int = PROPOSALS_PER_PAGE,
                 event_poll_interval: float = 4.0,
                 clock: Callable[[], float] = time.time):
        self.ledger = ledger
        self.engine = engine
        self.store = store if store is not None else InMemoryKeyValueStore()
        self.page_size = page_size
        self.event_poll_interval = event_poll_interval
        self.max_concurrent_reads = max_concurrent_reads

        self.tracker = ProposalStateTracker(ledger, max_concurrent_reads)
        self.pipeline = VoteEncryptionPipeline(engine)
        self.cache = LocalCacheReconciler(self.store)
        self.guard = InFlightGuard()
        self.decryption = ResultDecryptionProtocol(
            engine, ledger, signer, verifying_contract, gateway_chain_id, clock=clock
        )

    @classmethod
    def from_settings(cls, settings, signer: ITypedDataSigner, account=None,
                      store: Optional[IKeyValueStore] = None) -> "VotingClient":
        """Production wiring: web3 ledger, HTTP engine bridge, configured cache"""
        ledger = LedgerClient.from_settings(settings, account=account)
        engine = EncryptionEngine(
            HttpFheBackend.from_settings(settings),
            poll_interval=settings.engine_poll_interval,
            ready_timeout=settings.engine_ready_timeout,
        )
        if store is None:
            if settings.cache_backend == "ignite":
                store = IgniteKeyValueStore.from_settings(settings)
            else:
                store = InMemoryKeyValueStore()

        return cls(
            ledger,
            engine,
            signer,
            store=store,
            verifying_contract=settings.decryption_verifier_address,
            gateway_chain_id=settings.gateway_chain_id,
            max_concurrent_reads=settings.max_concurrent_reads,
            page_size=settings.page_size,
            event_poll_interval=settings.event_poll_interval,
        )

    async def close(self):
        await self.engine.close()
        await self.store.aclose()
        ledger_close = getattr(self.ledger, "close", None)
        if ledger_close is not None:
            await ledger_close()

    async def __aenter__(self) -> "VotingClient":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    # Voting

    async def cast_vote(self, proposal_id: int, voter: str,
                        choice: Union[VoteChoice, str, bool]) -> VoteReceipt:
        """
        Encrypt and submit one vote.

        Raises:
            InvalidIdentity: If voter is malformed
            AlreadyInProgress: If the same voter is already voting on this proposal
            AlreadyVoted: If the ledger already counts a vote from voter
            Unauthorized: If the proposal is closed
            SdkUnavailable: If the encryption engine cannot be initialized
            TransportFailure: If encryption or the submission fails
        """
        voter = validate_address(voter, field="voter")
        choice = VoteChoice.parse(choice)

        async with self.guard.hold(proposal_id, voter):
            if await self.ledger.check_if_voted(proposal_id, voter):
                raise AlreadyVoted(
                    f"{voter} has already voted on proposal {proposal_id}", step="checkIfVoted"
                )

            proposal = await self.ledger.get_proposal(proposal_id)
            if not proposal.is_active:
                raise Unauthorized(f"Voting on proposal {proposal_id} has ended", step="cast_vote")

            encrypted = await self.pipeline.encrypt_vote(choice, self.ledger.contract_address, voter)
            transaction = await self.ledger.cast_vote(proposal_id, encrypted, voter)
            record = await self.cache.record_vote(proposal_id, voter, choice)

        logger.info(f"Vote on proposal {proposal_id} confirmed in {transaction.transaction_hash}")
        return VoteReceipt(record=record, transaction=transaction)

    async def get_vote_status(self, proposal_id: int, voter: str) -> ReconciledVote:
        voter = validate_address(voter, field="voter")
        has_voted = await self.ledger.check_if_voted(proposal_id, voter)
        local = await self.cache.read_vote(proposal_id, voter)
        return self.cache.reconcile(local, has_voted)

    async def my_votes(self, voter: str) -> List[MyVote]:
        """
        Proposals the ledger says voter voted on, newest first.

        Every id up to proposalCount is checked; ids whose read fails are
        logged and left out.
        """
        voter = validate_address(voter, field="voter")
        count = await self.ledger.proposal_count()
        cached = await self.cache.votes_for_voter(voter)
        semaphore = asyncio.Semaphore(self.max_concurrent_reads)

        async def has_voted(proposal_id: int) -> bool:
            async with semaphore:
                try:
                    return await self.ledger.check_if_voted(proposal_id, voter)
                except Exception as e:
                    logger.warning(f"Could not check vote on proposal {proposal_id}: {e}")
                    return False

        ids = list(range(1, count + 1))
        flags = await asyncio.gather(*(has_voted(i) for i in ids))

        return [
            MyVote(proposal_id=i, choice=cached.get(i))
            for i, voted in reversed(list(zip(ids, flags))) if voted
        ]

    # Proposals

    async def create_proposal(self, title: str, description: str, duration: Union[int, float, str],
                              unit: Union[TimeUnit, str], sender: str) -> TransactionReceipt:
        """
        Raises:
            ValueError: If title or description is blank or the duration is not positive
        """
        sender = validate_address(sender, field="sender")
        title = title.strip()
        description = description.strip()
        if not title:
            raise ValueError("Proposal title cannot be empty")
        if not description:
            raise ValueError("Proposal description cannot be empty")

        duration_seconds = duration_to_seconds(duration, unit)
        receipt = await self.ledger.create_proposal(title, description, duration_seconds, sender)
        logger.info(f"Proposal created in {receipt.transaction_hash}")
        return receipt

    async def get_proposal(self, proposal_id: int) -> Proposal:
        return await self.tracker.get_proposal(proposal_id)

    async def list_proposals(self, show_closed: bool = False, page: int = 1,
                             page_size: Optional[int] = None) -> Page:
        """One page of active (or closed) proposal ids, newest first"""
        ids = await self.tracker.list_proposal_ids()
        partition = await self.tracker.classify(ids)
        selected = partition.closed if show_closed else partition.active
        return self.tracker.paginate(selected, page_size or self.page_size, page)

    # Results

    async def decrypt_results(self, proposal_id: int, requester: str, refresh: bool = False,
                              expected_total: Optional[int] = None) -> VoteTally:
        """
        Decrypted tally for a closed proposal, creator only.

        A cached tally is returned after the ledger confirms the requester may
        see it, without touching the encryption engine. refresh forces a new
        decryption.
        """
        requester = validate_address(requester, field="requester")

        if not refresh:
            await self.decryption.authorize(proposal_id, requester)
            cached = await self.cache.read_result(proposal_id)
            if cached is not None:
                logger.debug(f"Serving cached results for proposal {proposal_id}")
                return cached

        tally = await self.decryption.decrypt(proposal_id, requester, expected_total)
        await self.cache.record_result(proposal_id, tally)
        return tally

    async def cached_results(self, proposal_id: int) -> Optional[VoteTally]:
        """Previously decrypted tally, for display only"""
        return await self.cache.read_result(proposal_id)

    def watch_votes(self, on_invalidate: InvalidateCallback,
                    proposal_id: Optional[int] = None) -> VoteCastSubscription:
        """Subscription that calls on_invalidate for proposals receiving new votes"""
        return VoteCastSubscription(
            self.ledger, on_invalidate, proposal_id=proposal_id, poll_interval=self.event_poll_interval
        )
