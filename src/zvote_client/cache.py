"""
Local advisory cache for vote choices and decrypted results.

The cache is a client-local convenience: it has no consistency guarantee across
devices or after being cleared. It is read for display only; whether a vote has
been cast is always answered by the ledger.
"""

import asyncio
import logging
from typing import Dict, List, Optional

from .codec import validate_address
from .interfaces import IKeyValueStore
from .types import ReconciledVote, VoteChoice, VoteRecord, VoteTally

logger = logging.getLogger(__name__)

KEY_PREFIX = "proposal_"


def result_key(proposal_id: int) -> str:
    return f"{KEY_PREFIX}{int(proposal_id)}_results"


def vote_key(proposal_id: int, voter: str) -> str:
    return f"{KEY_PREFIX}{int(proposal_id)}_vote_{voter.lower()}"


class InMemoryKeyValueStore:
    """Process-local store, used by default and in tests"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def keys(self, prefix: str = "") -> List[str]:
        return [k for k in self._data if k.startswith(prefix)]

    async def aclose(self) -> None:
        pass


class LocalCacheReconciler:
    """Persists and merges advisory vote and result data"""

    def __init__(self, store: IKeyValueStore):
        self.store = store

    async def record_vote(self, proposal_id: int, voter: str, choice: VoteChoice) -> VoteRecord:
        """
        Remember a voter's choice.

        Recording the same choice again is a no-op. A different choice for an
        existing key is ignored and the stored record returned unchanged.
        A failed store write is logged and the record is still returned.
        """
        voter = validate_address(voter, field="voter")
        choice = VoteChoice.parse(choice)

        existing = await self.read_vote(proposal_id, voter)
        if existing is not None:
            if existing.choice is not choice:
                logger.warning(
                    f"Ignoring conflicting cached choice for proposal {proposal_id} and voter {voter}"
                )
            return existing

        await self._put(vote_key(proposal_id, voter), choice.value)
        return VoteRecord(proposal_id=int(proposal_id), voter_address=voter, choice=choice)

    async def read_vote(self, proposal_id: int, voter: str) -> Optional[VoteRecord]:
        voter = validate_address(voter, field="voter")
        raw = await self.store.get(vote_key(proposal_id, voter))
        if raw is None:
            return None
        try:
            choice = VoteChoice.parse(raw)
        except ValueError:
            logger.warning(f"Unreadable cached vote for proposal {proposal_id}: {raw!r}")
            return None
        return VoteRecord(proposal_id=int(proposal_id), voter_address=voter, choice=choice)

    async def record_result(self, proposal_id: int, tally: VoteTally) -> None:
        await self._put(result_key(proposal_id), tally.to_json())

    async def read_result(self, proposal_id: int) -> Optional[VoteTally]:
        raw = await self.store.get(result_key(proposal_id))
        if raw is None:
            return None
        try:
            return VoteTally.from_json(raw)
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Unreadable cached results for proposal {proposal_id}: {e}")
            return None

    async def _put(self, key: str, value: str) -> None:
        try:
            await self.store.set(key, value)
        except Exception as e:
            logger.warning(f"Cache entry {key} was not stored: {e}")

    @staticmethod
    def reconcile(local: Optional[VoteRecord], authoritative_has_voted: bool) -> ReconciledVote:
        """
        Merge a cached record with the ledger's hasVoted flag.

        The ledger always wins. A local record is only surfaced as the last
        known choice, never as evidence that a vote was counted.
        """
        return ReconciledVote(
            has_voted=bool(authoritative_has_voted),
            last_known_choice=local.choice if local is not None else None,
        )

    async def votes_for_voter(self, voter: str) -> Dict[int, VoteChoice]:
        """Every cached choice for a voter, keyed by proposal id"""
        voter = validate_address(voter, field="voter")
        suffix = f"_vote_{voter}"
        keys = [k for k in await self.store.keys(KEY_PREFIX) if k.endswith(suffix)]
        values = await asyncio.gather(*(self.store.get(k) for k in keys))

        votes: Dict[int, VoteChoice] = {}
        for key, raw in zip(keys, values):
            proposal_part = key[len(KEY_PREFIX):-len(suffix)]
            try:
                votes[int(proposal_part)] = VoteChoice.parse(raw)
            except ValueError:
                logger.warning(f"Skipping unreadable cache entry {key}")
        return votes
