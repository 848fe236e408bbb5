"""
Per-key in-flight guard for vote submission.
"""

import logging
from contextlib import asynccontextmanager
from typing import Set, Tuple

from .exceptions import AlreadyInProgress

logger = logging.getLogger(__name__)


class InFlightGuard:
    """
    Rejects a second concurrent submission for the same (proposal, voter).

    Claims are checked and taken without awaiting in between, so a single event
    loop needs no lock.
    """

    def __init__(self):
        self._in_flight: Set[Tuple[int, str]] = set()

    def is_in_flight(self, proposal_id: int, voter: str) -> bool:
        return (int(proposal_id), voter.lower()) in self._in_flight

    @asynccontextmanager
    async def hold(self, proposal_id: int, voter: str):
        """
        Usage:
            async with guard.hold(proposal_id, voter):
                ...encrypt and submit...
        """
        key = (int(proposal_id), voter.lower())
        if key in self._in_flight:
            raise AlreadyInProgress(
                f"A vote on proposal {proposal_id} from {voter} is already in progress", step="cast_vote"
            )
        self._in_flight.add(key)
        try:
            yield
        finally:
            self._in_flight.discard(key)
            logger.debug(f"Released in-flight claim for proposal {proposal_id}")

    def __len__(self) -> int:
        return len(self._in_flight)
