"""
VoteCast subscription.

Polls the ledger for VoteCast logs and tells the caller which proposals need to
be re-read. Events carry no trusted data beyond the proposal id: duplicates and
gaps only cause extra or later re-reads.
"""

import asyncio
import inspect
import logging
from typing import Awaitable, Callable, List, Optional, Union

from .interfaces import ILedgerClient

logger = logging.getLogger(__name__)

InvalidateCallback = Callable[[int], Union[None, Awaitable[None]]]


class VoteCastSubscription:
    """
    Cancellable polling task over VoteCast logs.

    Usage:
        async with VoteCastSubscription(ledger, refresh_proposal) as sub:
            ...
    """

    def __init__(self,
                 ledger: ILedgerClient,
                 on_invalidate: InvalidateCallback,
                 proposal_id: Optional[int] = None,
                 poll_interval: float = 4.0):
        self.ledger = ledger
        self.on_invalidate = on_invalidate
        self.proposal_id = int(proposal_id) if proposal_id is not None else None
        self.poll_interval = poll_interval

        self._last_block: Optional[int] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self):
        if self.running:
            return
        self._last_block = await self.ledger.get_block_number()
        self._task = asyncio.create_task(self._poll_loop())
        logger.info(f"Watching VoteCast events from block {self._last_block}")

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Stopped watching VoteCast events")

    async def __aenter__(self) -> "VoteCastSubscription":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()

    async def poll_once(self) -> List[int]:
        """Fetch new logs and invalidate each affected proposal once"""
        current = await self.ledger.get_block_number()
        if self._last_block is None:
            self._last_block = current
            return []
        if current <= self._last_block:
            return []

        events = await self.ledger.get_vote_cast_events(self._last_block + 1, current)
        self._last_block = current

        affected = list(dict.fromkeys(
            e.proposal_id for e in events
            if self.proposal_id is None or e.proposal_id == self.proposal_id
        ))
        for proposal_id in affected:
            try:
                result = self.on_invalidate(proposal_id)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Invalidation handler failed for proposal {proposal_id}: {e}")
        return affected

    async def _poll_loop(self):
        while True:
            try:
                await self.poll_once()
            except Exception as e:
                logger.error(f"Error polling VoteCast events: {e}")
            await asyncio.sleep(self.poll_interval)
