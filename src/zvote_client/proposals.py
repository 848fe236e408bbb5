"""
Proposal state tracking.

Observes proposal lifecycle on the ledger: lists known ids, partitions them into
active and closed using the ledger's isActive flag, and paginates listings. This
module never decides on its own whether a proposal is active.
"""

import asyncio
import logging
import math
from typing import Iterable, List, Sequence, Union

from .interfaces import ILedgerClient
from .models import Proposal
from .types import Page, ProposalPartition, TimeUnit

logger = logging.getLogger(__name__)

PROPOSALS_PER_PAGE = 12


class ProposalStateTracker:
    """Read-only view of proposal state backed by the ledger"""

    def __init__(self, ledger: ILedgerClient, max_concurrent_reads: int = 8):
        self.ledger = ledger
        self.max_concurrent_reads = max_concurrent_reads

    async def list_proposal_ids(self, newest_first: bool = True) -> List[int]:
        """All proposal ids, most recently created first by default"""
        ids = {int(i) for i in await self.ledger.get_all_proposals()}
        return sorted(ids, reverse=newest_first)

    async def get_proposal(self, proposal_id: int) -> Proposal:
        return await self.ledger.get_proposal(proposal_id)

    async def classify(self, ids: Iterable[int]) -> ProposalPartition:
        """
        Partition ids by their authoritative isActive flag.

        Reads run concurrently and independently; an id whose read fails is
        placed in closed so it is never offered as votable.
        """
        ordered = list(dict.fromkeys(int(i) for i in ids))
        semaphore = asyncio.Semaphore(self.max_concurrent_reads)

        async def read_is_active(proposal_id: int) -> bool:
            async with semaphore:
                try:
                    proposal = await self.ledger.get_proposal(proposal_id)
                    return proposal.is_active
                except Exception as e:
                    logger.warning(f"Status read failed for proposal {proposal_id}, treating as closed: {e}")
                    return False

        flags = await asyncio.gather(*(read_is_active(i) for i in ordered))

        active = tuple(i for i, is_active in zip(ordered, flags) if is_active)
        closed = tuple(i for i, is_active in zip(ordered, flags) if not is_active)
        return ProposalPartition(active=active, closed=closed)

    def paginate(self, items: Sequence, page_size: int = PROPOSALS_PER_PAGE, page_number: int = 1) -> Page:
        return paginate(items, page_size, page_number)


def paginate(items: Sequence, page_size: int = PROPOSALS_PER_PAGE, page_number: int = 1) -> Page:
    """Slice a 1-indexed page, clamping out-of-range page numbers"""
    if page_size < 1:
        raise ValueError(f"page_size must be positive, got {page_size}")

    total_items = len(items)
    total_pages = max(1, math.ceil(total_items / page_size))
    page_number = min(max(1, page_number), total_pages)
    start = (page_number - 1) * page_size

    return Page(
        items=list(items[start:start + page_size]),
        page_number=page_number,
        page_size=page_size,
        total_items=total_items,
        total_pages=total_pages,
    )


def format_time_remaining(seconds: float) -> str:
    """Human readable countdown, e.g. '2d 3h 4m' or 'Ended'"""
    if seconds <= 0:
        return "Ended"

    seconds = int(seconds)
    days, rest = divmod(seconds, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, secs = divmod(rest, 60)

    if days > 0:
        return f"{days}d {hours}h {minutes}m"
    if hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def duration_to_seconds(value: Union[int, float, str], unit: Union[TimeUnit, str] = TimeUnit.DAYS) -> int:
    """Convert a proposal duration to whole seconds"""
    unit = TimeUnit(unit) if not isinstance(unit, TimeUnit) else unit
    amount = float(value)
    if not math.isfinite(amount) or amount <= 0:
        raise ValueError(f"Duration must be positive, got {value!r}")

    seconds = math.floor(amount * unit.seconds)
    if seconds < 1:
        raise ValueError(f"Duration {value} {unit.value} is shorter than one second")
    return seconds
