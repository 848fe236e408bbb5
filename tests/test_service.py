import asyncio

import pytest

from zvote_client.cache import vote_key
from zvote_client.exceptions import (
    AlreadyInProgress, AlreadyVoted, InvalidIdentity, TransportFailure, Unauthorized
)
from zvote_client.types import MyVote, ProposalOutcome, TimeUnit, VoteChoice, VoteTally

from conftest import CREATOR, NOW, OTHER, VOTER, YES_HANDLE, NO_HANDLE, make_proposal


class TestCastVote:

    @pytest.mark.asyncio
    async def test_cast_vote_encrypts_submits_and_records(self, client, ledger, backend, store):
        """Scenario A"""
        ledger.add_proposal(make_proposal(1, created_at=NOW, duration=86400))

        receipt = await client.cast_vote(1, VOTER, VoteChoice.YES)

        assert receipt.record.choice is VoteChoice.YES
        assert receipt.transaction.block_number == 101
        proposal_id, encrypted, sender = ledger.cast_calls[0]
        assert proposal_id == 1 and sender == VOTER
        assert len(encrypted.handle) == 66
        assert backend.instance.inputs[0].values == [1]
        assert await store.get(vote_key(1, VOTER)) == "yes"

    @pytest.mark.asyncio
    async def test_concurrent_duplicate_is_rejected(self, client, ledger):
        """Scenario A: a second attempt while the first is in flight"""
        ledger.add_proposal(make_proposal(1))

        results = await asyncio.gather(
            client.cast_vote(1, VOTER, "yes"),
            client.cast_vote(1, VOTER, "yes"),
            return_exceptions=True,
        )

        assert sum(isinstance(r, AlreadyInProgress) for r in results) == 1
        assert len(ledger.cast_calls) == 1

    @pytest.mark.asyncio
    async def test_already_voted_on_ledger(self, client, ledger, backend):
        ledger.add_proposal(make_proposal(1))
        ledger.votes.add((1, VOTER))

        with pytest.raises(AlreadyVoted):
            await client.cast_vote(1, VOTER, VoteChoice.NO)

        assert backend.init_calls == 0

    @pytest.mark.asyncio
    async def test_closed_proposal_is_unauthorized(self, client, ledger):
        ledger.add_proposal(make_proposal(1, is_active=False))

        with pytest.raises(Unauthorized):
            await client.cast_vote(1, VOTER, VoteChoice.YES)
        assert ledger.cast_calls == []

    @pytest.mark.asyncio
    async def test_failed_submission_records_nothing(self, client, ledger, store):
        ledger.add_proposal(make_proposal(1))
        ledger.cast_error = TransportFailure("reverted", step="castVote")

        with pytest.raises(TransportFailure):
            await client.cast_vote(1, VOTER, VoteChoice.YES)

        assert await store.get(vote_key(1, VOTER)) is None
        assert not client.guard.is_in_flight(1, VOTER)

    @pytest.mark.asyncio
    async def test_invalid_voter(self, client):
        with pytest.raises(InvalidIdentity):
            await client.cast_vote(1, "0xnope", VoteChoice.YES)


class TestVoteStatus:

    @pytest.mark.asyncio
    async def test_ledger_wins_over_cache(self, client, ledger):
        ledger.add_proposal(make_proposal(1))
        await client.cache.record_vote(1, VOTER, VoteChoice.NO)

        status = await client.get_vote_status(1, VOTER)
        assert not status.has_voted
        assert status.choice is None

        ledger.votes.add((1, VOTER))
        status = await client.get_vote_status(1, VOTER)
        assert status.has_voted
        assert status.choice is VoteChoice.NO

    @pytest.mark.asyncio
    async def test_my_votes_newest_first_with_unknown_choices(self, client, ledger):
        for i in range(1, 5):
            ledger.add_proposal(make_proposal(i))
        ledger.votes.update({(1, VOTER), (3, VOTER), (4, VOTER)})
        ledger.failing_ids.add(4)
        await client.cache.record_vote(3, VOTER, VoteChoice.YES)

        votes = await client.my_votes(VOTER)

        assert votes == [MyVote(3, VoteChoice.YES), MyVote(1, None)]
        assert [v.label for v in votes] == ["yes", "unknown"]


class TestProposals:

    @pytest.mark.asyncio
    async def test_list_active_and_closed(self, client, ledger):
        for i in range(1, 16):
            ledger.add_proposal(make_proposal(i, is_active=i % 5 != 0))

        active = await client.list_proposals()
        assert active.items == [14, 13, 12, 11, 9, 8, 7, 6, 4, 3, 2, 1]
        assert active.total_pages == 1

        closed = await client.list_proposals(show_closed=True)
        assert closed.items == [15, 10, 5]

    @pytest.mark.asyncio
    async def test_create_proposal_converts_duration(self, client, ledger):
        receipt = await client.create_proposal("  Title ", "Body", 90, TimeUnit.MINUTES, CREATOR)

        assert ledger.created == [("Title", "Body", 5400, CREATOR)]
        assert receipt.block_number == 101

    @pytest.mark.asyncio
    async def test_create_proposal_requires_title(self, client, ledger):
        with pytest.raises(ValueError):
            await client.create_proposal("   ", "Body", 1, "days", CREATOR)
        assert ledger.created == []


class TestDecryptResults:

    @pytest.fixture
    def closed(self, ledger):
        ledger.add_proposal(make_proposal(1, is_active=False))
        return 1

    @pytest.mark.asyncio
    async def test_results_are_cached_after_decryption(self, client, backend, closed):
        """Scenario C"""
        backend.instance.decrypt_response = {YES_HANDLE[2:]: 7, NO_HANDLE[2:]: 3}

        first = await client.decrypt_results(closed, CREATOR)
        second = await client.decrypt_results(closed, CREATOR)

        assert first == second == VoteTally(7, 3)
        assert first.outcome is ProposalOutcome.PASSED
        assert len(backend.instance.decrypt_calls) == 1
        assert backend.instance.keypair_calls == 1
        assert await client.cached_results(closed) == VoteTally(7, 3)

    @pytest.mark.asyncio
    async def test_missing_no_handle_is_zero(self, client, backend, closed):
        """Scenario D"""
        backend.instance.decrypt_response = {YES_HANDLE: 2}

        tally = await client.decrypt_results(closed, CREATOR)

        assert tally == VoteTally(2, 0)

    @pytest.mark.asyncio
    async def test_cached_results_still_require_the_creator(self, client, closed):
        await client.cache.record_result(closed, VoteTally(1, 0))

        with pytest.raises(Unauthorized):
            await client.decrypt_results(closed, OTHER)

    @pytest.mark.asyncio
    async def test_refresh_bypasses_cache(self, client, backend, closed):
        await client.cache.record_result(closed, VoteTally(1, 0))
        backend.instance.decrypt_response = {YES_HANDLE: 4, NO_HANDLE: 4}

        tally = await client.decrypt_results(closed, CREATOR, refresh=True)

        assert tally.outcome is ProposalOutcome.TIED
        assert await client.cached_results(closed) == VoteTally(4, 4)


class TestLifecycle:

    @pytest.mark.asyncio
    async def test_close_releases_collaborators(self, client, ledger, backend):
        await client.close()

        assert backend.closed
        assert ledger.closed

    @pytest.mark.asyncio
    async def test_watch_votes_uses_configured_interval(self, client):
        subscription = client.watch_votes(lambda proposal_id: None, proposal_id=3)

        assert subscription.proposal_id == 3
        assert subscription.poll_interval == client.event_poll_interval
        assert not subscription.running
