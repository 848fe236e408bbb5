import pytest

from zvote_client.encryption import VoteEncryptionPipeline
from zvote_client.exceptions import InvalidIdentity, TransportFailure
from zvote_client.types import VoteChoice

from conftest import CONTRACT, VOTER


class TestVoteEncryptionPipeline:

    @pytest.fixture
    def pipeline(self, engine):
        return VoteEncryptionPipeline(engine)

    @pytest.mark.asyncio
    async def test_encrypts_yes_as_one(self, pipeline, backend):
        result = await pipeline.encrypt_vote(VoteChoice.YES, CONTRACT, VOTER)

        assert result.handle.startswith("0x")
        assert len(result.handle) == 66
        assert result.proof.startswith("0x") and len(result.proof) > 2

        encrypted_input = backend.instance.inputs[0]
        assert encrypted_input.values == [1]
        assert encrypted_input.contract_address.lower() == CONTRACT
        assert encrypted_input.user_address.lower() == VOTER

    @pytest.mark.asyncio
    async def test_encrypts_no_as_zero(self, pipeline, backend):
        await pipeline.encrypt_vote(VoteChoice.NO, CONTRACT, VOTER)
        assert backend.instance.inputs[0].values == [0]

    @pytest.mark.asyncio
    async def test_repeated_encryptions_are_structurally_valid(self, pipeline):
        first = await pipeline.encrypt_vote(VoteChoice.YES, CONTRACT, VOTER)
        second = await pipeline.encrypt_vote(VoteChoice.YES, CONTRACT, VOTER)

        for result in (first, second):
            assert len(result.handle) == 66
            assert result.proof

    @pytest.mark.asyncio
    async def test_invalid_voter_fails_before_engine(self, pipeline, backend):
        with pytest.raises(InvalidIdentity):
            await pipeline.encrypt_vote(VoteChoice.YES, CONTRACT, "0x1234")

        assert backend.init_calls == 0

    @pytest.mark.asyncio
    async def test_voter_with_trailing_newline_fails_before_engine(self, pipeline, backend):
        with pytest.raises(InvalidIdentity):
            await pipeline.encrypt_vote(VoteChoice.YES, CONTRACT, VOTER + "\n")

        assert backend.init_calls == 0
        assert backend.probe_calls == 0

    @pytest.mark.asyncio
    async def test_wrong_handle_size_is_rejected(self, pipeline, backend):
        backend.instance.handle_size = 16

        with pytest.raises(TransportFailure) as exc_info:
            await pipeline.encrypt_vote(VoteChoice.YES, CONTRACT, VOTER)
        assert exc_info.value.step == "encrypt"

    @pytest.mark.asyncio
    async def test_empty_proof_is_rejected(self, pipeline, backend):
        backend.instance.proof = b""

        with pytest.raises(TransportFailure):
            await pipeline.encrypt_vote(VoteChoice.NO, CONTRACT, VOTER)
