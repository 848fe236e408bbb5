"""
Vote encryption pipeline.

Turns a yes/no choice into a ciphertext handle and input proof bound to one
voting contract and one voter. Performs no ledger writes and no persistence.
"""

import logging

from .codec import HANDLE_BYTES, checksum_address, to_hex, validate_address
from .engine import EncryptionEngine
from .exceptions import TransportFailure, VotingError
from .types import EncryptedVoteInput, VoteChoice

logger = logging.getLogger(__name__)


class VoteEncryptionPipeline:
    """Encrypts single votes through the shared engine instance"""

    def __init__(self, engine: EncryptionEngine):
        self.engine = engine

    async def encrypt_vote(self, choice: VoteChoice, contract_id: str, voter_id: str) -> EncryptedVoteInput:
        """
        Encrypt one vote for (contract_id, voter_id).

        Args:
            choice: Plaintext choice, encrypted as 1 (yes) or 0 (no)
            contract_id: Voting contract address
            voter_id: Address of the account that will submit the vote

        Returns:
            Canonical 0x-prefixed lowercase handle and proof

        Raises:
            InvalidIdentity: If either address is malformed
            SdkUnavailable: If the engine cannot be initialized in time
            TransportFailure: If the engine fails or returns malformed output
        """
        choice = VoteChoice.parse(choice)
        contract = validate_address(contract_id, field="contract_id")
        voter = validate_address(voter_id, field="voter_id")

        instance = await self.engine.get_instance()

        try:
            encrypted_input = instance.create_encrypted_input(
                checksum_address(contract), checksum_address(voter)
            )
            encrypted_input.add32(choice.plaintext)
            result = await encrypted_input.encrypt()
        except VotingError:
            raise
        except Exception as e:
            logger.error(f"Vote encryption failed for contract {contract}: {e}")
            raise TransportFailure(f"Encryption engine error: {e}", step="encrypt") from e

        if not result.handles:
            raise TransportFailure("Engine returned no ciphertext handle", step="encrypt")

        handle = bytes(result.handles[0])
        if len(handle) != HANDLE_BYTES:
            raise TransportFailure(
                f"Ciphertext handle is {len(handle)} bytes, expected {HANDLE_BYTES}", step="encrypt"
            )
        if not result.input_proof:
            raise TransportFailure("Engine returned an empty input proof", step="encrypt")

        logger.info(f"Encrypted vote for voter {voter} on contract {contract}")
        return EncryptedVoteInput(handle=to_hex(handle), proof=to_hex(bytes(result.input_proof)))
