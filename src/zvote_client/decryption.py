"""
Result decryption protocol.

Runs the creator-only user-decryption handshake for a closed proposal:

    IDLE -> AUTHORIZATION_REQUIRED -> KEY_GENERATED -> MESSAGE_SIGNED
         -> DECRYPT_REQUESTED -> DECRYPTED | FAILED

Every invocation is terminal. Nothing is retried internally and the ephemeral
session (keypair, signature) is discarded whatever the outcome.
"""

import logging
import time
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from .codec import (
    add_hex_prefix, checksum_address, encode_handle, normalize_signature,
    validate_address
)
from .engine import EncryptionEngine
from .exceptions import (
    DecryptionMismatch, SignatureRejected, TransportFailure, Unauthorized, VotingError
)
from .interfaces import ILedgerClient, ITypedDataSigner
from .types import DecryptionSession, DecryptionState, VoteTally

logger = logging.getLogger(__name__)

USER_DECRYPT_DURATION_DAYS = 1
MAX_EUINT32 = 2 ** 32 - 1

EIP712_DOMAIN_TYPE = [
    {"name": "name", "type": "string"},
    {"name": "version", "type": "string"},
    {"name": "chainId", "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
]

USER_DECRYPT_REQUEST_TYPE = [
    {"name": "publicKey", "type": "bytes"},
    {"name": "contractAddresses", "type": "address[]"},
    {"name": "startTimestamp", "type": "uint256"},
    {"name": "durationDays", "type": "uint256"},
]


def build_user_decrypt_typed_data(public_key: str,
                                  contract_addresses: List[str],
                                  start_timestamp: int,
                                  duration_days: int,
                                  verifying_contract: str,
                                  chain_id: int) -> Dict[str, Any]:
    """
    Build the EIP-712 authorization message for a user decryption.

    The result is a complete eth_signTypedData_v4 payload, so a wallet can show
    the approver which key, contracts and validity window are being authorized.
    """
    return {
        "types": {
            "EIP712Domain": EIP712_DOMAIN_TYPE,
            "UserDecryptRequestVerification": USER_DECRYPT_REQUEST_TYPE,
        },
        "primaryType": "UserDecryptRequestVerification",
        "domain": {
            "name": "Decryption",
            "version": "1",
            "chainId": int(chain_id),
            "verifyingContract": checksum_address(verifying_contract),
        },
        "message": {
            "publicKey": add_hex_prefix(public_key),
            "contractAddresses": [checksum_address(a) for a in contract_addresses],
            "startTimestamp": int(start_timestamp),
            "durationDays": int(duration_days),
        },
    }


def extract_decrypted_value(response: Mapping[str, Any], handle: str) -> Any:
    """Look a handle up with or without 0x prefix; missing handles count as zero"""
    bare = encode_handle(handle)
    candidates = (bare, "0x" + bare)
    for key in candidates:
        if key in response:
            return response[key]

    for key, value in response.items():
        if isinstance(key, str) and key.lower() in candidates:
            return value
    return 0


def _as_count(value: Any, label: str) -> int:
    if isinstance(value, bool):
        raise DecryptionMismatch(f"{label} count is a boolean: {value!r}", step="parse_response")
    try:
        count = int(value)
    except (TypeError, ValueError, OverflowError) as e:
        raise DecryptionMismatch(f"{label} count is not an integer: {value!r}", step="parse_response") from e
    if isinstance(value, float) and value != count:
        raise DecryptionMismatch(f"{label} count is fractional: {value!r}", step="parse_response")
    if count < 0 or count > MAX_EUINT32:
        raise DecryptionMismatch(f"{label} count out of range: {count}", step="parse_response")
    return count


def parse_decryption_response(response: Mapping[str, Any],
                              yes_handle: str,
                              no_handle: str,
                              expected_total: Optional[int] = None) -> VoteTally:
    """
    Extract yes/no counts from a user-decrypt response.

    Raises:
        DecryptionMismatch: If a value is not a valid euint32 count, or the
            counts do not add up to expected_total when one is given
    """
    if not isinstance(response, Mapping):
        raise DecryptionMismatch(
            f"Decryption response is not a mapping: {type(response).__name__}", step="parse_response"
        )

    yes_votes = _as_count(extract_decrypted_value(response, yes_handle), "yes")
    no_votes = _as_count(extract_decrypted_value(response, no_handle), "no")

    if expected_total is not None and yes_votes + no_votes != expected_total:
        raise DecryptionMismatch(
            f"Decrypted total {yes_votes + no_votes} does not match expected {expected_total}",
            step="parse_response",
        )
    return VoteTally(yes_votes=yes_votes, no_votes=no_votes)


class DecryptionAttempt:
    """State of a single decrypt() invocation"""

    def __init__(self, proposal_id: int, requester: str,
                 on_transition: Optional[Callable[[DecryptionState], None]] = None):
        self.proposal_id = proposal_id
        self.requester = requester
        self.state = DecryptionState.IDLE
        self.failure: Optional[VotingError] = None
        self._on_transition = on_transition

    def advance(self, state: DecryptionState):
        logger.debug(f"Decryption of proposal {self.proposal_id}: {self.state.value} -> {state.value}")
        self.state = state
        if self._on_transition:
            self._on_transition(state)

    def fail(self, error: VotingError):
        self.failure = error
        self.advance(DecryptionState.FAILED)


class ResultDecryptionProtocol:
    """
    Creator-only decryption of a closed proposal's encrypted tally.

    Args:
        engine: Shared encryption engine
        ledger: Ledger client used for authoritative reads
        signer: Collaborator that signs the EIP-712 authorization
        verifying_contract: Decryption verifier address (EIP-712 domain)
        gateway_chain_id: Chain id of the decryption gateway (EIP-712 domain)
        clock: Source of the current Unix time
    """

    def __init__(self,
                 engine: EncryptionEngine,
                 ledger: ILedgerClient,
                 signer: ITypedDataSigner,
                 verifying_contract: str,
                 gateway_chain_id: int,
                 clock: Callable[[], float] = time.time,
                 on_transition: Optional[Callable[[DecryptionState], None]] = None):
        self.engine = engine
        self.ledger = ledger
        self.signer = signer
        self.verifying_contract = validate_address(verifying_contract, field="verifying_contract")
        self.gateway_chain_id = gateway_chain_id
        self.clock = clock
        self.on_transition = on_transition
        self.last_attempt: Optional[DecryptionAttempt] = None

    async def authorize(self, proposal_id: int, requester: str):
        """
        Check creator and closed-state preconditions against the ledger.

        Raises:
            InvalidIdentity: If requester is malformed
            Unauthorized: If requester is not the creator or voting is still open
        """
        requester = validate_address(requester, field="requester")
        proposal = await self.ledger.get_proposal(proposal_id)

        if not proposal.is_creator(requester):
            raise Unauthorized(
                f"Only the creator of proposal {proposal_id} can decrypt its results", step="authorize"
            )
        if proposal.is_active:
            raise Unauthorized(
                f"Proposal {proposal_id} is still active; results are sealed until it closes",
                step="authorize",
            )
        return proposal

    async def decrypt(self, proposal_id: int, requester: str,
                      expected_total: Optional[int] = None) -> VoteTally:
        """Run the full handshake and return the decrypted tally"""
        attempt = DecryptionAttempt(proposal_id, requester, self.on_transition)
        self.last_attempt = attempt

        try:
            await self.authorize(proposal_id, requester)
            requester = validate_address(requester, field="requester")
            attempt.advance(DecryptionState.AUTHORIZATION_REQUIRED)

            handles = await self.ledger.get_encrypted_votes(proposal_id, requester)
            yes_hex, no_hex = self._encode_handles(handles)

            instance = await self.engine.get_instance()
            contract = self.ledger.contract_address
            contract_checksum = checksum_address(contract)

            keypair = await self._call_engine("generate_keypair", instance.generate_keypair)
            session = DecryptionSession(
                keypair=keypair,
                authorized_contracts=[contract_checksum],
                valid_from=int(self.clock()),
                validity_duration_days=USER_DECRYPT_DURATION_DAYS,
            )
            attempt.advance(DecryptionState.KEY_GENERATED)

            typed_data = build_user_decrypt_typed_data(
                public_key=keypair.public_key,
                contract_addresses=session.authorized_contracts,
                start_timestamp=session.valid_from,
                duration_days=session.validity_duration_days,
                verifying_contract=self.verifying_contract,
                chain_id=self.gateway_chain_id,
            )
            session.signature = await self._sign(typed_data)
            attempt.advance(DecryptionState.MESSAGE_SIGNED)

            handle_contract_pairs = [
                {"handle": yes_hex, "contractAddress": contract_checksum},
                {"handle": no_hex, "contractAddress": contract_checksum},
            ]
            attempt.advance(DecryptionState.DECRYPT_REQUESTED)
            response = await self._call_engine(
                "user_decrypt",
                instance.user_decrypt,
                handle_contract_pairs,
                session.keypair.private_key,
                session.keypair.public_key,
                session.signature,
                session.authorized_contracts,
                checksum_address(requester),
                str(session.valid_from),
                str(session.validity_duration_days),
            )

            tally = parse_decryption_response(response, yes_hex, no_hex, expected_total)
            attempt.advance(DecryptionState.DECRYPTED)
            logger.info(f"Decrypted results for proposal {proposal_id}")
            return tally

        except VotingError as e:
            logger.warning(f"Decryption of proposal {proposal_id} failed: {e}")
            attempt.fail(e)
            raise
        except Exception as e:
            logger.error(f"Decryption of proposal {proposal_id} failed unexpectedly: {e}")
            error = TransportFailure(str(e), step="decrypt")
            attempt.fail(error)
            raise error from e

    @staticmethod
    def _encode_handles(handles) -> Tuple[str, str]:
        try:
            yes_handle, no_handle = handles
            return encode_handle(yes_handle), encode_handle(no_handle)
        except (TypeError, ValueError) as e:
            raise TransportFailure(
                f"Ledger returned unusable tally handles: {handles!r}", step="getEncryptedVotes"
            ) from e

    async def _sign(self, typed_data: Dict[str, Any]) -> str:
        try:
            signature = await self.signer.sign_typed_data(typed_data)
        except VotingError:
            raise
        except Exception as e:
            raise SignatureRejected(f"Signer declined the decryption request: {e}", step="sign") from e
        return normalize_signature(signature)

    async def _call_engine(self, step: str, fn, *args):
        try:
            return await fn(*args)
        except VotingError:
            raise
        except Exception as e:
            raise TransportFailure(f"Encryption engine error: {e}", step=step) from e
