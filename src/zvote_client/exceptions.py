"""Error taxonomy for the encrypted voting client.

Every failure surfaced by this package is exactly one of the kinds below, so the
calling layer can render a specific message instead of a generic failure.
"""

from typing import Optional


class ErrorCode:
    """Stable machine-readable error codes"""
    INVALID_IDENTITY = "INVALID_IDENTITY"
    SDK_UNAVAILABLE = "SDK_UNAVAILABLE"
    UNAUTHORIZED = "UNAUTHORIZED"
    ALREADY_VOTED = "ALREADY_VOTED"
    ALREADY_IN_PROGRESS = "ALREADY_IN_PROGRESS"
    SIGNATURE_REJECTED = "SIGNATURE_REJECTED"
    DECRYPTION_MISMATCH = "DECRYPTION_MISMATCH"
    TRANSPORT_FAILURE = "TRANSPORT_FAILURE"


class VotingError(Exception):
    """Base exception for voting client operations"""
    error_code = "VOTING_ERROR"

    def __init__(self, message: str, step: Optional[str] = None):
        self.message = message
        self.step = step
        super().__init__(message if step is None else f"{step}: {message}")


class InvalidIdentity(VotingError):
    """Malformed account or contract identifier (local validation only)"""
    error_code = ErrorCode.INVALID_IDENTITY


class SdkUnavailable(VotingError):
    """Encryption engine failed to load or initialize within its deadline"""
    error_code = ErrorCode.SDK_UNAVAILABLE


class Unauthorized(VotingError):
    """Caller may not perform the operation on this proposal"""
    error_code = ErrorCode.UNAUTHORIZED


class AlreadyVoted(VotingError):
    """The ledger reports that this voter has already voted"""
    error_code = ErrorCode.ALREADY_VOTED


class AlreadyInProgress(VotingError):
    """A vote for the same proposal and voter is already being submitted"""
    error_code = ErrorCode.ALREADY_IN_PROGRESS


class SignatureRejected(VotingError):
    """Signer declined the request or returned a malformed signature"""
    error_code = ErrorCode.SIGNATURE_REJECTED


class DecryptionMismatch(VotingError):
    """Decrypted values are inconsistent with a valid tally"""
    error_code = ErrorCode.DECRYPTION_MISMATCH


class TransportFailure(VotingError):
    """Ledger or engine call failed at the network layer"""
    error_code = ErrorCode.TRANSPORT_FAILURE
