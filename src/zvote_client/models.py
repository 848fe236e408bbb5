"""
Ledger-sourced data models.

Positional tuples returned by contract reads are decoded here, once, into named
fields; nothing past the read boundary handles raw tuples.
"""

import time
from typing import Any, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .codec import addresses_equal, validate_address
from .exceptions import InvalidIdentity, TransportFailure

PROPOSAL_FIELDS = ("id", "creator", "title", "description", "deadline", "created_at", "is_active")


class Proposal(BaseModel):
    """A proposal as recorded by the voting contract"""
    model_config = ConfigDict(frozen=True)

    id: int = Field(..., gt=0)
    creator: str
    title: str
    description: str
    deadline: int = Field(..., ge=0)
    created_at: int = Field(..., ge=0)
    is_active: bool

    @field_validator("creator")
    @classmethod
    def canonical_creator(cls, v: str) -> str:
        try:
            return validate_address(v, field="creator")
        except InvalidIdentity as e:
            raise ValueError(str(e)) from e

    @model_validator(mode="after")
    def deadline_after_creation(self) -> "Proposal":
        if self.deadline <= self.created_at:
            raise ValueError("deadline must be later than created_at")
        return self

    @classmethod
    def from_ledger(cls, raw: Sequence[Any]) -> "Proposal":
        """Decode the getProposal return tuple"""
        if len(raw) != len(PROPOSAL_FIELDS):
            raise TransportFailure(
                f"getProposal returned {len(raw)} fields, expected {len(PROPOSAL_FIELDS)}",
                step="getProposal",
            )
        try:
            return cls(**dict(zip(PROPOSAL_FIELDS, raw)))
        except ValidationError as e:
            raise TransportFailure(f"Malformed proposal record: {e}", step="getProposal") from e

    def is_creator(self, address: str) -> bool:
        return addresses_equal(self.creator, address)

    def seconds_remaining(self, now: Optional[float] = None) -> int:
        now = time.time() if now is None else now
        return max(0, int(self.deadline - now))
