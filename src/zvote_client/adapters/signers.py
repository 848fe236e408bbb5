"""
Typed-data signers backed by eth-account.
"""

import logging
from typing import Any, Dict

from eth_account import Account
from eth_account.messages import encode_typed_data
from eth_account.signers.local import LocalAccount

from ..codec import to_hex
from ..exceptions import InvalidIdentity, SignatureRejected

logger = logging.getLogger(__name__)


class LocalAccountSigner:
    """Signs EIP-712 messages with a locally held key"""

    def __init__(self, account: LocalAccount):
        self.account = account

    @classmethod
    def from_key(cls, private_key: str) -> "LocalAccountSigner":
        try:
            return cls(Account.from_key(private_key))
        except Exception as e:
            # Message deliberately omits the key
            raise InvalidIdentity("Private key is not a valid secp256k1 key", step="load_key") from e

    @property
    def address(self) -> str:
        return self.account.address.lower()

    async def sign_typed_data(self, typed_data: Dict[str, Any]) -> str:
        try:
            message = encode_typed_data(full_message=typed_data)
            signed = self.account.sign_message(message)
        except Exception as e:
            raise SignatureRejected(f"Could not sign typed data: {e}", step="sign") from e

        logger.debug(f"Signed {typed_data.get('primaryType')} as {self.account.address}")
        return to_hex(signed.signature)
