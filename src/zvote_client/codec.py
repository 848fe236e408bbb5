"""
Identifier and hex payload codec.

Validates account and contract addresses, serializes ciphertext handles and
signatures into the fixed-width hex forms the ledger and the encryption
engine expect.
"""

import re
from typing import Union

from eth_utils import to_checksum_address

from .exceptions import InvalidIdentity, SignatureRejected

ADDRESS_PATTERN = re.compile(r"0x[0-9a-fA-F]{40}")
HEX_PATTERN = re.compile(r"[0-9a-fA-F]*")

HANDLE_BYTES = 32
HANDLE_HEX_LENGTH = HANDLE_BYTES * 2
SIGNATURE_HEX_LENGTH = 130  # r (32) + s (32) + v (1)


def is_valid_address(value) -> bool:
    """Check for a 0x-prefixed 20-byte hex address (case-insensitive)"""
    return isinstance(value, str) and bool(ADDRESS_PATTERN.fullmatch(value))


def validate_address(value, field: str = "address") -> str:
    """Validate an address and return its canonical lowercase form"""
    if not is_valid_address(value):
        raise InvalidIdentity(f"{field} is not a 0x-prefixed 20-byte hex address: {value!r}")
    return value.lower()


def checksum_address(value: str) -> str:
    """EIP-55 mixed-case form, as expected by web3 and wallets"""
    return to_checksum_address(validate_address(value))


def addresses_equal(first: str, second: str) -> bool:
    if not (is_valid_address(first) and is_valid_address(second)):
        return False
    return first.lower() == second.lower()


def strip_hex_prefix(value: str) -> str:
    if value[:2] in ("0x", "0X"):
        return value[2:]
    return value


def add_hex_prefix(value: str) -> str:
    return "0x" + strip_hex_prefix(value)


def is_hex(value: str) -> bool:
    return isinstance(value, str) and bool(HEX_PATTERN.fullmatch(strip_hex_prefix(value)))


def to_hex(data: Union[bytes, bytearray, memoryview, str]) -> str:
    """Canonical lowercase 0x-prefixed hex"""
    if isinstance(data, (bytes, bytearray, memoryview)):
        return "0x" + bytes(data).hex()
    if isinstance(data, str) and is_hex(data):
        return "0x" + strip_hex_prefix(data).lower()
    raise ValueError(f"Cannot encode {type(data).__name__} as hex")


def encode_handle(handle: Union[int, bytes, bytearray, str]) -> str:
    """
    Encode a ciphertext handle as 64 lowercase hex characters without prefix.

    Ledger reads may return handles as integers, raw bytes32 or hex strings;
    all of them map to the same canonical form.
    """
    if isinstance(handle, bool):
        raise ValueError("Handle cannot be a boolean")
    if isinstance(handle, int):
        if handle < 0:
            raise ValueError("Handle cannot be negative")
        encoded = format(handle, "x")
    elif isinstance(handle, (bytes, bytearray)):
        encoded = bytes(handle).hex()
    elif isinstance(handle, str) and is_hex(handle):
        encoded = strip_hex_prefix(handle).lower()
    else:
        raise ValueError(f"Unsupported handle value: {handle!r}")

    if len(encoded) > HANDLE_HEX_LENGTH:
        raise ValueError(f"Handle wider than {HANDLE_BYTES} bytes: {encoded}")
    return encoded.rjust(HANDLE_HEX_LENGTH, "0")


def handle_to_bytes(handle: Union[int, bytes, bytearray, str]) -> bytes:
    return bytes.fromhex(encode_handle(handle))


def normalize_signature(signature) -> str:
    """Return a 65-byte signature as hex without prefix, or reject it"""
    if not isinstance(signature, str) or not signature:
        raise SignatureRejected(f"Signer returned no signature: {signature!r}", step="sign")
    body = strip_hex_prefix(signature)
    if not is_hex(body) or len(body) != SIGNATURE_HEX_LENGTH:
        raise SignatureRejected(
            f"Malformed signature (expected {SIGNATURE_HEX_LENGTH} hex chars, got {len(body)})",
            step="sign",
        )
    return body.lower()
