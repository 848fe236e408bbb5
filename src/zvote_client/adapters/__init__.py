"""
Concrete collaborators for the voting client
"""

from .http_backend import HttpFheBackend, HttpFheInstance, HttpEncryptedInput
from .ignite_store import IgniteKeyValueStore
from .signers import LocalAccountSigner

__all__ = [
    "HttpFheBackend",
    "HttpFheInstance",
    "HttpEncryptedInput",
    "IgniteKeyValueStore",
    "LocalAccountSigner",
]
