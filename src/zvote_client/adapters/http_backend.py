"""
HTTP bridge to the homomorphic-encryption SDK.

The FHE library runs out of process (usually next to a relayer) and exposes a
small JSON API:

    GET  /health           -> {"ready": bool}
    POST /v1/init          -> {}
    POST /v1/encrypt       -> {"handles": [hex, ...], "inputProof": hex}
    POST /v1/keypair       -> {"publicKey": hex, "privateKey": hex}
    POST /v1/user-decrypt  -> {handle: value, ...}
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

import httpx

from ..exceptions import TransportFailure
from ..types import EncryptedInputResult, EphemeralKeypair

logger = logging.getLogger(__name__)

UINT32_MAX = 2 ** 32 - 1


def _decode_hex(value: Any, field: str) -> bytes:
    if not isinstance(value, str):
        raise TransportFailure(f"Bridge returned non-string {field}: {value!r}", step="encrypt")
    body = value[2:] if value[:2] in ("0x", "0X") else value
    try:
        return bytes.fromhex(body)
    except ValueError as e:
        raise TransportFailure(f"Bridge returned malformed {field}", step="encrypt") from e


class HttpEncryptedInput:
    """Collects plaintext values and encrypts them in one bridge call"""

    def __init__(self, instance: "HttpFheInstance", contract_address: str, user_address: str):
        self.instance = instance
        self.contract_address = contract_address
        self.user_address = user_address
        self.values: List[Dict[str, Any]] = []

    def add32(self, value: int) -> None:
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= UINT32_MAX:
            raise ValueError(f"add32 expects an unsigned 32-bit integer, got {value!r}")
        self.values.append({"type": "euint32", "value": value})

    async def encrypt(self) -> EncryptedInputResult:
        data = await self.instance.backend.request("encrypt", "POST", "/v1/encrypt", json={
            "contractAddress": self.contract_address,
            "userAddress": self.user_address,
            "values": self.values,
        })
        handles = data.get("handles") or []
        return EncryptedInputResult(
            handles=[_decode_hex(h, "handle") for h in handles],
            input_proof=_decode_hex(data.get("inputProof"), "inputProof"),
        )


class HttpFheInstance:
    """Engine instance whose operations are served by the bridge"""

    def __init__(self, backend: "HttpFheBackend"):
        self.backend = backend

    def create_encrypted_input(self, contract_address: str, user_address: str) -> HttpEncryptedInput:
        return HttpEncryptedInput(self, contract_address, user_address)

    async def generate_keypair(self) -> EphemeralKeypair:
        data = await self.backend.request("generate_keypair", "POST", "/v1/keypair")
        try:
            return EphemeralKeypair(public_key=data["publicKey"], private_key=data["privateKey"])
        except KeyError as e:
            raise TransportFailure(f"Bridge keypair response missing {e}", step="generate_keypair") from e

    async def user_decrypt(self,
                           handle_contract_pairs: List[Dict[str, str]],
                           private_key: str,
                           public_key: str,
                           signature: str,
                           contract_addresses: List[str],
                           user_address: str,
                           start_timestamp: str,
                           duration_days: str) -> Mapping[str, Any]:
        return await self.backend.request("user_decrypt", "POST", "/v1/user-decrypt", json={
            "handleContractPairs": handle_contract_pairs,
            "privateKey": private_key,
            "publicKey": public_key,
            "signature": signature,
            "contractAddresses": contract_addresses,
            "userAddress": user_address,
            "startTimestamp": start_timestamp,
            "durationDays": duration_days,
        })


class HttpFheBackend:
    """
    Loads the encryption SDK through the bridge.

    Args:
        base_url: Bridge root URL
        chain_id: Chain the voting contract lives on
        gateway_chain_id: Chain id of the decryption gateway
        timeout: Per-request timeout in seconds
        transport: Optional httpx transport (tests inject a MockTransport)
    """

    def __init__(self,
                 base_url: str,
                 chain_id: int,
                 gateway_chain_id: int,
                 timeout: float = 30.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.chain_id = chain_id
        self.gateway_chain_id = gateway_chain_id
        self.client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    @classmethod
    def from_settings(cls, settings) -> "HttpFheBackend":
        return cls(
            settings.relayer_url,
            chain_id=settings.chain_id,
            gateway_chain_id=settings.gateway_chain_id,
            timeout=settings.engine_request_timeout,
        )

    async def request(self, step: str, method: str, path: str,
                      json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            response = await self.client.request(method, path, json=json)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Bridge request {method} {path} failed: {e}")
            raise TransportFailure(f"Bridge request failed: {e}", step=step) from e
        except ValueError as e:
            raise TransportFailure(f"Bridge returned invalid JSON from {path}", step=step) from e

        if not isinstance(data, dict):
            raise TransportFailure(f"Bridge returned unexpected payload from {path}", step=step)
        return data

    async def is_available(self) -> bool:
        try:
            response = await self.client.get("/health")
        except httpx.HTTPError as e:
            logger.debug(f"Bridge health check failed: {e}")
            return False
        if response.status_code != 200:
            return False
        try:
            return bool(response.json().get("ready", True))
        except ValueError:
            return False

    async def init_sdk(self) -> None:
        await self.request("init_sdk", "POST", "/v1/init", json={
            "chainId": self.chain_id,
            "gatewayChainId": self.gateway_chain_id,
        })

    async def create_instance(self) -> HttpFheInstance:
        return HttpFheInstance(self)

    async def aclose(self) -> None:
        await self.client.aclose()
