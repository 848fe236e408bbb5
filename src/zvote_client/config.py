"""
Configuration Module

Client settings read from the environment (prefix ZVOTE_) or a .env file.
Defaults target the Sepolia deployment of the decryption gateway.
"""

import logging
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .codec import validate_address
from .exceptions import InvalidIdentity

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Settings for the voting client"""

    # Ledger
    contract_address: str = Field(..., description="Deployed ZamaVote contract")
    rpc_url: str = "https://ethereum-sepolia-rpc.publicnode.com"
    chain_id: int = 11155111
    gas_limit: int = Field(5_000_000, gt=0)
    receipt_timeout: float = Field(120.0, gt=0)
    private_key: Optional[str] = Field(None, repr=False)

    # Encryption engine bridge
    relayer_url: str = "http://localhost:8545/fhevm"
    gateway_chain_id: int = 55815
    decryption_verifier_address: str = "0xb6E160B1ff80D67Bfe90A85eE06Ce0A2613607D1"
    engine_poll_interval: float = Field(0.1, gt=0)
    engine_ready_timeout: float = Field(10.0, gt=0)
    engine_request_timeout: float = Field(30.0, gt=0)

    # Reads and listings
    max_concurrent_reads: int = Field(8, ge=1)
    page_size: int = Field(12, ge=1)
    event_poll_interval: float = Field(4.0, gt=0)

    # Local cache
    cache_backend: str = "memory"
    ignite_host: str = "localhost"
    ignite_port: int = 10800
    ignite_cache_name: str = "zvote_local_cache"

    # Logging
    log_level: str = "WARNING"
    json_logs: bool = False

    model_config = SettingsConfigDict(
        env_prefix="ZVOTE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("contract_address", "decryption_verifier_address")
    @classmethod
    def check_address(cls, v, info):
        try:
            return validate_address(v, field=info.field_name)
        except InvalidIdentity as e:
            raise ValueError(e.message) from e

    @field_validator("cache_backend")
    @classmethod
    def check_cache_backend(cls, v):
        v = v.lower()
        if v not in ("memory", "ignite"):
            raise ValueError(f"cache_backend must be 'memory' or 'ignite', got {v!r}")
        return v

    @field_validator("log_level")
    @classmethod
    def check_log_level(cls, v):
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level {v!r}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
