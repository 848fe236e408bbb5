"""
Apache Ignite backed key-value store for the local vote cache.

Lets several client processes on one machine (or a small team) share the
advisory cache. Read failures are logged and treated as cache misses; write
failures are logged and raised to the caller. The ledger remains the source
of truth.
"""

import logging
from typing import List, Optional

from pyignite import AioClient
from pyignite.exceptions import CacheError

logger = logging.getLogger(__name__)

IGNITE_HOST = "localhost"
IGNITE_PORT = 10800
CACHE_NAME = "zvote_local_cache"


class IgniteKeyValueStore:
    """Async Ignite cache client"""

    def __init__(self, host: str = IGNITE_HOST, port: int = IGNITE_PORT,
                 cache_name: str = CACHE_NAME):
        self.host = host
        self.port = port
        self.cache_name = cache_name
        self.client = None
        self.cache = None

    @classmethod
    def from_settings(cls, settings) -> "IgniteKeyValueStore":
        return cls(settings.ignite_host, settings.ignite_port, settings.ignite_cache_name)

    async def connect(self):
        """Connect to Ignite cluster"""
        try:
            self.client = AioClient()
            await self.client.connect(self.host, self.port)
            self.cache = await self.client.get_or_create_cache(self.cache_name)
            logger.info(f"Connected to Ignite at {self.host}:{self.port}")
        except Exception as e:
            logger.error(f"Failed to connect to Ignite: {e}")
            raise

    async def aclose(self):
        """Disconnect from Ignite"""
        if self.client:
            await self.client.close()
            self.client = None
            self.cache = None

    async def _ensure_connected(self):
        if self.cache is None:
            await self.connect()

    async def get(self, key: str) -> Optional[str]:
        await self._ensure_connected()
        try:
            return await self.cache.get(key)
        except CacheError as e:
            logger.error(f"Cache get error: {e}")
            return None

    async def set(self, key: str, value: str) -> None:
        await self._ensure_connected()
        try:
            await self.cache.put(key, value)
        except CacheError as e:
            logger.error(f"Cache set error: {e}")
            raise

    async def delete(self, key: str) -> None:
        await self._ensure_connected()
        try:
            await self.cache.remove_key(key)
        except CacheError as e:
            logger.error(f"Cache delete error: {e}")

    async def keys(self, prefix: str = "") -> List[str]:
        await self._ensure_connected()
        found = []
        try:
            async with self.cache.scan() as cursor:
                async for key, _ in cursor:
                    if isinstance(key, str) and key.startswith(prefix):
                        found.append(key)
        except CacheError as e:
            logger.error(f"Cache scan error: {e}")
        return found
