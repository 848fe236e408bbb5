"""
Encryption engine service.

One engine instance is created per process and handed to the components that
need it. Initialization is lazy, happens at most once at a time, and is shared by
every caller that arrives while it is in progress.
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Optional

from .exceptions import SdkUnavailable, VotingError
from .interfaces import IFheBackend, IFheInstance

logger = logging.getLogger(__name__)


class EngineState(Enum):
    """Initialization state of the encryption engine"""
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"


class EncryptionEngine:
    """
    Owns the shared homomorphic-encryption instance.

    Features:
    - Explicit tri-state initialization
    - Concurrent first callers share a single bootstrap
    - Bounded bootstrap (fixed poll interval, one overall deadline that
      also cancels a hung probe or SDK init)
    - Failed bootstraps return to UNINITIALIZED so a later call can retry
    """

    def __init__(self,
                 backend: IFheBackend,
                 poll_interval: float = 0.1,
                 ready_timeout: float = 10.0):
        self.backend = backend
        self.poll_interval = poll_interval
        self.ready_timeout = ready_timeout

        self._state = EngineState.UNINITIALIZED
        self._instance: Optional[IFheInstance] = None
        self._init_future: Optional[asyncio.Future] = None
        self._phase = "engine_wait"
        self._lock = asyncio.Lock()
        self.bootstrap_count = 0

    @property
    def state(self) -> EngineState:
        return self._state

    async def get_instance(self) -> IFheInstance:
        """Return the ready instance, initializing it on first use"""
        if self._state is EngineState.READY:
            return self._instance

        async with self._lock:
            if self._state is EngineState.READY:
                return self._instance
            if self._init_future is None:
                self._state = EngineState.INITIALIZING
                self._init_future = asyncio.ensure_future(self._initialize())
            future = self._init_future

        return await asyncio.shield(future)

    async def _initialize(self) -> IFheInstance:
        self.bootstrap_count += 1
        self._phase = "engine_wait"
        try:
            instance = await asyncio.wait_for(self._bootstrap(), timeout=self.ready_timeout)
        except asyncio.TimeoutError as e:
            self._reset()
            logger.error(f"Timeout waiting for encryption engine after {self.ready_timeout}s")
            raise SdkUnavailable(
                f"Engine not available within {self.ready_timeout}s", step=self._phase
            ) from e
        except VotingError as e:
            self._reset()
            if isinstance(e, SdkUnavailable):
                raise
            raise SdkUnavailable(f"Engine bootstrap failed: {e}", step="engine_init") from e
        except Exception as e:
            self._reset()
            logger.error(f"Failed to create encryption engine instance: {e}")
            raise SdkUnavailable(f"Engine bootstrap failed: {e}", step="engine_init") from e

        self._instance = instance
        self._state = EngineState.READY
        logger.info("Encryption engine instance ready")
        return instance

    async def _bootstrap(self) -> IFheInstance:
        # Runs under the overall deadline; a hung probe or init is cancelled
        await self._wait_until_available()
        self._phase = "engine_init"
        await self.backend.init_sdk()
        logger.info("Encryption SDK initialized")
        return await self.backend.create_instance()

    async def _wait_until_available(self):
        deadline = time.monotonic() + self.ready_timeout
        while True:
            try:
                if await self.backend.is_available():
                    return
            except Exception as e:
                logger.debug(f"Engine readiness probe failed: {e}")
            if time.monotonic() + self.poll_interval > deadline:
                logger.error(f"Timeout waiting for encryption engine after {self.ready_timeout}s")
                raise SdkUnavailable(
                    f"Engine not available within {self.ready_timeout}s", step="engine_wait"
                )
            await asyncio.sleep(self.poll_interval)

    def _reset(self):
        self._state = EngineState.UNINITIALIZED
        self._instance = None
        self._init_future = None

    async def close(self):
        """Release the backend and forget the instance"""
        self._reset()
        await self.backend.aclose()
