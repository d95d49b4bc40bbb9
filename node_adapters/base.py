"""
Base Node Service - Abstract interface for Tezos node access.

All node services MUST:
- Return fully parsed Block objects
- Raise BlockNotFoundError for missing blocks
- Raise TransportError for network/protocol failures
- Treat the end of a heads stream as a normal EOF, not an error
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from datetime import datetime
from typing import Any, AsyncIterator, Optional

import aiohttp

from node_adapters.exceptions import (
    BlockNotFoundError,
    NodeClientError,
    TransportError,
)
from node_adapters.models import (
    AdapterHealth,
    AdapterStatus,
    Block,
    HeadNotification,
)


logger = logging.getLogger(__name__)


class BaseNodeService(ABC):
    """
    Abstract base class for node services.

    Each service must:
    1. Implement fetch_block() - Get one block from the node
    2. Implement subscribe_heads() - Stream new head notifications
    3. Implement health_check() - Verify connectivity

    Shared behaviour:
    - Cache for hash-addressed blocks (immutable once produced)
    - Limited retries with backoff for transient failures
    - Health tracking
    """

    # Configuration defaults
    DEFAULT_TIMEOUT = 30.0
    MAX_RETRIES = 2
    RETRY_BACKOFF_BASE = 1.5
    CACHE_SIZE = 256
    DEGRADED_THRESHOLD = 3
    UNAVAILABLE_THRESHOLD = 5

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = MAX_RETRIES,
        cache_size: int = CACHE_SIZE,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self._timeout = timeout
        self._max_retries = max_retries
        self._session = session
        self._owns_session = session is None

        # Hash-addressed block cache
        self._cache: "OrderedDict[tuple[str, str], Block]" = OrderedDict()
        self._cache_size = cache_size
        self._cache_hits = 0
        self._cache_misses = 0

        self._health = AdapterHealth(
            status=AdapterStatus.UNKNOWN,
            last_check=datetime.utcnow(),
        )

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this service."""
        pass

    @abstractmethod
    async def fetch_block(self, chain_id: str, block_id: str) -> Block:
        """
        Fetch one block from the node without caching or retries.

        Args:
            chain_id: Chain identifier ("main" or a chain hash)
            block_id: Block hash, "head", or a decimal level

        Raises:
            BlockNotFoundError: If the node has no such block
            TransportError: On network or protocol failure
        """
        pass

    @abstractmethod
    def subscribe_heads(self, chain_id: str) -> AsyncIterator[HeadNotification]:
        """
        Open a heads subscription.

        The returned iterator ends when the node closes the connection.
        That is a normal EOF; whether to resubscribe is the caller's call.

        Raises:
            TransportError: On network or protocol failure
        """
        pass

    @abstractmethod
    async def health_check(self, chain_id: str = "main") -> AdapterHealth:
        """Check node connectivity and health."""
        pass

    async def get_block(self, chain_id: str, block_id: str) -> Block:
        """
        Fetch a block (main entry point).

        Hash-addressed blocks are served from cache when possible. Levels
        and symbolic ids such as "head" are always fetched, since they may
        move on reorganisation.
        """
        cacheable = is_block_hash(block_id)
        key = (chain_id, block_id)

        if cacheable:
            cached = self._cache.get(key)
            if cached is not None:
                self._cache.move_to_end(key)
                self._cache_hits += 1
                logger.debug(f"[{self.name}] Cache hit for {block_id}")
                return cached
            self._cache_misses += 1

        block = await self._fetch_with_retry(chain_id, block_id)

        if self._cache_size > 0:
            # A level or "head" lookup also tells us the block by hash
            self._put_in_cache((chain_id, block.hash), block)

        return block

    async def _fetch_with_retry(self, chain_id: str, block_id: str) -> Block:
        """Fetch with limited retries on transient transport errors."""
        attempt = 0
        while True:
            self._health.requests_total += 1
            try:
                block = await self.fetch_block(chain_id, block_id)
                self._on_success()
                return block

            except BlockNotFoundError:
                # Not a health problem: the node answered
                self._on_success()
                raise

            except TransportError as e:
                self._on_error(e)
                if e.is_client_error or attempt >= self._max_retries:
                    raise

                wait_time = self.RETRY_BACKOFF_BASE ** attempt
                attempt += 1
                logger.warning(
                    f"[{self.name}] Retry {attempt}/{self._max_retries} "
                    f"in {wait_time:.1f}s: {e}"
                )
                await asyncio.sleep(wait_time)

    # ─────────────────────────────────────────────────────────────
    # Cache Management
    # ─────────────────────────────────────────────────────────────

    def _put_in_cache(self, key: tuple[str, str], block: Block) -> None:
        self._cache[key] = block
        self._cache.move_to_end(key)
        while len(self._cache) > self._cache_size:
            self._cache.popitem(last=False)

    def clear_cache(self) -> None:
        """Clear all cache entries."""
        self._cache.clear()
        logger.info(f"[{self.name}] Cache cleared")

    def get_cache_stats(self) -> dict[str, Any]:
        """Get cache statistics."""
        total_requests = self._cache_hits + self._cache_misses
        hit_rate = (self._cache_hits / total_requests * 100) if total_requests > 0 else 0

        return {
            "entries": len(self._cache),
            "hits": self._cache_hits,
            "misses": self._cache_misses,
            "hit_rate_percent": round(hit_rate, 2),
        }

    # ─────────────────────────────────────────────────────────────
    # HTTP Helpers
    # ─────────────────────────────────────────────────────────────

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout),
                headers=self._get_default_headers(),
            )
            self._owns_session = True
        return self._session

    def _get_default_headers(self) -> dict[str, str]:
        """Get default HTTP headers."""
        return {
            "Accept": "application/json",
            "User-Agent": "tez-inspector/1.0",
        }

    async def _make_request(
        self,
        method: str,
        url: str,
        params: Optional[dict[str, Any]] = None,
    ) -> Any:
        """Make HTTP request with error handling."""
        session = await self._get_session()

        start_time = time.time()
        try:
            async with session.request(method, url, params=params) as response:
                self._health.latency_ms = (time.time() - start_time) * 1000

                if response.status >= 400:
                    body = await response.text()
                    raise TransportError(
                        message=f"HTTP {response.status}",
                        status_code=response.status,
                        response_body=body[:500],
                        request_url=url,
                    )

                try:
                    return await response.json(content_type=None)
                except ValueError as e:
                    raise TransportError(
                        message=f"Malformed response: {e}",
                        status_code=response.status,
                        request_url=url,
                        original_error=e,
                    )

        except aiohttp.ClientError as e:
            raise TransportError(
                message=f"Connection error: {e}",
                request_url=url,
                original_error=e,
            )
        except asyncio.TimeoutError as e:
            raise TransportError(
                message=f"Timeout after {self._timeout}s",
                request_url=url,
                original_error=e,
            )

    # ─────────────────────────────────────────────────────────────
    # Health & Error Tracking
    # ─────────────────────────────────────────────────────────────

    def _on_success(self) -> None:
        """Handle successful request."""
        self._health.consecutive_failures = 0

        if self._health.status != AdapterStatus.HEALTHY:
            if self._health.status != AdapterStatus.UNKNOWN:
                logger.info(f"[{self.name}] Recovered to HEALTHY status")
            self._health.status = AdapterStatus.HEALTHY

    def _on_error(self, error: NodeClientError) -> None:
        """Handle request error."""
        self._health.error_count += 1
        self._health.consecutive_failures += 1
        self._health.last_error = str(error)
        self._health.last_error_time = datetime.utcnow()

        if self._health.consecutive_failures >= self.UNAVAILABLE_THRESHOLD:
            if self._health.status != AdapterStatus.UNAVAILABLE:
                self._health.status = AdapterStatus.UNAVAILABLE
                logger.error(f"[{self.name}] Marked UNAVAILABLE")
        elif self._health.consecutive_failures >= self.DEGRADED_THRESHOLD:
            if self._health.status != AdapterStatus.DEGRADED:
                self._health.status = AdapterStatus.DEGRADED
                logger.warning(f"[{self.name}] Marked DEGRADED")

    def get_health(self) -> AdapterHealth:
        """Get current health status."""
        return self._health

    # ─────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────

    async def close(self) -> None:
        """Close resources."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "BaseNodeService":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(name={self.name}, status={self._health.status.value})>"


def is_block_hash(block_id: str) -> bool:
    """Block hashes are 51-character base58 strings starting with 'B'."""
    return len(block_id) == 51 and block_id.startswith("B")
