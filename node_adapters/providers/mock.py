"""
Mock Node Service - In-memory chain for tests and offline runs.

FEATURES:
- Blocks addressable by hash, level and "head"
- Scripted heads subscriptions, one list of notifications per connection
- Configurable latency
- Error injection per block id and per subscription
- Full request log
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import AsyncIterator, Optional

from node_adapters.base import BaseNodeService
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


@dataclass
class MockConfig:
    """Configuration for the mock node."""

    latency_ms: float = 0.0
    """Simulated latency per block fetch."""

    idle_when_exhausted: bool = True
    """Once scripted sessions run out, block forever instead of failing."""

    block_errors: dict[str, NodeClientError] = field(default_factory=dict)
    """Errors raised when fetching the given block ids."""


class MockNodeService(BaseNodeService):
    """
    Node service backed by a dictionary of blocks.

    Usage:
        service = MockNodeService()
        service.add_block(Block.from_dict(data))
        service.add_heads_session([HeadNotification("B...", 10)])
    """

    def __init__(
        self,
        config: Optional[MockConfig] = None,
        blocks: Optional[list[Block]] = None,
    ) -> None:
        super().__init__(max_retries=0, cache_size=0)
        self._config = config or MockConfig()
        self._by_hash: dict[str, Block] = {}
        self._by_level: dict[int, Block] = {}
        self._head: Optional[Block] = None
        self._sessions: list[list[HeadNotification]] = []
        self._session_errors: dict[int, NodeClientError] = {}

        self.requests: list[tuple[str, str]] = []
        self.subscriptions_opened = 0

        for block in blocks or []:
            self.add_block(block)

    @property
    def name(self) -> str:
        return "mock"

    def add_block(self, block: Block) -> None:
        """Add a block; the highest level becomes the head."""
        self._by_hash[block.hash] = block
        self._by_level[block.level] = block
        if self._head is None or block.level >= self._head.level:
            self._head = block

    def add_heads_session(
        self,
        heads: list[HeadNotification],
        error: Optional[NodeClientError] = None,
    ) -> None:
        """Script one subscription; `error` is raised after the heads are sent."""
        self._sessions.append(list(heads))
        if error is not None:
            self._session_errors[len(self._sessions) - 1] = error

    def set_block_error(self, block_id: str, error: NodeClientError) -> None:
        self._config.block_errors[block_id] = error

    async def fetch_block(self, chain_id: str, block_id: str) -> Block:
        self.requests.append((chain_id, block_id))

        if self._config.latency_ms:
            await asyncio.sleep(self._config.latency_ms / 1000)

        error = self._config.block_errors.get(block_id)
        if error is not None:
            raise error

        block = self._lookup(block_id)
        if block is None:
            raise BlockNotFoundError(
                message=f"Block {block_id!r} not found",
                block_id=block_id,
                chain=chain_id,
            )
        return block

    def _lookup(self, block_id: str) -> Optional[Block]:
        if block_id == "head":
            return self._head
        if block_id.lstrip("-").isdigit():
            return self._by_level.get(int(block_id))
        return self._by_hash.get(block_id)

    async def subscribe_heads(self, chain_id: str) -> AsyncIterator[HeadNotification]:
        index = self.subscriptions_opened
        self.subscriptions_opened += 1

        if index >= len(self._sessions):
            if self._config.idle_when_exhausted:
                logger.debug(f"[{self.name}] No scripted session left, idling")
                await asyncio.Event().wait()
            raise TransportError(
                message="Connection refused",
                chain=chain_id,
            )

        for head in self._sessions[index]:
            await asyncio.sleep(0)
            yield head

        error = self._session_errors.get(index)
        if error is not None:
            raise error

    async def health_check(self, chain_id: str = "main") -> AdapterHealth:
        self._health.status = AdapterStatus.HEALTHY
        self._health.last_check = datetime.utcnow()
        return self._health
