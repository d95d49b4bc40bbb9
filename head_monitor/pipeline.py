"""
Head Monitor - Streaming Pipeline.

============================================================
RESPONSIBILITY
============================================================
Follows the chain head and hands each new block to a sink.

Flow:
    subscribe_heads() -> HeadFilter -> resolve by hash -> sink

- The subscription is reopened whenever the node closes it
- Only strictly higher levels pass the filter
- Any transport or resolution error stops the run
- Cancellation is a clean stop, never an error

============================================================
"""

import asyncio
import logging
from contextlib import suppress
from dataclasses import dataclass
from typing import AsyncIterator, Optional

from block_inspection import BlockResolver, InspectionContext
from node_adapters import HeadNotification

from head_monitor.filters import HeadFilter
from head_monitor.sinks import BlockSink


logger = logging.getLogger(__name__)


@dataclass
class MonitorConfig:
    """Tuning for the monitor loop."""

    reconnect_delay_seconds: float = 0.0
    """Pause before reopening a closed subscription."""

    max_subscriptions: Optional[int] = None
    """Stop after this many subscriptions have ended. None means never."""


@dataclass
class MonitorStats:
    """Counters for one monitor run."""

    subscriptions: int = 0
    heads_received: int = 0
    heads_dropped: int = 0
    blocks_dispatched: int = 0

    def to_dict(self) -> dict:
        return {
            "subscriptions": self.subscriptions,
            "heads_received": self.heads_received,
            "heads_dropped": self.heads_dropped,
            "blocks_dispatched": self.blocks_dispatched,
        }


class HeadMonitor:
    """
    Streams new blocks from a node into a sink.

    Usage:
        monitor = HeadMonitor(context)
        cancel = asyncio.Event()
        await monitor.run(CallbackSink(print_block), cancel)
    """

    def __init__(
        self,
        context: InspectionContext,
        config: Optional[MonitorConfig] = None,
    ) -> None:
        self._context = context
        self._config = config or MonitorConfig()
        self._resolver = BlockResolver(context)
        self._filter = HeadFilter()
        self.stats = MonitorStats()

    @property
    def last_level(self) -> int:
        return self._filter.last_level

    async def heads(self) -> AsyncIterator[HeadNotification]:
        """Yield head notifications, resubscribing whenever a stream ends."""
        service = self._context.service
        chain_id = self._context.chain_id

        while True:
            self.stats.subscriptions += 1
            logger.info(
                f"Subscribing to heads on {service.name} "
                f"(chain={chain_id}, attempt={self.stats.subscriptions})"
            )

            async for head in service.subscribe_heads(chain_id):
                self.stats.heads_received += 1
                yield head

            limit = self._config.max_subscriptions
            if limit is not None and self.stats.subscriptions >= limit:
                logger.info(f"Heads stream closed, subscription limit {limit} reached")
                return

            logger.info("Heads stream closed by node, resubscribing")
            if self._config.reconnect_delay_seconds > 0:
                await asyncio.sleep(self._config.reconnect_delay_seconds)

    async def run(self, sink: BlockSink, cancel: Optional[asyncio.Event] = None) -> None:
        """
        Run until the stream ends, an error occurs, or `cancel` is set.

        Raises:
            TransportError: Subscription or block lookup failed
            ResolutionError: A notified block could not be resolved
        """
        body = asyncio.ensure_future(self._run(sink))
        stop = asyncio.ensure_future(cancel.wait()) if cancel is not None else None
        waiting = {body} if stop is None else {body, stop}

        try:
            await asyncio.wait(waiting, return_when=asyncio.FIRST_COMPLETED)
        finally:
            if stop is not None:
                stop.cancel()
            if not body.done():
                body.cancel()
                with suppress(asyncio.CancelledError):
                    await body
                logger.info(
                    f"Head monitor stopped at level {self._filter.last_level} "
                    f"after {self.stats.blocks_dispatched} blocks"
                )

        if body.cancelled():
            return
        body.result()

    async def _run(self, sink: BlockSink) -> None:
        await sink.start()
        try:
            async for head in self.heads():
                if not self._filter.accept(head):
                    self.stats.heads_dropped += 1
                    continue

                resolved = await self._resolver.resolve(head.hash, want_successor=False)
                await sink.send(resolved)
                self.stats.blocks_dispatched += 1

        except asyncio.CancelledError:
            await sink.abort()
            raise
        except Exception as e:
            logger.error(f"Head monitor failed: {e}")
            await self._drain(sink)
            raise

        await self._drain(sink)

    async def _drain(self, sink: BlockSink) -> None:
        """Close the sink, aborting it if cancelled while pending blocks drain."""
        try:
            await sink.close()
        except asyncio.CancelledError:
            await sink.abort()
            raise


async def monitor(
    context: InspectionContext,
    sink: BlockSink,
    cancel: Optional[asyncio.Event] = None,
    config: Optional[MonitorConfig] = None,
) -> MonitorStats:
    """Run a HeadMonitor once and return its counters."""
    head_monitor = HeadMonitor(context, config)
    await head_monitor.run(sink, cancel)
    return head_monitor.stats
