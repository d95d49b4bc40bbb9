"""
Head Monitor - Block Sinks.

============================================================
RESPONSIBILITY
============================================================
Consumers of resolved blocks. A pipeline run uses exactly one
sink, chosen before the run starts.

- EncoderSink:  structured encoder invoked per block
- CallbackSink: caller-supplied render function per block
- QueueSink:    bounded queue feeding a background task

============================================================
LIFECYCLE
============================================================
1. start()  before the first block
2. send()   once per block, in level order
3. close()  on normal completion: drain, then wait for the
            consumer to finish
   abort()  on cancellation: queued blocks are dropped

============================================================
"""

import asyncio
import inspect
import logging
from abc import ABC, abstractmethod
from contextlib import suppress
from typing import Any, Callable, Optional

from block_inspection import ResolvedBlock


logger = logging.getLogger(__name__)


BlockCallback = Callable[[ResolvedBlock], Any]


async def _call(callback: BlockCallback, block: ResolvedBlock) -> None:
    """Invoke a plain or async callback."""
    result = callback(block)
    if inspect.isawaitable(result):
        await result


class BlockSink(ABC):
    """Base class for pipeline consumers."""

    async def start(self) -> None:
        """Prepare the sink before the first block."""

    @abstractmethod
    async def send(self, block: ResolvedBlock) -> None:
        """Deliver one block."""

    async def close(self) -> None:
        """Finish normally after the last block."""

    async def abort(self) -> None:
        """Stop without delivering pending blocks."""


class EncoderSink(BlockSink):
    """
    Writes each block through a structured encoder.

    `payload` selects what gets encoded; by default the raw RPC block.
    """

    def __init__(
        self,
        encoder: Any,
        payload: Optional[Callable[[ResolvedBlock], Any]] = None,
    ) -> None:
        self._encoder = encoder
        self._payload = payload or (lambda resolved: resolved.block.raw)

    async def send(self, block: ResolvedBlock) -> None:
        self._encoder.encode(self._payload(block))


class CallbackSink(BlockSink):
    """Calls a render function for each block, in the reader task."""

    def __init__(self, render: BlockCallback) -> None:
        self._render = render

    async def send(self, block: ResolvedBlock) -> None:
        await _call(self._render, block)


class QueueSink(BlockSink):
    """
    Hands blocks to a background task through a bounded queue.

    The reader suspends when the queue is full, so it never runs ahead of
    the consumer by more than `maxsize` blocks. The consumer sees blocks
    in the order they were sent. A consumer failure is raised from the
    next send() or from close().
    """

    DEFAULT_MAXSIZE = 100

    _CLOSED = object()

    def __init__(self, consumer: BlockCallback, maxsize: int = DEFAULT_MAXSIZE) -> None:
        if maxsize < 1:
            raise ValueError("maxsize must be at least 1")
        self._consumer = consumer
        self._maxsize = maxsize
        self._queue: Optional[asyncio.Queue] = None
        self._task: Optional[asyncio.Task] = None
        self._done: Optional[asyncio.Event] = None
        self.consumed = 0

    @property
    def maxsize(self) -> int:
        return self._maxsize

    @property
    def done(self) -> bool:
        """True once the consumer task has finished."""
        return self._done is not None and self._done.is_set()

    async def start(self) -> None:
        self._queue = asyncio.Queue(maxsize=self._maxsize)
        self._done = asyncio.Event()
        self._task = asyncio.ensure_future(self._consume())

    async def _consume(self) -> None:
        try:
            while True:
                item = await self._queue.get()
                if item is self._CLOSED:
                    break
                await _call(self._consumer, item)
                self.consumed += 1
        finally:
            self._done.set()

    async def _put(self, item: Any) -> None:
        if self._task is None:
            raise RuntimeError("QueueSink used before start()")
        if self._task.done():
            self._raise_consumer_failure()

        put = asyncio.ensure_future(self._queue.put(item))
        try:
            await asyncio.wait({put, self._task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            if not put.done():
                put.cancel()

        if not put.done() or put.cancelled():
            self._raise_consumer_failure()

    def _raise_consumer_failure(self) -> None:
        # result() re-raises the consumer's exception, if any
        self._task.result()
        raise RuntimeError("Queue consumer stopped before the queue was closed")

    async def send(self, block: ResolvedBlock) -> None:
        await self._put(block)

    async def close(self) -> None:
        """Close the queue and wait for the consumer to drain it."""
        if self._task is None:
            return
        if not self._task.done():
            await self._put(self._CLOSED)
            await self._done.wait()
        self._task.result()
        logger.debug(f"Queue consumer finished after {self.consumed} blocks")

    async def abort(self) -> None:
        """Cancel the consumer; whatever is still queued is dropped."""
        if self._task is None or self._task.done():
            return
        self._task.cancel()
        with suppress(asyncio.CancelledError):
            await self._task
        # A task cancelled before its first step never reaches its finally
        self._done.set()
        logger.debug(f"Queue consumer aborted with {self._queue.qsize()} blocks pending")
