"""
Tezos RPC Node Service - Octez node HTTP RPC integration.

Endpoints used:
- GET /chains/<chain>/blocks/<block_id>         full block
- GET /chains/<chain>/blocks/head/header        health probe
- GET /monitor/heads/<chain>                    chunked stream of new heads

The monitor endpoint keeps the HTTP response open and writes one JSON
object per new head. Public nodes close these streams after a while;
that shows up here as the iterator ending.
"""

import asyncio
import codecs
import json
import logging
import time
from datetime import datetime
from typing import Any, AsyncIterator, Optional

import aiohttp

from node_adapters.base import BaseNodeService
from node_adapters.exceptions import (
    BlockNotFoundError,
    TransportError,
)
from node_adapters.models import (
    AdapterHealth,
    AdapterStatus,
    Block,
    HeadNotification,
)


logger = logging.getLogger(__name__)


class TezosRPCService(BaseNodeService):
    """
    Node service speaking the Octez RPC protocol over HTTP.

    Usage:
        async with TezosRPCService("https://api.tez.ie/") as service:
            block = await service.get_block("main", "head")
            async for head in service.subscribe_heads("main"):
                ...
    """

    DEFAULT_URL = "https://api.tez.ie/"

    def __init__(
        self,
        base_url: str = DEFAULT_URL,
        timeout: float = BaseNodeService.DEFAULT_TIMEOUT,
        max_retries: int = BaseNodeService.MAX_RETRIES,
        cache_size: int = BaseNodeService.CACHE_SIZE,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        super().__init__(
            timeout=timeout,
            max_retries=max_retries,
            cache_size=cache_size,
            session=session,
        )
        self._base_url = base_url.rstrip("/")

    @property
    def name(self) -> str:
        return "tezos_rpc"

    @property
    def base_url(self) -> str:
        return self._base_url

    def _url(self, path: str) -> str:
        return f"{self._base_url}/{path.lstrip('/')}"

    async def fetch_block(self, chain_id: str, block_id: str) -> Block:
        """Fetch and parse one block."""
        url = self._url(f"chains/{chain_id}/blocks/{block_id}")
        try:
            data = await self._make_request("GET", url)
        except TransportError as e:
            if e.status_code == 404:
                raise BlockNotFoundError(
                    message=f"Block {block_id!r} not found",
                    block_id=block_id,
                    chain=chain_id,
                    original_error=e,
                )
            e.chain = chain_id
            raise

        return self._parse_block(data, chain_id, url)

    def _parse_block(self, data: Any, chain_id: str, url: str) -> Block:
        try:
            return Block.from_dict(data)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise TransportError(
                message=f"Malformed block payload: {e}",
                chain=chain_id,
                response_body=str(data)[:500],
                request_url=url,
                original_error=e,
            )

    async def subscribe_heads(self, chain_id: str) -> AsyncIterator[HeadNotification]:
        """
        Stream new heads until the node closes the connection.

        The stream has no overall deadline; only connect and per-read
        timeouts apply.
        """
        url = self._url(f"monitor/heads/{chain_id}")
        session = await self._get_session()
        timeout = aiohttp.ClientTimeout(
            total=None,
            connect=self._timeout,
            sock_read=None,
        )
        decoder = json.JSONDecoder()
        text_decoder = codecs.getincrementaldecoder("utf-8")()

        logger.debug(f"[{self.name}] Opening heads stream {url}")
        try:
            async with session.get(url, timeout=timeout) as response:
                if response.status >= 400:
                    body = await response.text()
                    raise TransportError(
                        message=f"HTTP {response.status}",
                        chain=chain_id,
                        status_code=response.status,
                        response_body=body[:500],
                        request_url=url,
                    )

                buffer = ""
                async for chunk in response.content.iter_any():
                    try:
                        buffer += text_decoder.decode(chunk)
                        objects, buffer = _split_json_objects(decoder, buffer)
                    except ValueError as e:
                        raise TransportError(
                            message=f"Malformed heads stream: {e}",
                            chain=chain_id,
                            response_body=buffer[:500],
                            request_url=url,
                            original_error=e,
                        )
                    for data in objects:
                        try:
                            yield HeadNotification.from_dict(data)
                        except (KeyError, TypeError, ValueError) as e:
                            raise TransportError(
                                message=f"Malformed head notification: {e}",
                                chain=chain_id,
                                response_body=str(data)[:500],
                                request_url=url,
                                original_error=e,
                            )

        except aiohttp.ClientPayloadError as e:
            # Server dropped a chunked response mid-stream: same as EOF
            logger.debug(f"[{self.name}] Heads stream truncated: {e}")
        except aiohttp.ClientError as e:
            raise TransportError(
                message=f"Connection error: {e}",
                chain=chain_id,
                request_url=url,
                original_error=e,
            )
        except asyncio.TimeoutError as e:
            raise TransportError(
                message="Timeout opening heads stream",
                chain=chain_id,
                request_url=url,
                original_error=e,
            )

        logger.debug(f"[{self.name}] Heads stream closed by node")

    async def health_check(self, chain_id: str = "main") -> AdapterHealth:
        """Probe the head header of the given chain."""
        start_time = time.time()
        try:
            await self._make_request("GET", self._url(f"chains/{chain_id}/blocks/head/header"))
            latency_ms = (time.time() - start_time) * 1000

            self._health.status = AdapterStatus.HEALTHY
            self._health.last_check = datetime.utcnow()
            self._health.latency_ms = latency_ms

            logger.debug(f"[{self.name}] Health check OK, latency={latency_ms:.1f}ms")

        except TransportError as e:
            latency_ms = (time.time() - start_time) * 1000

            self._health.status = AdapterStatus.UNAVAILABLE
            self._health.last_check = datetime.utcnow()
            self._health.latency_ms = latency_ms
            self._health.last_error = str(e)
            self._health.last_error_time = datetime.utcnow()

            logger.warning(f"[{self.name}] Health check FAILED: {e}")

        return self._health


def _split_json_objects(
    decoder: json.JSONDecoder,
    buffer: str,
) -> tuple[list[Any], str]:
    """
    Pull every complete JSON value off the front of `buffer`.

    Returns the decoded values and the unconsumed remainder, which holds
    a partial object still waiting for more bytes.

    Raises:
        json.JSONDecodeError: The remainder can never become valid JSON
    """
    objects = []
    pos = 0
    while True:
        while pos < len(buffer) and buffer[pos].isspace():
            pos += 1
        if pos >= len(buffer):
            return objects, ""
        try:
            value, end = decoder.raw_decode(buffer, pos)
        except json.JSONDecodeError as e:
            if not _is_incomplete(buffer, e):
                raise
            return objects, buffer[pos:]
        objects.append(value)
        pos = end


def _is_incomplete(buffer: str, error: json.JSONDecodeError) -> bool:
    """
    True when a decode error only means the value is cut short.

    A truncated value fails at the end of the buffer or in its last
    token (an open string, `tru`, a lone `-`). A failure followed by
    more whitespace-separated text is malformed.
    """
    if error.pos >= len(buffer):
        return True
    if error.msg.startswith("Unterminated string"):
        return True
    return not any(c.isspace() for c in buffer[error.pos:])
