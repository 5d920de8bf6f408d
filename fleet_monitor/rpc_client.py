"""
JSON-RPC client for validator nodes.

Each call is a single POST with a total timeout covering connect and
response. There are no retries: a failed attempt raises immediately and the
caller decides what that means for the node.
"""

import asyncio
import logging
from typing import Any, Optional

import aiohttp

from fleet_monitor.errors import DecodeError, TransportError

logger = logging.getLogger(__name__)


class RpcClient:
    """RPC client for one or more endpoints, sharing an optional session"""

    def __init__(self, session: Optional[aiohttp.ClientSession] = None):
        self.session = session
        self.request_id = 0

    def _next_id(self) -> int:
        self.request_id += 1
        return self.request_id

    async def _post(self, session: aiohttp.ClientSession, url: str, payload: dict, timeout: float) -> Any:
        async with session.post(
            url, json=payload, timeout=aiohttp.ClientTimeout(total=timeout)
        ) as response:
            response.raise_for_status()
            try:
                return await response.json(content_type=None)
            except ValueError as e:
                raise DecodeError(f"invalid JSON from {url}: {e}") from e

    async def call(self, url: str, method: str, params: Optional[list] = None, timeout: float = 10.0) -> Any:
        """
        Call `method` on `url` and return the JSON-RPC `result` member.

        Raises TransportError when the node can't be reached in time and
        DecodeError when it answers with something other than a result.
        """
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params or [],
            "id": self._next_id(),
        }

        try:
            if self.session is not None:
                body = await self._post(self.session, url, payload, timeout)
            else:
                async with aiohttp.ClientSession() as session:
                    body = await self._post(session, url, payload, timeout)
        except asyncio.TimeoutError as e:
            raise TransportError(f"{method} timed out after {timeout:g}s") from e
        except aiohttp.ClientResponseError as e:
            raise TransportError(f"{method} failed with HTTP {e.status}") from e
        except aiohttp.ClientError as e:
            raise TransportError(f"{method} failed: {e}") from e

        if not isinstance(body, dict):
            raise DecodeError(f"{method} returned a non-object response")
        if body.get("error") is not None:
            error = body["error"]
            message = error.get("message", error) if isinstance(error, dict) else error
            raise DecodeError(f"{method} returned error: {message}")
        if "result" not in body:
            raise DecodeError(f"{method} response has no result field")

        logger.debug(f"{method} @ {url} -> {body['result']!r}")
        return body["result"]
