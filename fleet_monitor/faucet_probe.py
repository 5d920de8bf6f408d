"""
Health probe for the faucet (token distribution) service.

The faucet answers GET /health with a JSON object carrying a boolean
`healthy` field, plus `validators_online` and `block_height`. It uses HTTP
503 for the unhealthy case, so any JSON body counts as reachable whatever
the status code.
"""

import asyncio
import json
import logging
from typing import Optional

import aiohttp

from fleet_monitor.models import AuxiliaryHealth

logger = logging.getLogger(__name__)


def health_url(base_url: str) -> str:
    base = base_url.rstrip("/")
    if base.endswith("/health"):
        return base
    return f"{base}/health"


def _optional_int(value) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


async def probe(url: str, timeout: float = 10.0, session: Optional[aiohttp.ClientSession] = None) -> AuxiliaryHealth:
    """Probe the faucet at `url` (base URL or full /health URL)."""
    target = health_url(url)

    async def fetch(s: aiohttp.ClientSession):
        async with s.get(target, timeout=aiohttp.ClientTimeout(total=timeout)) as response:
            return response.status, await response.read()

    try:
        if session is not None:
            status, raw = await fetch(session)
        else:
            async with aiohttp.ClientSession() as s:
                status, raw = await fetch(s)
    except asyncio.TimeoutError:
        logger.warning(f"Faucet {target} timed out after {timeout:g}s")
        return AuxiliaryHealth(reachable=False, error=f"timed out after {timeout:g}s")
    except aiohttp.ClientError as e:
        logger.warning(f"Faucet {target} not responding: {e}")
        return AuxiliaryHealth(reachable=False, error=str(e))

    try:
        body = json.loads(raw) if raw else None
    except ValueError:
        # malformed JSON or bytes that are not valid UTF-8
        body = None

    if not isinstance(body, dict):
        # answered, but not with a health object: fail closed
        logger.warning(f"Faucet {target} returned HTTP {status} without a JSON health object")
        return AuxiliaryHealth(reachable=True, healthy=False, error=f"HTTP {status}, no health object")

    healthy = body.get("healthy") is True
    logger.info(f"Faucet {target}: HTTP {status}, healthy={healthy}")
    return AuxiliaryHealth(
        reachable=True,
        healthy=healthy,
        validators_online=_optional_int(body.get("validators_online")),
        block_height=_optional_int(body.get("block_height")),
    )
