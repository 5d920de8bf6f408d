import asyncio
import logging
import re
from typing import Any, Optional, Tuple

from fleet_monitor.config import DEFAULT_HEAD_METHOD, DEFAULT_HEALTH_METHOD
from fleet_monitor.errors import DecodeError, PollError
from fleet_monitor.models import HealthSnapshot, ValidatorEndpoint
from fleet_monitor.rpc_client import RpcClient

logger = logging.getLogger(__name__)

HEX_NUMBER = re.compile(r"^0x[0-9a-fA-F]+$")


def decode_hex_height(value: Any) -> int:
    """Decode a 0x-prefixed hex block number"""
    if not isinstance(value, str) or not HEX_NUMBER.match(value):
        raise DecodeError(f"malformed block number: {value!r}")
    return int(value, 16)


def parse_health(result: Any) -> Tuple[Optional[int], Optional[bool]]:
    """
    Pull (peers, isSyncing) out of a health result.

    Either field may be absent; a present field with the wrong type is a
    decode error.
    """
    if not isinstance(result, dict):
        raise DecodeError("health result is not an object")

    peers = result.get("peers")
    if peers is not None and (isinstance(peers, bool) or not isinstance(peers, int) or peers < 0):
        raise DecodeError(f"invalid peers value: {peers!r}")

    syncing = result.get("isSyncing")
    if syncing is not None and not isinstance(syncing, bool):
        raise DecodeError(f"invalid isSyncing value: {syncing!r}")

    return peers, syncing


def parse_head(result: Any) -> int:
    if not isinstance(result, dict) or "number" not in result:
        raise DecodeError("head result has no number field")
    return decode_hex_height(result["number"])


class NodePoller:
    """Polls a validator for its health and chain head"""

    def __init__(
        self,
        client: Optional[RpcClient] = None,
        health_method: str = DEFAULT_HEALTH_METHOD,
        head_method: str = DEFAULT_HEAD_METHOD,
    ):
        self.client = client or RpcClient()
        self.health_method = health_method
        self.head_method = head_method

    async def poll(self, endpoint: ValidatorEndpoint, timeout: float) -> HealthSnapshot:
        """
        Issue the health and head queries concurrently and build a snapshot.

        If either query fails, the whole node is reported unreachable.
        """
        health, head = await asyncio.gather(
            self.client.call(endpoint.rpc_url, self.health_method, [], timeout),
            self.client.call(endpoint.rpc_url, self.head_method, [], timeout),
            return_exceptions=True,
        )
        try:
            for outcome in (health, head):
                if isinstance(outcome, BaseException):
                    raise outcome
            peers, syncing = parse_health(health)
            height = parse_head(head)
        except PollError as e:
            logger.warning(f"{endpoint.name} ({endpoint.rpc_url}) unreachable: {e}")
            return HealthSnapshot.unreachable(endpoint, str(e))

        logger.info(f"{endpoint.name}: block={height}, peers={peers}, syncing={syncing}")
        return HealthSnapshot(
            endpoint=endpoint,
            reachable=True,
            peer_count=peers,
            is_syncing=syncing,
            block_height=height,
        )
