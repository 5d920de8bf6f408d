"""
Fake validator nodes and faucet for the tests.

Each fake is a real aiohttp application served on 127.0.0.1, so the code
under test goes through actual HTTP, timeouts and connection errors.
Tests drive the async code with asyncio.run().
"""

import asyncio
import logging
import socket
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer


def make_node_app(
    health: Optional[Dict[str, Any]] = None,
    head: Optional[Dict[str, Any]] = None,
    delay: float = 0.0,
    status: int = 200,
    raw: Optional[str] = None,
    calls: Optional[list] = None,
) -> web.Application:
    """Fake validator answering system_health and chain_getHeader"""

    async def handle(request: web.Request) -> web.Response:
        payload = await request.json()
        if calls is not None:
            calls.append(payload)
        if delay:
            await asyncio.sleep(delay)
        if status != 200:
            return web.Response(status=status, text="upstream unavailable")
        if raw is not None:
            return web.Response(text=raw, content_type="application/json")

        results = {"system_health": health, "chain_getHeader": head}
        result = results.get(payload.get("method"))
        if result is None:
            return web.json_response(
                {
                    "jsonrpc": "2.0",
                    "id": payload.get("id"),
                    "error": {"code": -32601, "message": "Method not found"},
                }
            )
        return web.json_response({"jsonrpc": "2.0", "id": payload.get("id"), "result": result})

    app = web.Application()
    app.router.add_post("/", handle)
    return app


def make_faucet_app(
    body: Any = None,
    status: int = 200,
    text: Optional[str] = None,
    delay: float = 0.0,
    raw: Optional[bytes] = None,
) -> web.Application:
    """Fake faucet exposing GET /health"""

    async def handle(request: web.Request) -> web.Response:
        if delay:
            await asyncio.sleep(delay)
        if raw is not None:
            return web.Response(status=status, body=raw, content_type="text/plain", charset="utf-8")
        if text is not None:
            return web.Response(status=status, text=text)
        return web.json_response(body, status=status)

    app = web.Application()
    app.router.add_get("/health", handle)
    return app


@asynccontextmanager
async def serve(app: web.Application):
    """Serve `app` on a free local port and yield its base URL"""
    async with TestServer(app) as server:
        yield str(server.make_url("/"))


def healthy_node(peers: int = 5, syncing: bool = False, height: int = 100, **kwargs) -> web.Application:
    return make_node_app(
        health={"peers": peers, "isSyncing": syncing, "shouldHavePeers": True},
        head={"number": hex(height), "parentHash": "0x00"},
        **kwargs,
    )


@pytest.fixture
def node_app():
    return make_node_app


@pytest.fixture
def healthy_node_app():
    return healthy_node


@pytest.fixture
def faucet_app():
    return make_faucet_app


@pytest.fixture
def server():
    return serve


@pytest.fixture
def dead_url():
    """URL of a local port with nothing listening on it"""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return f"http://127.0.0.1:{port}/"


@pytest.fixture
def restore_logging():
    """Put the root logger back the way it was after the test"""
    root_logger = logging.getLogger()
    handlers = root_logger.handlers[:]
    level = root_logger.level
    yield
    for handler in root_logger.handlers[:]:
        if handler not in handlers:
            root_logger.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root_logger.handlers:
            root_logger.addHandler(handler)
    root_logger.setLevel(level)
