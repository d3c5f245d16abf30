"""Pytest configuration and fixtures."""

from collections.abc import AsyncIterator, Awaitable, Callable

import pytest
from aiohttp import web

from llmrelay.config import RelayConfig
from llmrelay.server import RelayServer

UPSTREAM_BASE_URL = "https://api.test.openai.com/v1"
UPSTREAM_URL = f"{UPSTREAM_BASE_URL}/chat/completions"
RELAY_KEY = "relay-secret-123"
UPSTREAM_KEY = "sk-test-upstream-key-456"

StartRelay = Callable[[RelayConfig], Awaitable[tuple[RelayServer, str]]]


def make_config(**overrides) -> RelayConfig:
    """Relay config with test secrets; overrides replace any field."""
    values = {
        "upstream_api_key": UPSTREAM_KEY,
        "relay_key": RELAY_KEY,
        "upstream_base_url": UPSTREAM_BASE_URL,
        "timeout_ms": 2000,
    }
    values.update(overrides)
    return RelayConfig(**values)


@pytest.fixture
def relay_config() -> RelayConfig:
    return make_config()


@pytest.fixture
async def start_relay() -> AsyncIterator[StartRelay]:
    """Start relay servers on free ports; all are cleaned up after the test.

    Returns (server, base_url).
    """
    runners: list[web.AppRunner] = []

    async def _start(config: RelayConfig) -> tuple[RelayServer, str]:
        server = RelayServer(config=config)
        runner = web.AppRunner(server.build_app())
        await runner.setup()
        site = web.TCPSite(runner, "127.0.0.1", 0)
        await site.start()
        runners.append(runner)

        # Get the actual port
        actual_port = site._server.sockets[0].getsockname()[1]
        return server, f"http://127.0.0.1:{actual_port}"

    yield _start

    for runner in runners:
        await runner.cleanup()


@pytest.fixture
async def running_relay(start_relay, relay_config) -> tuple[RelayServer, str]:
    """A relay with the default test config (wildcard origins)."""
    return await start_relay(relay_config)
