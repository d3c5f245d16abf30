"""Tests for UpstreamClient."""

import asyncio

import aiohttp
import pytest
from aioresponses import aioresponses
from conftest import UPSTREAM_KEY, UPSTREAM_URL, make_config
from yarl import URL

from llmrelay.clients.upstream_client import UpstreamClient, UpstreamResponse
from llmrelay.errors import UpstreamTimeout, UpstreamUnreachable

PAYLOAD = {"model": "gpt-4o-mini", "messages": [{"role": "user", "content": "hi"}]}


@pytest.fixture
async def client():
    client = UpstreamClient(config=make_config(timeout_ms=100))
    await client.connect()
    yield client
    await client.close()


class TestUpstreamResponse:
    @pytest.mark.parametrize(("status", "ok"), [(200, True), (201, True), (429, False), (500, False)])
    def test_ok(self, status, ok):
        assert UpstreamResponse(status=status, text="").ok is ok


class TestUpstreamClientSend:
    """Tests for UpstreamClient.send()."""

    async def test_success_returns_status_and_body(self, client):
        with aioresponses() as m:
            m.post(UPSTREAM_URL, status=200, body='{"id": "chatcmpl-1"}')

            response = await client.send(PAYLOAD)

        assert response.status == 200
        assert response.text == '{"id": "chatcmpl-1"}'

    async def test_posts_payload_as_json(self, client):
        with aioresponses() as m:
            m.post(UPSTREAM_URL, payload={})

            await client.send(PAYLOAD)

            calls = m.requests[("POST", URL(UPSTREAM_URL))]
            assert len(calls) == 1
            assert calls[0].kwargs["json"] == PAYLOAD

    async def test_session_carries_bearer_credential(self, client):
        assert client._session.headers["Authorization"] == f"Bearer {UPSTREAM_KEY}"
        assert client._session.headers["Content-Type"] == "application/json"

    @pytest.mark.parametrize("status", [400, 401, 429, 500, 503])
    async def test_error_status_returned_not_raised(self, client, status):
        with aioresponses() as m:
            m.post(UPSTREAM_URL, status=status, body='{"error": "nope"}')

            response = await client.send(PAYLOAD)

        assert response.status == status
        assert response.text == '{"error": "nope"}'

    async def test_single_attempt_only(self, client):
        with aioresponses() as m:
            m.post(UPSTREAM_URL, status=503, body="busy")
            m.post(UPSTREAM_URL, status=200, body="{}")

            response = await client.send(PAYLOAD)

            assert response.status == 503
            assert len(m.requests[("POST", URL(UPSTREAM_URL))]) == 1

    async def test_connection_error_raises_unreachable(self, client):
        with aioresponses() as m:
            m.post(UPSTREAM_URL, exception=aiohttp.ClientConnectionError("refused"))

            with pytest.raises(UpstreamUnreachable) as exc_info:
                await client.send(PAYLOAD)

        assert exc_info.value.status == 502
        assert client.in_flight == 0

    async def test_os_error_raises_unreachable(self, client):
        with aioresponses() as m:
            m.post(UPSTREAM_URL, exception=ConnectionRefusedError())

            with pytest.raises(UpstreamUnreachable):
                await client.send(PAYLOAD)

    async def test_timeout_cancels_inflight_call(self, client):
        started = asyncio.Event()
        cancelled = asyncio.Event()

        async def slow_upstream(url, **kwargs):
            started.set()
            try:
                await asyncio.sleep(30)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        with aioresponses() as m:
            m.post(UPSTREAM_URL, callback=slow_upstream)

            with pytest.raises(UpstreamTimeout) as exc_info:
                await client.send(PAYLOAD)

        assert started.is_set()
        assert cancelled.is_set()
        assert client.in_flight == 0
        assert exc_info.value.status == 500
        assert "100ms" in exc_info.value.message

    async def test_error_messages_never_contain_credential(self, client):
        with aioresponses() as m:
            m.post(UPSTREAM_URL, exception=aiohttp.ClientConnectionError(f"boom {UPSTREAM_KEY}"))

            with pytest.raises(UpstreamUnreachable) as exc_info:
                await client.send(PAYLOAD)

        assert UPSTREAM_KEY not in exc_info.value.message

    async def test_send_requires_connect(self):
        client = UpstreamClient(config=make_config())

        with pytest.raises(RuntimeError, match="connect"):
            await client.send(PAYLOAD)
