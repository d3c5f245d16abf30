"""Relay HTTP server.

Exposes /api/chat and /api/ai-faq, which accept relay requests from a
frontend and forward them to an OpenAI-compatible upstream with the
server-held API key.

Each request passes through three middlewares (outermost first):
1. Tracing: assigns a trace ID and logs the outcome
2. CORS: answers preflights, rejects disallowed origins, adds CORS headers
3. Errors: converts every exception into a JSON response

Protected handlers then run AuthGate -> shaping -> UpstreamClient -> translate.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from aiohttp import web

from llmrelay import translate
from llmrelay.auth import RELAY_KEY_HEADER, AuthGate
from llmrelay.clients.upstream_client import UpstreamClient
from llmrelay.config import RelayConfig
from llmrelay.cors import OriginGuard
from llmrelay.errors import InvalidRequest, OriginRejected, RelayError
from llmrelay.shaping import ChatRequest, FaqRequest
from llmrelay.tracing import TRACE_HEADER, RequestTracer

logger = logging.getLogger(__name__)

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]

TRACE_ID_KEY = web.RequestKey("trace_id", str)

CHAT_USAGE = {
    "error": "Method Not Allowed",
    "note": "Use POST with JSON and X-Relay-Key",
    "example": {
        "url": "/api/chat",
        "method": "POST",
        "headers": {
            "content-type": "application/json",
            "X-Relay-Key": "<your-relay-key>",
        },
        "body": {
            "model": "gpt-4o-mini",
            "messages": [
                {"role": "system", "content": "You are a helpful assistant."},
                {"role": "user", "content": "phishing là gì?"},
            ],
            "temperature": 0.2,
        },
    },
}


@dataclass
class RelayServer:
    """Authenticated relay in front of a chat completion API.

    Example:
        >>> config = RelayConfig.from_env()
        >>> server = RelayServer(config=config)
        >>> await server.serve()
    """

    config: RelayConfig
    _app: web.Application | None = None
    _runner: web.AppRunner | None = None
    _client: UpstreamClient = field(init=False)
    _guard: OriginGuard = field(init=False)
    _gate: AuthGate = field(init=False)
    _tracer: RequestTracer = field(init=False)
    _started_at: float = field(init=False)
    _shutdown_event: asyncio.Event = field(default_factory=asyncio.Event)

    def __post_init__(self) -> None:
        self._client = UpstreamClient(config=self.config)
        self._guard = OriginGuard(self.config)
        self._gate = AuthGate(self.config)
        self._tracer = RequestTracer()
        self._started_at = time.monotonic()

    @property
    def client(self) -> UpstreamClient:
        return self._client

    def build_app(self) -> web.Application:
        """Create the aiohttp application with routes and middlewares.

        The upstream session is opened on app startup and closed on cleanup.
        """
        app = web.Application(
            client_max_size=self.config.max_body_size,
            middlewares=[
                self._tracing_middleware,
                self._cors_middleware,
                self._error_middleware,
            ],
        )
        app.router.add_get("/", self._handle_root)
        app.router.add_get("/health", self._handle_health)
        app.router.add_get("/api/chat", self._handle_chat_usage)
        app.router.add_post("/api/chat", self._handle_chat)
        app.router.add_post("/api/ai-faq", self._handle_faq)
        app.on_startup.append(self._on_startup)
        app.on_cleanup.append(self._on_cleanup)
        return app

    async def serve(self) -> None:
        """Start the relay and block until shutdown() is called."""
        self._app = self.build_app()
        self._runner = web.AppRunner(self._app, access_log=None)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.config.host, self.config.port)
        await site.start()

        logger.info("Relay listening on http://%s:%d", self.config.host, self.config.port)
        logger.info("Forwarding to: %s", self.config.completions_url)
        logger.info("Config: %s", self.config.describe())
        for name in self.config.missing_secrets():
            logger.warning("%s is not set; protected routes will answer 500", name)

        await self._shutdown_event.wait()

    def request_shutdown(self) -> None:
        """Make serve() return; call shutdown() afterwards to release resources."""
        self._shutdown_event.set()

    async def shutdown(self) -> None:
        """Shutdown the server gracefully."""
        logger.info("Shutting down relay...")
        self._shutdown_event.set()
        if self._runner:
            await self._runner.cleanup()
            self._runner = None

    async def _on_startup(self, app: web.Application) -> None:
        self._started_at = time.monotonic()
        await self._client.connect()

    async def _on_cleanup(self, app: web.Application) -> None:
        await self._client.close()

    # ------------------------------------------------------------------
    # Middlewares
    # ------------------------------------------------------------------

    @web.middleware
    async def _tracing_middleware(
        self, request: web.Request, handler: Handler
    ) -> web.StreamResponse:
        trace_id = self._tracer.generate_trace_id()
        request[TRACE_ID_KEY] = trace_id
        self._tracer.log_request(
            trace_id, request.method, request.path, request.headers.get("Origin")
        )

        start_time = time.monotonic()
        response = await handler(request)
        response.headers[TRACE_HEADER] = trace_id
        self._tracer.log_response(
            trace_id,
            request.method,
            request.path,
            response.status,
            time.monotonic() - start_time,
        )
        return response

    @web.middleware
    async def _cors_middleware(
        self, request: web.Request, handler: Handler
    ) -> web.StreamResponse:
        origin = request.headers.get("Origin")
        preflight = request.method == "OPTIONS"
        decision = self._guard.check(origin, preflight=preflight)

        if preflight:
            # Bodyless by contract; never reaches auth or upstream
            return web.Response(status=204 if decision.allowed else 403, headers=decision.headers)

        if not decision.allowed:
            logger.warning(
                "[%s] Rejected origin %s", request.get(TRACE_ID_KEY, "-"), origin or "<none>"
            )
            return translate.from_error(
                OriginRejected("CORS origin not allowed"), headers=decision.headers
            )

        response = await handler(request)
        response.headers.update(decision.headers)
        return response

    @web.middleware
    async def _error_middleware(
        self, request: web.Request, handler: Handler
    ) -> web.StreamResponse:
        trace_id = request.get(TRACE_ID_KEY, "-")
        try:
            return await handler(request)
        except RelayError as e:
            logger.info("[%s] %s: %s", trace_id, type(e).__name__, e.message)
            return translate.from_error(e)
        except web.HTTPException as e:
            if e.status < 400:
                raise
            headers = {"Allow": e.headers["Allow"]} if "Allow" in e.headers else None
            return translate.error_response(e.reason, e.status, headers=headers)
        except Exception:
            logger.exception(
                "[%s] Unhandled error on %s %s", trace_id, request.method, request.path
            )
            return translate.error_response(translate.GENERIC_ERROR, 500)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    async def _handle_root(self, request: web.Request) -> web.Response:
        """Handle GET / - liveness string."""
        return web.Response(text="llmrelay is running", content_type="text/plain")

    async def _handle_health(self, request: web.Request) -> web.Response:
        """Handle GET /health - health check endpoint."""
        uptime = round(time.monotonic() - self._started_at, 3)
        return web.json_response({"ok": True, "uptime": uptime})

    async def _handle_chat_usage(self, request: web.Request) -> web.Response:
        """Handle GET /api/chat - explain how to call the endpoint."""
        return web.json_response(CHAT_USAGE, status=405, headers={"Allow": "POST, OPTIONS"})

    async def _handle_chat(self, request: web.Request) -> web.Response:
        """Handle POST /api/chat - forward a chat completion request."""
        self._gate.authorize(request.headers.get(RELAY_KEY_HEADER))

        body = await self._read_json(request)
        chat_request = ChatRequest.from_body(body if body is not None else {})
        return await self._forward(request, chat_request.to_payload(self.config))

    async def _handle_faq(self, request: web.Request) -> web.Response:
        """Handle POST /api/ai-faq - answer a single anti-scam question."""
        self._gate.authorize(request.headers.get(RELAY_KEY_HEADER))

        body = await self._read_json(request)
        faq_request = FaqRequest.from_body(body)
        return await self._forward(request, faq_request.to_payload(self.config))

    async def _forward(self, request: web.Request, payload: dict[str, Any]) -> web.Response:
        trace_id = request[TRACE_ID_KEY]
        logger.info(
            "[%s] Forwarding: model=%s, messages=%d",
            trace_id,
            payload["model"],
            len(payload["messages"]),
        )
        upstream_response = await self._client.send(payload, trace_id=trace_id)
        return translate.from_upstream(upstream_response)

    async def _read_json(self, request: web.Request) -> Any:
        """Decode the request body, returning None when it is empty.

        Raises:
            InvalidRequest: If the body is not valid JSON.
            web.HTTPRequestEntityTooLarge: If the body exceeds max_body_size.
        """
        raw = await request.read()
        if not raw.strip():
            return None
        try:
            return json.loads(raw)
        except ValueError as e:
            raise InvalidRequest("Request body must be valid JSON") from e
