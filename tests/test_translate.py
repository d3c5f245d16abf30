"""Tests for response translation."""

import json

import pytest

from llmrelay import translate
from llmrelay.clients.upstream_client import UpstreamResponse
from llmrelay.errors import (
    AuthenticationError,
    ConfigurationError,
    UpstreamTimeout,
    UpstreamUnreachable,
)


def body_of(response) -> dict:
    return json.loads(response.text)


class TestParseUpstreamBody:
    def test_json_object_returned_as_is(self):
        assert translate.parse_upstream_body('{"id": "x", "choices": []}') == {
            "id": "x",
            "choices": [],
        }

    @pytest.mark.parametrize(
        "text",
        ["<html>Bad Gateway</html>", "", "upstream overloaded", '{"truncated": '],
    )
    def test_non_json_wrapped_under_raw(self, text):
        assert translate.parse_upstream_body(text) == {"raw": text}

    @pytest.mark.parametrize("text", ["[1, 2]", '"hello"', "42", "null"])
    def test_non_object_json_wrapped_under_raw(self, text):
        assert translate.parse_upstream_body(text) == {"raw": text}


class TestFromUpstream:
    @pytest.mark.parametrize("status", [200, 400, 401, 404, 429, 500, 503])
    def test_status_passed_through_verbatim(self, status):
        response = translate.from_upstream(UpstreamResponse(status=status, text='{"a": 1}'))

        assert response.status == status
        assert body_of(response) == {"a": 1}
        assert response.content_type == "application/json"

    def test_rate_limit_body_passed_through(self):
        response = translate.from_upstream(
            UpstreamResponse(status=429, text='{"error":"rate_limited"}')
        )

        assert response.status == 429
        assert body_of(response) == {"error": "rate_limited"}

    def test_non_json_error_keeps_raw_text(self):
        response = translate.from_upstream(UpstreamResponse(status=502, text="Bad Gateway"))

        assert response.status == 502
        assert body_of(response) == {"raw": "Bad Gateway"}


class TestFromError:
    @pytest.mark.parametrize(
        ("error", "status"),
        [
            (ConfigurationError("Missing RELAY_KEY (server config)"), 500),
            (AuthenticationError("Unauthorized"), 401),
            (UpstreamTimeout("Upstream request timed out after 25000ms"), 500),
            (UpstreamUnreachable("Upstream request failed: ClientConnectorError"), 502),
        ],
    )
    def test_structured_error_body(self, error, status):
        response = translate.from_error(error)

        assert response.status == status
        assert body_of(response) == {"error": error.message}

    def test_status_override(self):
        assert translate.from_error(UpstreamTimeout("slow", status=502)).status == 502


def test_error_response_extra_headers():
    response = translate.error_response("nope", 404, headers={"Vary": "Origin"})

    assert response.status == 404
    assert response.headers["Vary"] == "Origin"
    assert body_of(response) == {"error": "nope"}
