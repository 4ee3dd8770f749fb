"""
Shopping assistant gateway proxy.

The gateway is replaced with httpx.MockTransport; no network access.
"""

import json

import httpx
import pytest

from retaildesk.services import assistant_service
from retaildesk.services.assistant_service import (
    AssistantError,
    AssistantRateLimited,
    AssistantUnavailable,
)


SSE_BODY = (
    b'data: {"choices":[{"delta":{"content":"Try the "}}]}\n\n'
    b'data: {"choices":[{"delta":{"content":"claw hammer."}}]}\n\n'
    b"data: [DONE]\n\n"
)


def _recording_transport(response_factory):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return response_factory(request)

    return httpx.MockTransport(handler), seen


# =============================================================================
# PROMPTS
# =============================================================================

class TestPrompts:

    def test_catalog_context_lists_items(self, hammer):
        text = assistant_service.catalog_context([hammer])
        assert text == "- Claw Hammer 16oz (Hand Tools): No description - $10.00"

    def test_empty_catalog(self):
        assert assistant_service.catalog_context([]) == "No inventory available"

    def test_search_prompt_asks_for_json(self, hammer):
        prompt = assistant_service.build_system_prompt("search", [hammer])
        assert "possibleTools" in prompt
        assert "Claw Hammer 16oz" in prompt

    def test_unknown_mode(self):
        with pytest.raises(ValueError):
            assistant_service.build_system_prompt("poetry", [])


# =============================================================================
# SEARCH (JSON)
# =============================================================================

class TestAsk:

    def test_forwards_request_and_returns_body(self, app, hammer):
        body = {"choices": [{"message": {"content": '{"possibleTools": ["Claw Hammer 16oz"]}'}}]}
        transport, seen = _recording_transport(lambda request: httpx.Response(200, json=body))

        result = assistant_service.ask("thing for pulling nails", [hammer], transport=transport)

        assert result == body
        request = seen[0]
        assert str(request.url) == "https://gateway.test/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer test-key"
        sent = json.loads(request.content)
        assert sent["stream"] is False
        assert sent["messages"][0]["role"] == "system"
        assert "Claw Hammer 16oz" in sent["messages"][0]["content"]
        assert sent["messages"][1] == {"role": "user", "content": "thing for pulling nails"}

    @pytest.mark.parametrize(
        "status,error",
        [
            (429, AssistantRateLimited),
            (402, AssistantUnavailable),
            (500, AssistantError),
        ],
    )
    def test_gateway_errors(self, app, status, error):
        transport, _ = _recording_transport(lambda request: httpx.Response(status, json={}))
        with pytest.raises(error) as exc:
            assistant_service.ask("hello", [], transport=transport)
        assert exc.type is error

    def test_unreachable_gateway(self, app):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(AssistantError, match="unreachable"):
            assistant_service.ask("hello", [], transport=httpx.MockTransport(handler))

    def test_blank_message(self, app):
        transport, seen = _recording_transport(lambda request: httpx.Response(200, json={}))
        with pytest.raises(ValueError):
            assistant_service.ask("   ", [], transport=transport)
        assert seen == []

    def test_message_too_long(self, app):
        transport, seen = _recording_transport(lambda request: httpx.Response(200, json={}))
        with pytest.raises(ValueError):
            assistant_service.ask("x" * (assistant_service.MAX_MESSAGE_LENGTH + 1), [], transport=transport)
        assert seen == []

    def test_missing_api_key(self, app):
        app.config["ASSISTANT_API_KEY"] = None
        try:
            with pytest.raises(AssistantError, match="not configured"):
                assistant_service.ask("hello", [])
        finally:
            app.config["ASSISTANT_API_KEY"] = "test-key"


# =============================================================================
# CHAT (STREAM)
# =============================================================================

class TestStreamChat:

    def test_relays_stream_unchanged(self, app, hammer):
        transport, seen = _recording_transport(
            lambda request: httpx.Response(200, content=SSE_BODY, headers={"content-type": "text/event-stream"})
        )

        chunks = assistant_service.stream_chat("what do I need to hang a shelf?", [hammer], transport=transport)

        assert b"".join(chunks) == SSE_BODY
        assert json.loads(seen[0].content)["stream"] is True

    def test_status_checked_before_streaming(self, app):
        transport, _ = _recording_transport(lambda request: httpx.Response(429, json={"error": "slow down"}))
        with pytest.raises(AssistantRateLimited):
            assistant_service.stream_chat("hello", [], transport=transport)


# =============================================================================
# ROUTES
# =============================================================================

class TestRoutes:

    def test_chat_requires_message(self, client):
        resp = client.post("/api/assistant/chat", json={})
        assert resp.status_code == 400

    def test_search_requires_message(self, client):
        resp = client.post("/api/assistant/search", json={"message": ""})
        assert resp.status_code == 400

    def test_unconfigured_assistant_is_bad_gateway(self, app, client):
        app.config["ASSISTANT_API_KEY"] = ""
        try:
            resp = client.post("/api/assistant/search", json={"message": "hello"})
        finally:
            app.config["ASSISTANT_API_KEY"] = "test-key"
        assert resp.status_code == 502
