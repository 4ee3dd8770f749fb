# Overview: Shopping assistant proxy; forwards storefront questions to an OpenAI-compatible chat gateway.

"""
Shopping Assistant

Two modes, both grounded in a snapshot of the active catalog:
- chat:   free-form advice; the gateway's server-sent event stream is passed
          through to the client unchanged.
- search: identify a tool from a description; the gateway's JSON
          completion body is returned as-is.

The API key never leaves the server. Gateway failures are mapped to
AssistantRateLimited (429), AssistantUnavailable (402) and AssistantError
(anything else, including transport failures).
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

import httpx
from flask import current_app

from ..models import CatalogItem


MODE_CHAT = "chat"
MODE_SEARCH = "search"
MODES = (MODE_CHAT, MODE_SEARCH)

MAX_MESSAGE_LENGTH = 2000

STORE_NAME = "Navira Hardware"


class AssistantError(Exception):
    """Raised when the assistant gateway cannot answer."""
    status_code = 502


class AssistantRateLimited(AssistantError):
    status_code = 429


class AssistantUnavailable(AssistantError):
    status_code = 503


def _format_price(cents: int) -> str:
    return f"${cents // 100}.{cents % 100:02d}"


def catalog_context(items: Iterable[CatalogItem]) -> str:
    lines = [
        f"- {item.item_name} ({item.category}): {item.description or 'No description'} - {_format_price(item.unit_price_cents)}"
        for item in items
    ]
    return "\n".join(lines) or "No inventory available"


def build_system_prompt(mode: str, items: Iterable[CatalogItem]) -> str:
    """Render the system prompt for `mode` with the catalog snapshot inlined."""
    inventory = catalog_context(items)

    if mode == MODE_CHAT:
        return (
            f"You are a helpful hardware store assistant for {STORE_NAME}. "
            "Your job is to help customers find the right tools and equipment for their projects.\n\n"
            f"Available inventory:\n{inventory}\n\n"
            "Guidelines:\n"
            "- Be friendly, helpful, and knowledgeable about hardware and tools\n"
            "- When customers describe a job or project, recommend specific tools from the inventory\n"
            "- If a customer describes a tool they don't know the name of, help identify it\n"
            "- Explain why you're recommending certain tools\n"
            "- If a tool isn't in inventory, let them know and suggest alternatives if possible\n"
            "- Keep responses concise but informative"
        )

    if mode == MODE_SEARCH:
        return (
            "You are a hardware tool identifier. Based on the user's description, "
            "identify what tool they might be looking for.\n\n"
            f"Available inventory:\n{inventory}\n\n"
            "Return a JSON response with:\n"
            "{\n"
            '  "possibleTools": ["tool1", "tool2"],\n'
            '  "confidence": "high/medium/low",\n'
            '  "explanation": "brief explanation of why these tools match"\n'
            "}\n\n"
            "Only suggest tools that are in the inventory."
        )

    raise ValueError(f"Unknown assistant mode: {mode}")


def _settings() -> dict:
    config = current_app.config
    api_key = config.get("ASSISTANT_API_KEY")
    if not api_key:
        raise AssistantError("Assistant is not configured")
    return {
        "url": config.get("ASSISTANT_GATEWAY_URL"),
        "api_key": api_key,
        "model": config.get("ASSISTANT_MODEL"),
        "timeout": config.get("ASSISTANT_TIMEOUT_SECONDS", 30),
    }


def _make_client(timeout: float, transport: httpx.BaseTransport | None = None) -> httpx.Client:
    return httpx.Client(timeout=timeout, transport=transport)


def _build_request(client: httpx.Client, settings: dict, mode: str, message: str, items) -> httpx.Request:
    message = (message or "").strip()
    if not message:
        raise ValueError("message is required")
    if len(message) > MAX_MESSAGE_LENGTH:
        raise ValueError(f"message exceeds {MAX_MESSAGE_LENGTH} characters")

    return client.build_request(
        "POST",
        settings["url"],
        headers={"Authorization": f"Bearer {settings['api_key']}"},
        json={
            "model": settings["model"],
            "messages": [
                {"role": "system", "content": build_system_prompt(mode, items)},
                {"role": "user", "content": message},
            ],
            "stream": mode == MODE_CHAT,
        },
    )


def _raise_for_gateway_status(response: httpx.Response) -> None:
    if response.status_code == 429:
        raise AssistantRateLimited("Rate limited. Please try again later.")
    if response.status_code == 402:
        raise AssistantUnavailable("AI service unavailable.")
    if response.is_error:
        raise AssistantError(f"AI gateway error: {response.status_code}")


def ask(message: str, items: Iterable[CatalogItem], *, transport: httpx.BaseTransport | None = None) -> dict:
    """Search mode: return the gateway's JSON completion."""
    settings = _settings()
    with _make_client(settings["timeout"], transport) as client:
        request = _build_request(client, settings, MODE_SEARCH, message, items)
        try:
            response = client.send(request)
        except httpx.HTTPError as e:
            raise AssistantError("AI gateway unreachable") from e
        _raise_for_gateway_status(response)
        try:
            return response.json()
        except ValueError as e:
            raise AssistantError("AI gateway returned invalid JSON") from e


def stream_chat(
    message: str,
    items: Iterable[CatalogItem],
    *,
    transport: httpx.BaseTransport | None = None,
) -> Iterator[bytes]:
    """
    Chat mode: open the gateway stream and return an iterator over its bytes.

    The gateway status is checked before this returns, so errors surface to
    the caller instead of in the middle of a streamed response.
    """
    settings = _settings()
    client = _make_client(settings["timeout"], transport)
    try:
        request = _build_request(client, settings, MODE_CHAT, message, items)
        response = client.send(request, stream=True)
    except httpx.HTTPError as e:
        client.close()
        raise AssistantError("AI gateway unreachable") from e
    except ValueError:
        client.close()
        raise

    try:
        _raise_for_gateway_status(response)
    except AssistantError:
        response.close()
        client.close()
        raise

    def _relay() -> Iterator[bytes]:
        try:
            yield from response.iter_bytes()
        finally:
            response.close()
            client.close()

    return _relay()
