# backend/retaildesk/routes/assistant.py
"""
Shopping assistant routes (public, storefront).

POST /api/assistant/chat    -> text/event-stream relayed from the gateway
POST /api/assistant/search  -> gateway JSON completion

Both take {"message": "..."}; the catalog snapshot is added server-side.
"""

from flask import Blueprint, Response, request, jsonify, current_app, stream_with_context

from ..services import assistant_service, catalog_service
from ..services.assistant_service import AssistantError

assistant_bp = Blueprint("assistant", __name__, url_prefix="/api/assistant")


def _catalog_snapshot():
    return catalog_service.list_items()


@assistant_bp.post("/chat")
def chat_route():
    data = request.get_json(silent=True) or {}
    try:
        stream = assistant_service.stream_chat(data.get("message"), _catalog_snapshot())
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except AssistantError as e:
        current_app.logger.warning("Assistant chat failed: %s", e)
        return jsonify({"error": str(e)}), e.status_code

    return Response(stream_with_context(stream), mimetype="text/event-stream")


@assistant_bp.post("/search")
def search_route():
    data = request.get_json(silent=True) or {}
    try:
        result = assistant_service.ask(data.get("message"), _catalog_snapshot())
        return jsonify(result), 200
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except AssistantError as e:
        current_app.logger.warning("Assistant search failed: %s", e)
        return jsonify({"error": str(e)}), e.status_code
