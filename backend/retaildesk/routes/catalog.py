# backend/retaildesk/routes/catalog.py
"""
Catalog routes.

Reads of active items are public (storefront). Everything else requires
authentication:
- Item create / update / delete require MANAGE_CATALOG
- Stock corrections and movement history require ADJUST_STOCK
- Low-stock alerts require VIEW_STOCK_ALERTS
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import catalog_service
from ..services.catalog_service import CatalogError, InsufficientStockError
from ..validation import ValidationError, ConflictError
from ..decorators import require_auth, require_permission

catalog_bp = Blueprint("catalog", __name__, url_prefix="/api/catalog")


def _truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes"}


@catalog_bp.get("/items")
def list_items_route():
    """
    List active catalog items (public).

    Query params:
    - search: substring of name, code or description
    - category: exact category
    - in_stock: 1 to hide sold-out items
    """
    items = catalog_service.list_items(
        search=request.args.get("search"),
        category=request.args.get("category"),
        in_stock_only=_truthy(request.args.get("in_stock")),
    )
    return jsonify({"items": [item.to_dict() for item in items]}), 200


@catalog_bp.get("/items/<int:item_id>")
def get_item_route(item_id: int):
    item = catalog_service.get_item(item_id)
    if item is None or not item.is_active:
        return jsonify({"error": "Item not found"}), 404
    return jsonify({"item": item.to_dict()}), 200


@catalog_bp.post("/items")
@require_auth
@require_permission("MANAGE_CATALOG")
def create_item_route():
    """
    Create a catalog item.

    Request body:
    {
        "item_code": "HAM-16",
        "item_name": "Claw Hammer 16oz",
        "category": "Hand Tools",
        "unit_price_cents": 2499,
        "quantity": 12,          (optional, opening stock)
        "reorder_level": 5       (optional)
    }
    """
    payload = request.get_json(silent=True) or {}
    try:
        item = catalog_service.create_item(payload, actor_user_id=g.current_user.id)
        return jsonify({"item": item.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to create catalog item")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.patch("/items/<int:item_id>")
@require_auth
@require_permission("MANAGE_CATALOG")
def update_item_route(item_id: int):
    """Patch descriptive fields or price. Quantity changes go through /adjust."""
    payload = request.get_json(silent=True) or {}
    try:
        item = catalog_service.update_item(item_id, payload)
        return jsonify({"item": item.to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except CatalogError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update catalog item")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.delete("/items/<int:item_id>")
@require_auth
@require_permission("MANAGE_CATALOG")
def delete_item_route(item_id: int):
    """Delete an unsold item. Items with sales history answer 409; deactivate those."""
    try:
        if _truthy(request.args.get("deactivate")):
            item = catalog_service.deactivate_item(item_id)
            return jsonify({"item": item.to_dict()}), 200
        catalog_service.delete_item(item_id)
        return jsonify({"ok": True}), 200
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except CatalogError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to delete catalog item")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.post("/items/<int:item_id>/adjust")
@require_auth
@require_permission("ADJUST_STOCK")
def adjust_stock_route(item_id: int):
    """
    Manual stock correction.

    Request body:
    {
        "quantity_delta": -2,
        "note": "Damaged in storage"
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        item = catalog_service.adjust_stock(
            item_id,
            data.get("quantity_delta"),
            actor_user_id=g.current_user.id,
            note=data.get("note"),
        )
        current_app.logger.info(
            "Stock adjusted for item %s by %s (user %s)",
            item_id, data.get("quantity_delta"), g.current_user.id,
        )
        return jsonify({"item": item.to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except InsufficientStockError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except CatalogError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.get("/items/<int:item_id>/movements")
@require_auth
@require_permission("ADJUST_STOCK")
def list_movements_route(item_id: int):
    if catalog_service.get_item(item_id) is None:
        return jsonify({"error": "Item not found"}), 404
    movements = catalog_service.list_movements(item_id)
    return jsonify({"movements": [m.to_dict() for m in movements]}), 200


@catalog_bp.get("/low-stock")
@require_auth
@require_permission("VIEW_STOCK_ALERTS")
def low_stock_route():
    """Items at or below their reorder level, most urgent first."""
    items = catalog_service.get_low_stock_items()
    return jsonify({"items": [item.to_dict() for item in items], "count": len(items)}), 200
