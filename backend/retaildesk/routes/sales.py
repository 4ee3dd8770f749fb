# backend/retaildesk/routes/sales.py
"""
Point-of-sale API routes

WHY: In-person checkout. The operator's cart is rebuilt server-side from
the catalog, then recorded as one atomic sale.

SECURITY:
- CREATE_SALE to check out
- VIEW_SALES to browse history and reprint receipts
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import sales_service
from ..services.sales_service import SaleError, SaleStockError
from ..validation import ValidationError
from ..decorators import require_auth, require_permission
from retaildesk.time_utils import parse_iso_datetime


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def sale_payload(sale) -> dict:
    data = sale.to_dict()
    data["lines"] = [line.to_dict() for line in sales_service.get_sale_lines(sale.id)]
    return data


@sales_bp.post("")
@require_auth
@require_permission("CREATE_SALE")
def create_sale_route():
    """
    Record an in-person sale (status: completed).

    Request body:
    {
        "items": [{"item_id": 1, "quantity": 2}, {"item_id": 7, "quantity": 1}],
        "payment_method": "cash",          (cash | card | eft)
        "customer_name": "Walk-in",        (optional)
        "customer_contact": "555-0100"     (optional)
    }

    Returns:
        201: Sale with lines
        400: Invalid input
        409: Insufficient stock (nothing was recorded)
    """
    data = request.get_json(silent=True) or {}
    try:
        cart = sales_service.build_cart(data.get("items"))
        sale = sales_service.record_sale(
            cart.lines,
            payment_method=data.get("payment_method"),
            customer_name=data.get("customer_name"),
            customer_contact=data.get("customer_contact"),
            sold_by_user_id=g.current_user.id,
            is_online=False,
        )
        current_app.logger.info(
            "Sale %s recorded by user %s: %s cents",
            sale.sale_number, g.current_user.id, sale.total_amount_cents,
        )
        return jsonify({"sale": sale_payload(sale)}), 201

    except SaleStockError as e:
        current_app.logger.warning("Sale rejected for insufficient stock: %s", e.details)
        return jsonify({"error": str(e), "details": e.details}), 409
    except (SaleError, ValidationError) as e:
        return jsonify({"error": str(e), "details": getattr(e, "details", {})}), 400
    except Exception:
        current_app.logger.exception("Failed to record sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
@require_auth
@require_permission("VIEW_SALES")
def list_sales_route():
    """
    Sales history, newest first.

    Query params:
    - channel: "online" | "in_person"
    - status: pending | completed | cancelled
    - sold_by: operator user id
    - from / to: ISO-8601 bounds on sale_date (to is exclusive)
    - limit: default 100, max 500
    """
    channel = request.args.get("channel")
    is_online = {"online": True, "in_person": False}.get(channel)

    try:
        start = parse_iso_datetime(request.args.get("from"))
        end = parse_iso_datetime(request.args.get("to"))
    except ValueError:
        return jsonify({"error": "from/to must be ISO-8601 datetimes"}), 400

    limit = min(request.args.get("limit", default=100, type=int) or 100, 500)

    sales = sales_service.list_sales(
        is_online=is_online,
        status=request.args.get("status"),
        sold_by_user_id=request.args.get("sold_by", type=int),
        start=start,
        end=end,
        limit=limit,
    )
    return jsonify({"sales": [sale.to_dict() for sale in sales]}), 200


@sales_bp.get("/<int:sale_id>")
@require_auth
@require_permission("VIEW_SALES")
def get_sale_route(sale_id: int):
    sale = sales_service.get_sale(sale_id)
    if not sale:
        return jsonify({"error": "Sale not found"}), 404
    return jsonify({"sale": sale_payload(sale)}), 200


@sales_bp.get("/<int:sale_id>/receipt")
@require_auth
@require_permission("VIEW_SALES")
def receipt_route(sale_id: int):
    try:
        return jsonify({"receipt": sales_service.get_receipt(sale_id)}), 200
    except SaleError as e:
        if sales_service.get_sale(sale_id) is None:
            return jsonify({"error": str(e)}), 404
        current_app.logger.error("Receipt integrity check failed for sale %s: %s", sale_id, e.details)
        return jsonify({"error": str(e), "details": e.details}), 500
