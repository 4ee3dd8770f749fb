# backend/retaildesk/routes/orders.py
"""
Online order routes.

Customers check out storefront carts (orders start pending) and see their
own orders. Staff with MANAGE_ORDERS work the pending queue.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import fulfillment_service, sales_service
from ..services.fulfillment_service import OrderNotFoundError, OrderStateError
from ..services.sales_service import SaleError, SaleStockError
from ..validation import ValidationError
from ..decorators import require_auth, require_permission
from .sales import sale_payload


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.post("/checkout")
@require_auth
@require_permission("PLACE_ONLINE_ORDER")
def checkout_route():
    """
    Place an online order for the caller.

    Request body:
    {
        "items": [{"item_id": 3, "quantity": 1}],
        "payment_method": "card",
        "customer_name": "Jane Doe",         (defaults to the account name)
        "customer_contact": "jane@example.com" (defaults to the account email)
    }

    Stock is reserved immediately; the order waits in the queue as pending.
    """
    data = request.get_json(silent=True) or {}
    user = g.current_user
    try:
        cart = sales_service.build_cart(data.get("items"))
        sale = sales_service.record_sale(
            cart.lines,
            payment_method=data.get("payment_method"),
            customer_name=data.get("customer_name") or user.full_name or user.username,
            customer_contact=data.get("customer_contact") or user.email,
            customer_user_id=user.id,
            is_online=True,
        )
        current_app.logger.info(
            "Online order %s placed by user %s: %s cents",
            sale.sale_number, user.id, sale.total_amount_cents,
        )
        return jsonify({"order": sale_payload(sale)}), 201

    except SaleStockError as e:
        current_app.logger.warning("Online order rejected for insufficient stock: %s", e.details)
        return jsonify({"error": str(e), "details": e.details}), 409
    except (SaleError, ValidationError) as e:
        return jsonify({"error": str(e), "details": getattr(e, "details", {})}), 400
    except Exception:
        current_app.logger.exception("Failed to place online order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("")
@require_auth
@require_permission("MANAGE_ORDERS")
def list_orders_route():
    """Online order queue. Query param: status (default: all)."""
    orders = fulfillment_service.list_online_orders(status=request.args.get("status"))
    return jsonify({
        "orders": [sale_payload(order) for order in orders],
        "pending_count": fulfillment_service.count_pending_orders(),
    }), 200


@orders_bp.get("/mine")
@require_auth
@require_permission("VIEW_OWN_ORDERS")
def my_orders_route():
    orders = fulfillment_service.list_customer_orders(g.current_user.id)
    return jsonify({"orders": [sale_payload(order) for order in orders]}), 200


def _order_state_status(e: OrderStateError) -> int:
    return 404 if isinstance(e, OrderNotFoundError) else 409


@orders_bp.post("/<int:sale_id>/complete")
@require_auth
@require_permission("MANAGE_ORDERS")
def complete_order_route(sale_id: int):
    try:
        sale = fulfillment_service.complete_order(sale_id, g.current_user.id)
        current_app.logger.info("Order %s completed by user %s", sale.sale_number, g.current_user.id)
        return jsonify({"order": sale.to_dict()}), 200
    except OrderStateError as e:
        return jsonify({"error": str(e), "details": e.details}), _order_state_status(e)
    except Exception:
        current_app.logger.exception("Failed to complete order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<int:sale_id>/cancel")
@require_auth
@require_permission("MANAGE_ORDERS")
def cancel_order_route(sale_id: int):
    try:
        sale = fulfillment_service.cancel_order(sale_id, g.current_user.id)
        current_app.logger.info("Order %s cancelled by user %s", sale.sale_number, g.current_user.id)
        return jsonify({"order": sale.to_dict()}), 200
    except OrderStateError as e:
        return jsonify({"error": str(e), "details": e.details}), _order_state_status(e)
    except Exception:
        current_app.logger.exception("Failed to cancel order")
        return jsonify({"error": "Internal server error"}), 500
