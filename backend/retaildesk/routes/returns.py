# backend/retaildesk/routes/returns.py
"""
Return Processing API Routes

WHY: Customers (or staff on their behalf) open return / warranty requests
against a sale; staff decide and complete them.

SECURITY:
- REQUEST_RETURN to open a request; customers only against their own orders
- PROCESS_RETURNS for the queue and for approve / reject / complete
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import return_service, sales_service
from ..services.return_service import ReturnError, ReturnNotFoundError
from ..validation import ValidationError, parse_positive_int
from ..decorators import require_auth, require_permission


returns_bp = Blueprint("returns", __name__, url_prefix="/api/returns")


def _can_process() -> bool:
    return g.auth.has("PROCESS_RETURNS")


def _error_response(e: ReturnError):
    status = 404 if isinstance(e, ReturnNotFoundError) else 409 if "status" in e.details else 400
    return jsonify({"error": str(e), "details": e.details}), status


@returns_bp.post("")
@require_auth
@require_permission("REQUEST_RETURN")
def create_return_route():
    """
    Open a return request (status: pending).

    Request body:
    {
        "sale_id": 123,
        "reason": "Drill stopped working after a week",
        "warranty_claim": true   (optional, default false)
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        sale_id = parse_positive_int(data.get("sale_id"), "sale_id")

        sale = sales_service.get_sale(sale_id)
        # Customers can only see (and return) their own orders
        if sale is not None and not _can_process() and sale.customer_user_id != g.current_user.id:
            return jsonify({"error": "Sale not found"}), 404

        return_doc = return_service.create_return(
            sale_id=sale_id,
            reason=data.get("reason"),
            warranty_claim=bool(data.get("warranty_claim", False)),
            requested_by_user_id=g.current_user.id,
        )
        current_app.logger.info(
            "Return %s opened for sale %s by user %s", return_doc.id, sale_id, g.current_user.id
        )
        return jsonify({"return": return_doc.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ReturnError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create return")
        return jsonify({"error": "Internal server error"}), 500


@returns_bp.get("")
@require_auth
@require_permission("PROCESS_RETURNS")
def list_returns_route():
    """Return queue. Query params: status, sale_id."""
    sale_id = request.args.get("sale_id", type=int)
    if sale_id:
        returns = return_service.get_sale_returns(sale_id)
    else:
        returns = return_service.list_returns(status=request.args.get("status"))
    return jsonify({"returns": [r.to_dict() for r in returns]}), 200


@returns_bp.get("/mine")
@require_auth
@require_permission("REQUEST_RETURN")
def my_returns_route():
    returns = return_service.list_customer_returns(g.current_user.id)
    return jsonify({"returns": [r.to_dict() for r in returns]}), 200


@returns_bp.get("/<int:return_id>")
@require_auth
def get_return_route(return_id: int):
    return_doc = return_service.get_return(return_id)
    if return_doc is None:
        return jsonify({"error": "Return not found"}), 404

    if not _can_process():
        owns = (
            return_doc.requested_by_user_id == g.current_user.id
            or (return_doc.sale and return_doc.sale.customer_user_id == g.current_user.id)
        )
        if not owns:
            return jsonify({"error": "Return not found"}), 404

    return jsonify({"return": return_doc.to_dict()}), 200


@returns_bp.post("/<int:return_id>/approve")
@require_auth
@require_permission("PROCESS_RETURNS")
def approve_return_route(return_id: int):
    """
    Approve a pending return.

    Request body (optional):
    {
        "refund_amount_cents": 2499,   (defaults to the unrefunded sale total)
        "notes": "Exchanged for new unit"
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        return_doc = return_service.approve_return(
            return_id,
            g.current_user.id,
            refund_amount_cents=data.get("refund_amount_cents"),
            notes=data.get("notes"),
        )
        current_app.logger.info(
            "Return %s approved by user %s (refund %s cents)",
            return_id, g.current_user.id, return_doc.refund_amount_cents,
        )
        return jsonify({"return": return_doc.to_dict()}), 200
    except ReturnError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to approve return")
        return jsonify({"error": "Internal server error"}), 500


@returns_bp.post("/<int:return_id>/reject")
@require_auth
@require_permission("PROCESS_RETURNS")
def reject_return_route(return_id: int):
    data = request.get_json(silent=True) or {}
    try:
        return_doc = return_service.reject_return(return_id, g.current_user.id, notes=data.get("notes"))
        current_app.logger.info("Return %s rejected by user %s", return_id, g.current_user.id)
        return jsonify({"return": return_doc.to_dict()}), 200
    except ReturnError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to reject return")
        return jsonify({"error": "Internal server error"}), 500


@returns_bp.post("/<int:return_id>/complete")
@require_auth
@require_permission("PROCESS_RETURNS")
def complete_return_route(return_id: int):
    data = request.get_json(silent=True) or {}
    try:
        return_doc = return_service.complete_return(return_id, g.current_user.id, notes=data.get("notes"))
        current_app.logger.info("Return %s completed by user %s", return_id, g.current_user.id)
        return jsonify({"return": return_doc.to_dict()}), 200
    except ReturnError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to complete return")
        return jsonify({"error": "Internal server error"}), 500
