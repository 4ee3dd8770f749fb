# backend/retaildesk/routes/admin.py
"""
Admin routes for role assignment.

Roles are granted by email so an admin can promote a customer who
registered on the storefront. All endpoints require MANAGE_USERS.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import permission_service
from ..services.permission_service import RoleAssignmentNotFoundError
from ..permissions import ROLE_PERMISSIONS
from ..validation import ValidationError, ConflictError
from ..decorators import require_auth, require_permission

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.get("/user-roles")
@require_auth
@require_permission("MANAGE_USERS")
def list_user_roles():
    assignments = permission_service.list_role_assignments()
    return jsonify({
        "assignments": [a.to_dict() for a in assignments],
        "roles": sorted(ROLE_PERMISSIONS),
    }), 200


@admin_bp.post("/user-roles")
@require_auth
@require_permission("MANAGE_USERS")
def assign_user_role():
    """
    Grant a role to the user with the given email.

    Request body:
    {
        "email": "sam@example.com",
        "role": "employee"
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        assignment = permission_service.assign_role_by_email(
            data.get("email"), data.get("role"), g.current_user.id
        )
        current_app.logger.info(
            "Role %s assigned to user %s by user %s",
            assignment.role, assignment.user_id, g.current_user.id,
        )
        return jsonify({"assignment": assignment.to_dict()}), 201
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to assign role")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.delete("/user-roles/<int:assignment_id>")
@require_auth
@require_permission("MANAGE_USERS")
def remove_user_role(assignment_id: int):
    try:
        permission_service.remove_role_assignment(assignment_id, g.current_user.id)
        current_app.logger.info("Role assignment %s removed by user %s", assignment_id, g.current_user.id)
        return jsonify({"ok": True}), 200
    except RoleAssignmentNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to remove role assignment")
        return jsonify({"error": "Internal server error"}), 500
