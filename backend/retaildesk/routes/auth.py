# backend/retaildesk/routes/auth.py
"""
Authentication API routes

- Storefront self-registration (customer role only)
- Login issues an opaque bearer token
- Logout revokes it
- /me returns the caller with roles and permissions
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..services import permission_service
from ..services.auth_service import PasswordValidationError
from ..validation import ValidationError, ConflictError
from ..decorators import require_auth, bearer_token


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _login_payload(user, session, token) -> dict:
    roles = permission_service.get_user_roles(user.id)
    return {
        "user": user.to_dict(),
        "roles": roles,
        "permissions": sorted(permission_service.get_user_permissions(user.id, roles=roles)),
        "token": token,
        "session": session.to_dict(),
    }


@auth_bp.post("/register")
def register_route():
    """
    Create a customer account and log it in.

    Request body:
    {
        "username": "jane",
        "email": "jane@example.com",
        "password": "Str0ng!pass",
        "full_name": "Jane Doe"  (optional)
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.register_customer(
            username=data.get("username") or data.get("email"),
            email=data.get("email"),
            password=data.get("password") or "",
            full_name=data.get("full_name"),
        )
        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
        permission_service.log_security_event(
            user_id=user.id,
            event_type="USER_REGISTERED",
            success=True,
            resource=request.path,
            ip_address=request.remote_addr,
            user_agent=request.headers.get("User-Agent"),
        )
        return jsonify(_login_payload(user, session, token)), 201

    except (ValidationError, PasswordValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to register user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included in Authorization header for protected routes.
    """
    try:
        data = request.get_json(silent=True) or {}
        username = data.get("username") or data.get("email")
        password = data.get("password")

        if not all([username, password]):
            return jsonify({"error": "username/email and password required"}), 400

        user_agent = request.headers.get("User-Agent")
        ip_address = request.remote_addr

        user = auth_service.authenticate(username, password)
        if not user:
            permission_service.log_security_event(
                user_id=None,
                event_type="LOGIN_FAILED",
                success=False,
                resource=request.path,
                reason=f"Invalid credentials for {username}",
                ip_address=ip_address,
                user_agent=user_agent,
            )
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=user_agent,
            ip_address=ip_address
        )
        return jsonify(_login_payload(user, session, token)), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
def logout_route():
    """Revoke the bearer token."""
    try:
        token = bearer_token()
        if not token:
            return jsonify({"error": "Authorization header required"}), 401

        if not session_service.revoke_session(token, reason="User logout"):
            return jsonify({"error": "Invalid or expired token"}), 401

        return jsonify({"message": "Logout successful"}), 200

    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({
        "user": g.current_user.to_dict(),
        "roles": g.auth.roles,
        "permissions": sorted(g.auth.permissions),
        "is_staff": g.auth.is_staff,
    }), 200
