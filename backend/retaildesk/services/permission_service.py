# Overview: Service-layer operations for permission; role resolution, role administration and security audit.

"""
Permission Checking and Security Event Logging

WHY: Enforce role-based access control and create audit trail.

DESIGN PRINCIPLES:
- Fail closed: Deny by default, require explicit permission grant
- Log denials only: Permission grants are not logged
- Permissions come from code (permissions.ROLE_PERMISSIONS); only role
  assignments live in the database
"""

from ..extensions import db
from ..models import SecurityEvent, User, UserRole
from ..permissions import ROLE_ADMIN, permissions_for_roles, validate_role_name
from ..validation import ConflictError, ValidationError
from retaildesk.time_utils import utcnow


class PermissionDeniedError(Exception):
    """Raised when user lacks required permission."""
    pass


class RoleAssignmentNotFoundError(ValidationError):
    """Raised when a role assignment id does not exist."""


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> SecurityEvent:
    """
    Log security event to audit trail.

    event_type examples:
    - PERMISSION_DENIED
    - LOGIN_FAILED
    - LOGOUT
    - ROLE_ASSIGNED
    - ROLE_REMOVED
    - USER_REGISTERED
    """
    event = SecurityEvent(
        user_id=user_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=(user_agent or "")[:512] or None,
        occurred_at=utcnow()
    )

    db.session.add(event)
    db.session.commit()

    return event


def get_user_roles(user_id: int) -> list[str]:
    """Role names assigned to a user, sorted."""
    rows = db.session.query(UserRole.role).filter_by(user_id=user_id).all()
    return sorted(row[0] for row in rows)


def get_user_permissions(user_id: int, roles: list[str] | None = None) -> set[str]:
    """
    Get all permission codes for a user.

    Union of the permissions of every assigned role. Pass `roles` when they
    were already loaded for this request.
    """
    if roles is None:
        roles = get_user_roles(user_id)
    return permissions_for_roles(roles)


def require_permission(
    user_id: int,
    permission_code: str,
    resource: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    permissions: set[str] | None = None,
) -> None:
    """
    Require user to have permission, raise PermissionDeniedError if not.

    Denials are written to security_events.
    """
    granted = permissions if permissions is not None else get_user_permissions(user_id)

    if permission_code not in granted:
        log_security_event(
            user_id=user_id,
            event_type="PERMISSION_DENIED",
            success=False,
            resource=resource,
            action=permission_code,
            reason=f"Missing permission: {permission_code}",
            ip_address=ip_address,
            user_agent=user_agent,
        )
        raise PermissionDeniedError(f"Permission denied: {permission_code}")


# =============================================================================
# ROLE ADMINISTRATION
# =============================================================================

def list_role_assignments() -> list[UserRole]:
    return (
        db.session.query(UserRole)
        .join(User, User.id == UserRole.user_id)
        .order_by(User.email, UserRole.role)
        .all()
    )


def assign_role_by_email(email: str, role: str, actor_user_id: int | None) -> UserRole:
    """
    Grant `role` to the user registered under `email`.

    Raises:
        ValidationError: unknown email or unknown role (nothing written)
        ConflictError: the user already holds the role
    """
    role = (role or "").strip().lower()
    if not validate_role_name(role):
        raise ValidationError(f"Unknown role: {role}")

    user = db.session.query(User).filter(User.email == (email or "").strip().lower()).first()
    if not user:
        raise ValidationError("No user registered with that email")

    existing = db.session.query(UserRole).filter_by(user_id=user.id, role=role).first()
    if existing:
        raise ConflictError(f"User already has role {role}")

    assignment = UserRole(user_id=user.id, role=role, assigned_by_user_id=actor_user_id, created_at=utcnow())
    db.session.add(assignment)
    db.session.commit()

    log_security_event(
        user_id=actor_user_id,
        event_type="ROLE_ASSIGNED",
        success=True,
        resource=f"user:{user.id}",
        action=role,
    )
    return assignment


def remove_role_assignment(assignment_id: int, actor_user_id: int | None) -> None:
    """
    Delete a role assignment.

    An admin may not remove their own admin role while it is the last admin
    assignment, which would lock everyone out of user administration.
    """
    assignment = db.session.get(UserRole, assignment_id)
    if assignment is None:
        raise RoleAssignmentNotFoundError("Role assignment not found")

    if assignment.role == ROLE_ADMIN:
        admin_count = db.session.query(UserRole).filter_by(role=ROLE_ADMIN).count()
        if admin_count <= 1:
            raise ConflictError("Cannot remove the last admin role")
        if assignment.user_id == actor_user_id:
            raise ConflictError("Admins cannot remove their own admin role")

    user_id, role = assignment.user_id, assignment.role
    db.session.delete(assignment)
    db.session.commit()

    log_security_event(
        user_id=actor_user_id,
        event_type="ROLE_REMOVED",
        success=True,
        resource=f"user:{user_id}",
        action=role,
    )
