# Overview: Service-layer operations for auth; password hashing, user creation and credential checks.

"""
Authentication Service

WHY: Every action must be attributable. Passwords are hashed with bcrypt
and checked against a strength policy.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Minimum 8 characters required
- Must contain uppercase, lowercase, digit, and special char
- Session tokens managed separately (see session_service.py)
"""

import re

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User, UserRole
from ..permissions import ROLE_CUSTOMER, validate_role_name
from ..validation import ConflictError, ValidationError
from retaildesk.time_utils import utcnow


EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character

    Raises PasswordValidationError if requirements not met.
    """
    if not password or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.?'\":{}|<>_\-]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """Validate strength, then hash with bcrypt."""
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds=rounds))
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    Comparison is done by bcrypt.checkpw (constant time).
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash
        return False


def create_user(
    username: str,
    email: str,
    password: str,
    full_name: str | None = None,
    roles: list[str] | None = None,
    assigned_by_user_id: int | None = None,
) -> User:
    """
    Create a user and (optionally) their initial role assignments.

    Raises:
        ValidationError: malformed username/email or unknown role
        ConflictError: username or email already taken
        PasswordValidationError: weak password
    """
    username = (username or "").strip()
    email = (email or "").strip().lower()

    if not username:
        raise ValidationError("username is required")
    if not EMAIL_RE.match(email):
        raise ValidationError("A valid email is required")

    for role in roles or []:
        if not validate_role_name(role):
            raise ValidationError(f"Unknown role: {role}")

    existing = db.session.query(User).filter(
        db.or_(User.username == username, User.email == email)
    ).first()
    if existing:
        raise ConflictError("Username or email already exists")

    user = User(
        username=username,
        email=email,
        full_name=(full_name or "").strip() or None,
        password_hash=hash_password(password),
        is_active=True,
    )
    db.session.add(user)
    db.session.flush()

    for role in roles or []:
        db.session.add(UserRole(user_id=user.id, role=role, assigned_by_user_id=assigned_by_user_id))

    db.session.commit()
    return user


def register_customer(username: str, email: str, password: str, full_name: str | None = None) -> User:
    """Storefront self-registration: always and only the customer role."""
    return create_user(username, email, password, full_name=full_name, roles=[ROLE_CUSTOMER])


def authenticate(username: str, password: str) -> User | None:
    """
    Authenticate user with username or email and password.

    Returns User if credentials valid, None otherwise.
    Updates last_login_at timestamp on successful authentication.
    """
    identifier = (username or "").strip()
    user = db.session.query(User).filter(
        db.or_(User.username == identifier, User.email == identifier.lower()),
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None


def get_user_by_email(email: str) -> User | None:
    return db.session.query(User).filter(User.email == (email or "").strip().lower()).first()
