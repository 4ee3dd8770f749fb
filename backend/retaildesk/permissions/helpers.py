# Overview: Utility functions for permission lookups and validation.

from .roles import ROLE_PERMISSIONS


def validate_role_name(role):
    """Check if a role name is known."""
    return role in ROLE_PERMISSIONS


def permissions_for_roles(roles):
    """Union of the permission codes granted by the given role names."""
    codes = set()
    for role in roles:
        codes |= ROLE_PERMISSIONS.get(role, set())
    return codes
