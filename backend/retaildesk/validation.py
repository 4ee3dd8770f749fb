# Overview: Payload validation driven by SQLAlchemy column metadata plus per-model write policies.

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta


# 9,999,999.99 in cents; keeps prices inside a 32-bit column
MAX_PRICE_CENTS = 999_999_999


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (duplicate item code, duplicate role, item with sales)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Which columns a client may write.

    writable_fields is the allowlist; anything else in a payload is refused.
    required_on_create lists the keys a create payload must carry.
    """
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    return {column.key: column for column in model.__mapper__.columns}


def _coerce_int(key: str, value: Any) -> int:
    # bool is an int subclass; JSON true/false is never a quantity or price
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        raise ValidationError(f"{key} must be a whole number of cents/units, not {value}")
    if isinstance(value, str):
        text = value.strip()
        digits = text[1:] if text.startswith("-") else text
        if digits.isdigit():
            return int(text)
    raise ValidationError(f"{key} must be an integer")


def _coerce_value(column, value: Any):
    coltype = column.type
    if isinstance(coltype, Integer):
        return _coerce_int(column.key, value)
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "on"}
        return bool(value)
    if isinstance(coltype, (String, Text)):
        return str(value).strip()
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Check a JSON body against `policy` and the model's columns.

    Returns a cleaned patch containing only writable keys, coerced to the
    column types. partial=False enforces required_on_create (create);
    partial=True validates only the keys present (PATCH).
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(key for key in policy.required_on_create if key not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    columns = _columns_by_key(model)
    patch: dict = {}

    for key, raw in payload.items():
        if key not in policy.writable_fields or key not in columns:
            raise ValidationError(f"Field not allowed: {key}")
        column = columns[key]

        if raw is None:
            if not column.nullable:
                raise ValidationError(f"{key} cannot be null")
            patch[key] = None
            continue

        value = _coerce_value(column, raw)

        if isinstance(value, str):
            if value == "" and not column.nullable:
                raise ValidationError(f"{key} cannot be blank")
            length = getattr(column.type, "length", None)
            if length and len(value) > length:
                raise ValidationError(f"{key} exceeds max length {length}")

        patch[key] = value

    return patch


def enforce_rules_catalog_item(patch: dict) -> None:
    """Range rules for catalog items that column metadata cannot express."""
    price = patch.get("unit_price_cents")
    if price is not None:
        if price < 0:
            raise ValidationError("unit_price_cents must be >= 0")
        if price > MAX_PRICE_CENTS:
            raise ValidationError(f"unit_price_cents cannot exceed {MAX_PRICE_CENTS}")

    for key in ("quantity", "reorder_level"):
        if patch.get(key) is not None and patch[key] < 0:
            raise ValidationError(f"{key} must be >= 0")


def parse_positive_int(value: Any, field_name: str) -> int:
    """Coerce a JSON value to a strictly positive int or raise ValidationError."""
    if value is None:
        raise ValidationError(f"{field_name} must be a positive integer")
    number = _coerce_int(field_name, value)
    if number <= 0:
        raise ValidationError(f"{field_name} must be a positive integer")
    return number
