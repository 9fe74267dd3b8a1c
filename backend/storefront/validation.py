from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta


# Maximum price: 9,999,999.99 (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., voucher already used)."""


class NotFoundError(LookupError):
    """404-level missing entity."""


# ---------------------------------------------------------------------------
# Scalar parsing for JSON request bodies
# ---------------------------------------------------------------------------

def parse_int(value: Any, field: str, *, minimum: int | None = None) -> int:
    """
    Strict integer parsing for ids and quantities arriving as JSON.

    Accepts ints and plain digit strings. Rejects bools, floats and
    scientific notation.
    """
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValidationError(f"{field} must be an integer")

    if isinstance(value, str):
        text = value.strip()
        if not text or "e" in text.lower() or "." in text:
            raise ValidationError(f"{field} must be an integer")
        try:
            value = int(text)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")

    if minimum is not None and value < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    return value


def parse_optional_int(value: Any, field: str, *, minimum: int | None = None) -> int | None:
    if value is None or value == "":
        return None
    return parse_int(value, field, minimum=minimum)


def parse_int_list(value: Any, field: str) -> list[int]:
    if not isinstance(value, list):
        raise ValidationError(f"{field} must be a list")
    return [parse_int(v, field, minimum=1) for v in value]


def require_fields(payload: dict, *fields: str) -> None:
    missing = [f for f in fields if payload.get(f) in (None, "")]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")


# ---------------------------------------------------------------------------
# Back-office PATCH bodies, checked against model columns
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PatchPolicy:
    """
    writable_fields: keys a client may change.
    guarded_fields: keys that exist on the model but move through a
    dedicated endpoint; the message names it.
    """
    writable_fields: frozenset[str]
    guarded_fields: dict[str, str] = field(default_factory=dict)


def _coerce_column(col, value: Any):
    if isinstance(col.type, Integer):
        return parse_int(value, col.key)

    if isinstance(col.type, (String, Text)):
        text = str(value).strip()
        if text == "" and not col.nullable:
            raise ValidationError(f"{col.key} cannot be blank")
        if isinstance(col.type, String) and col.type.length and len(text) > col.type.length:
            raise ValidationError(f"{col.key} exceeds max length {col.type.length}")
        return text

    return value


def validate_patch(model: DeclarativeMeta, payload: Any, policy: PatchPolicy) -> dict:
    """
    Clean a partial update: only writable keys, coerced by column type,
    nulls only where the column allows them.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    columns = {c.key: c for c in model.__mapper__.columns}
    patch: dict = {}

    for key, raw in payload.items():
        if key in policy.guarded_fields:
            raise ValidationError(policy.guarded_fields[key])
        if key not in policy.writable_fields or key not in columns:
            raise ValidationError(f"Field not allowed: {key}")

        col = columns[key]
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{key} cannot be null")
            patch[key] = None
        else:
            patch[key] = _coerce_column(col, raw)

    return patch


def enforce_rules_product(patch: dict) -> None:
    """Product rules that column metadata does not capture."""
    price = patch.get("price_cents")
    if price is not None:
        if price < 0:
            raise ValidationError("price_cents must be >= 0")
        if price > MAX_PRICE_CENTS:
            raise ValidationError(f"price_cents cannot exceed {MAX_PRICE_CENTS}")

    stock = patch.get("stock_quantity")
    if stock is not None and stock < 0:
        raise ValidationError("stock_quantity must be >= 0")
