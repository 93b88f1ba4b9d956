from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Boolean, Float, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationFailed
from .units import AMOUNT_UNITS, PRICE_UNITS

TRANSACTION_TYPES = ("production", "purchase", "sale", "move", "adjustment")
TICKET_TYPES = ("sale", "barn_to_barn")
CAPACITY_UNITS = AMOUNT_UNITS

# Largest amount/price accepted from clients; guards against overflow and typos
MAX_NUMERIC_INPUT = 1_000_000_000


@dataclass(frozen=True)
class FieldSpec:
    """Column-like description for payload fields that are not model columns."""
    key: str
    type: Any
    nullable: bool = True


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - extra_fields: accepted inputs that do not map to a model column (e.g. price_unit)
    """
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)
    extra_fields: tuple[FieldSpec, ...] = ()


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_number(key: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ValidationFailed(f"{key} must be a number")
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationFailed(f"{key} must be a number")
        try:
            number = float(stripped)
        except ValueError:
            raise ValidationFailed(f"{key} must be a number")
    else:
        raise ValidationFailed(f"{key} must be a number")

    if math.isnan(number) or math.isinf(number):
        raise ValidationFailed(f"{key} must be a finite number")
    if abs(number) > MAX_NUMERIC_INPUT:
        raise ValidationFailed(f"{key} is out of range")
    return number


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - reject floats, decimals and scientific notation
    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped or "e" in stripped.lower() or "." in stripped:
                raise ValidationFailed(f"{col.key} must be an integer")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationFailed(f"{col.key} must be an integer")
        raise ValidationFailed(f"{col.key} must be an integer")

    if isinstance(coltype, Float):
        return _coerce_number(col.key, value)

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
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
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    Blank strings on nullable text columns become None, mirroring HTML forms
    that post empty inputs.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationFailed("Invalid JSON payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if payload.get(f) in (None, ""))
        if missing:
            raise ValidationFailed(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)
    for spec in policy.extra_fields:
        cols[spec.key] = spec

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationFailed(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationFailed(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if isinstance(raw, str) and raw.strip() == "" and col.nullable:
            raw = None

        if raw is None:
            if not col.nullable and k in policy.required_on_create:
                raise ValidationFailed(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationFailed(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationFailed(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def parse_id_list(raw: Any, key: str = "ticket_ids") -> list[int]:
    """Accept [1, 2] or the form-style "1, 2" and return unique ids in order."""
    if raw is None or raw == "" or raw == []:
        raise ValidationFailed("No tickets selected")

    if isinstance(raw, str):
        items = [part.strip() for part in raw.split(",")]
    elif isinstance(raw, (list, tuple)):
        items = list(raw)
    else:
        raise ValidationFailed(f"{key} must be a list of ids")

    ids: list[int] = []
    for item in items:
        if isinstance(item, bool):
            continue
        if isinstance(item, int):
            value = item
        elif isinstance(item, str) and item.isdigit():
            value = int(item)
        else:
            continue
        if value not in ids:
            ids.append(value)

    if not ids:
        raise ValidationFailed("No valid tickets selected")
    return ids


def enforce_choice(value: str | None, choices, key: str) -> None:
    if value is not None and value not in choices:
        raise ValidationFailed(f"{key} must be one of: {', '.join(choices)}")


def enforce_rules_stack(patch: dict) -> None:
    if patch.get("base_price") is not None and patch["base_price"] < 0:
        raise ValidationFailed("base_price must be >= 0")
    if patch.get("weight_per_bale") is not None and patch["weight_per_bale"] <= 0:
        raise ValidationFailed("weight_per_bale must be > 0")
    enforce_choice(patch.get("price_unit"), PRICE_UNITS, "price_unit")


def enforce_rules_location(patch: dict) -> None:
    if patch.get("capacity") is not None and patch["capacity"] < 0:
        raise ValidationFailed("capacity must be >= 0")
    enforce_choice(patch.get("capacity_unit"), CAPACITY_UNITS, "capacity_unit")


def enforce_rules_transaction(patch: dict) -> None:
    # Amounts are entered positive; the type carries the direction
    enforce_choice(patch.get("type"), TRANSACTION_TYPES, "type")
    enforce_choice(patch.get("unit"), AMOUNT_UNITS, "unit")
    enforce_choice(patch.get("price_unit"), PRICE_UNITS, "price_unit")

    if "amount" in patch and (patch["amount"] is None or patch["amount"] <= 0):
        raise ValidationFailed("Amount must be a positive number")
    if patch.get("price") is not None and patch["price"] < 0:
        raise ValidationFailed("price must be >= 0")


def enforce_rules_ticket(patch: dict) -> None:
    enforce_choice(patch.get("type"), TICKET_TYPES, "type")

    if "amount" in patch and (patch["amount"] is None or patch["amount"] <= 0):
        raise ValidationFailed("Amount must be a positive number")
    if patch.get("net_lbs") is not None and patch["net_lbs"] < 0:
        raise ValidationFailed("net_lbs must be >= 0")


def enforce_rules_invoice_pricing(patch: dict) -> None:
    enforce_choice(patch.get("price_unit"), PRICE_UNITS, "price_unit")
    if patch.get("price_per_unit") is not None and patch["price_per_unit"] < 0:
        raise ValidationFailed("price_per_unit must be >= 0")
