from __future__ import annotations
from datetime import date, datetime
from .time_utils import parse_iso_datetime, parse_iso_date

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text, DateTime, Date
from sqlalchemy.orm import DeclarativeMeta


# Maximum money amount: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_AMOUNT_CENTS = 999_999_999

# 100% in basis points
MAX_TAX_RATE_BPS = 10_000

MAX_LINE_QUANTITY = 1_000_000


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate SKU)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_int(key: str, value: Any) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    # Reject floats explicitly
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def _coerce_date(key: str, value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            d = parse_iso_date(value)
        except ValueError:
            raise ValidationError(f"{key} must be an ISO-8601 date (YYYY-MM-DD)")
        if d is None:
            raise ValidationError(f"{key} must be an ISO-8601 date (YYYY-MM-DD)")
        return d
    raise ValidationError(f"{key} must be a date")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return _coerce_int(col.key, value)

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in {"true", "false", "1", "0"}:
            return value.strip().lower() in {"true", "1"}
        raise ValidationError(f"{col.key} must be a boolean")

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    # Calendar dates
    if isinstance(coltype, Date):
        return _coerce_date(col.key, value)

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        if isinstance(value, (dict, list)):
            raise ValidationError(f"{col.key} must be a string")
        return str(value).strip()

    # Default: leave as-is
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

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Optional text fields: blank means "unset"
        if isinstance(col.type, (String, Text)) and col.nullable and val == "":
            val = None

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def _check_cents(patch: dict, key: str) -> None:
    if key in patch and patch[key] is not None:
        value = patch[key]
        if value < 0:
            raise ValidationError(f"{key} must be >= 0")
        if value > MAX_AMOUNT_CENTS:
            raise ValidationError(f"{key} cannot exceed {MAX_AMOUNT_CENTS}")


def _check_email(patch: dict, key: str) -> None:
    value = patch.get(key)
    if value and ("@" not in value or value.startswith("@") or value.endswith("@")):
        raise ValidationError(f"{key} must be a valid email address")


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    _check_cents(patch, "purchase_price_cents")
    _check_cents(patch, "sale_price_cents")

    if "quantity" in patch and patch["quantity"] is not None and patch["quantity"] < 0:
        raise ValidationError("quantity must be >= 0")

    if "low_stock_threshold" in patch and patch["low_stock_threshold"] is not None:
        if patch["low_stock_threshold"] < 0:
            raise ValidationError("low_stock_threshold must be >= 0")


def enforce_rules_client(patch: dict) -> None:
    _check_email(patch, "email")


def enforce_rules_transaction(patch: dict) -> None:
    if "type" in patch and patch["type"] not in ("income", "expense"):
        raise ValidationError("type must be 'income' or 'expense'")
    _check_cents(patch, "amount_cents")


def enforce_rules_settings(patch: dict) -> None:
    rate = patch.get("default_tax_rate_bps")
    if rate is not None and not (0 <= rate <= MAX_TAX_RATE_BPS):
        raise ValidationError(f"default_tax_rate_bps must be between 0 and {MAX_TAX_RATE_BPS}")

    terms = patch.get("default_payment_terms")
    if terms is not None and terms < 0:
        raise ValidationError("default_payment_terms must be >= 0")


def enforce_rules_company_profile(patch: dict) -> None:
    _check_email(patch, "email")
    website = patch.get("website")
    if website and " " in website.strip():
        raise ValidationError("website cannot contain spaces")


def enforce_rules_document_header(patch: dict, *, email_key: str) -> None:
    _check_email(patch, email_key)

    issue = patch.get("issue_date")
    due = patch.get("due_date")
    if issue is not None and due is not None and due < issue:
        raise ValidationError("due_date cannot be before issue_date")


def parse_tax_options(payload: dict) -> tuple[bool | None, int | None]:
    """
    Read optional per-document tax overrides.

    Returns (tax_enabled, tax_rate_bps); None means "use the user's default".
    """
    tax_enabled = payload.get("tax_enabled")
    if tax_enabled is not None and not isinstance(tax_enabled, bool):
        raise ValidationError("tax_enabled must be a boolean")

    tax_rate_bps = payload.get("tax_rate_bps")
    if tax_rate_bps is not None:
        tax_rate_bps = _coerce_int("tax_rate_bps", tax_rate_bps)
        if not (0 <= tax_rate_bps <= MAX_TAX_RATE_BPS):
            raise ValidationError(f"tax_rate_bps must be between 0 and {MAX_TAX_RATE_BPS}")

    return tax_enabled, tax_rate_bps


def validate_line_items(raw_items: Any, *, require_product: bool = False) -> list[dict]:
    """
    Validate a Line-Item Set payload.

    Each entry: {"product_id"?: int|null, "description"?: str,
    "quantity": int > 0, "unit_price_cents"?: int >= 0}

    description and unit_price_cents may be omitted on product lines; the
    caller fills them from the product. Free-text lines need both.
    """
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("items must be a non-empty list")

    cleaned: list[dict] = []
    for index, raw in enumerate(raw_items, start=1):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")

        unknown = set(raw) - {"product_id", "description", "quantity", "unit_price_cents"}
        if unknown:
            raise ValidationError(f"items[{index}]: field not allowed: {', '.join(sorted(unknown))}")

        product_id = raw.get("product_id")
        if product_id in ("", None):
            product_id = None
        else:
            product_id = _coerce_int(f"items[{index}].product_id", product_id)

        if require_product and product_id is None:
            raise ValidationError(f"items[{index}]: product_id is required")

        if "quantity" not in raw or raw["quantity"] is None:
            raise ValidationError(f"items[{index}]: quantity is required")
        quantity = _coerce_int(f"items[{index}].quantity", raw["quantity"])
        if quantity <= 0:
            raise ValidationError(f"items[{index}]: quantity must be > 0")
        if quantity > MAX_LINE_QUANTITY:
            raise ValidationError(f"items[{index}]: quantity cannot exceed {MAX_LINE_QUANTITY}")

        unit_price_cents = raw.get("unit_price_cents")
        if unit_price_cents is not None:
            unit_price_cents = _coerce_int(f"items[{index}].unit_price_cents", unit_price_cents)
            if unit_price_cents < 0:
                raise ValidationError(f"items[{index}]: unit_price_cents must be >= 0")
            if unit_price_cents > MAX_AMOUNT_CENTS:
                raise ValidationError(f"items[{index}]: unit_price_cents cannot exceed {MAX_AMOUNT_CENTS}")

        description = raw.get("description")
        if description is not None:
            description = str(description).strip() or None
            if description and len(description) > 255:
                raise ValidationError(f"items[{index}]: description exceeds max length 255")

        if product_id is None:
            if not description:
                raise ValidationError(f"items[{index}]: description is required for free-text items")
            if unit_price_cents is None:
                raise ValidationError(f"items[{index}]: unit_price_cents is required for free-text items")

        cleaned.append({
            "product_id": product_id,
            "description": description,
            "quantity": quantity,
            "unit_price_cents": unit_price_cents,
        })

    return cleaned


def parse_date_param(key: str, value: str | None) -> date | None:
    """Optional YYYY-MM-DD query parameter."""
    if value is None or not value.strip():
        return None
    return _coerce_date(key, value)


def parse_document_header(payload: dict, *, allowed: set[str], email_key: str) -> dict:
    """
    Validate the header part of a document create payload.

    `items`, `tax_enabled` and `tax_rate_bps` are handled separately and
    ignored here. Dates are coerced; text is stripped; blank optional text
    becomes None.
    """
    if not isinstance(payload, dict):
        raise ValidationError("JSON object required")

    header: dict = {}
    for key, raw in payload.items():
        if key in ("items", "tax_enabled", "tax_rate_bps"):
            continue
        if key not in allowed:
            raise ValidationError(f"Field not allowed: {key}")
        if raw is None:
            header[key] = None
            continue
        if key.endswith("_date"):
            header[key] = _coerce_date(key, raw)
        elif key == "client_id":
            header[key] = _coerce_int(key, raw)
        else:
            if isinstance(raw, (dict, list)):
                raise ValidationError(f"{key} must be a string")
            text = str(raw).strip()
            if len(text) > 255 and key != "notes":
                raise ValidationError(f"{key} exceeds max length 255")
            header[key] = text or None

    enforce_rules_document_header(header, email_key=email_key)
    return header


def parse_document_filters(args, *, statuses: set[str]) -> dict:
    """Query-string filters shared by the document lists."""
    status = args.get("status") or None
    if status is not None and status not in statuses:
        raise ValidationError(f"status must be one of: {', '.join(sorted(statuses))}")

    client_id = args.get("client_id")
    client_id = _coerce_int("client_id", client_id) if client_id else None

    date_from = parse_date_param("date_from", args.get("date_from"))
    date_to = parse_date_param("date_to", args.get("date_to"))
    if date_from and date_to and date_to < date_from:
        raise ValidationError("date_to cannot be before date_from")

    return {
        "status": status,
        "client_id": client_id,
        "date_from": date_from,
        "date_to": date_to,
    }
