# Overview: Per-user business settings; tax defaults, document prefixes and payment terms.

"""
User Settings Service

WHY: Tax defaults and document prefixes vary per business. Documents read
them at creation time; changing a setting never rewrites existing
documents.

Settings rows are created lazily with defaults the first time they are
read.
"""

from __future__ import annotations

from ..extensions import db
from ..models import CompanyProfile, User, UserSettings
from .change_service import record_change
from .ownership_service import require_user_id

SETTINGS_MUTABLE_FIELDS = {
    "currency_code",
    "currency_symbol",
    "default_tax_rate_bps",
    "tax_name",
    "tax_enabled",
    "invoice_prefix",
    "bill_prefix",
    "purchase_order_prefix",
    "default_payment_terms",
    "low_stock_alerts",
}

COMPANY_PROFILE_MUTABLE_FIELDS = {
    "company_name",
    "address",
    "phone",
    "email",
    "gst_number",
    "website",
}


def get_or_create_settings(user_id: int) -> UserSettings:
    """Return the owner's settings row, adding a default one if missing (no commit)."""
    require_user_id(user_id)
    settings = db.session.query(UserSettings).filter_by(owner_user_id=user_id).first()
    if settings is None:
        settings = UserSettings(
            owner_user_id=user_id,
            currency_code="INR",
            currency_symbol="₹",
            default_tax_rate_bps=1800,
            tax_name="GST",
            tax_enabled=True,
            invoice_prefix="INV-",
            bill_prefix="BILL-",
            purchase_order_prefix="PO-",
            default_payment_terms=30,
            low_stock_alerts=True,
        )
        db.session.add(settings)
        db.session.flush()
    return settings


def get_settings(user_id: int) -> dict:
    settings = get_or_create_settings(user_id)
    db.session.commit()
    return settings.to_dict()


def update_settings(*, user_id: int, patch: dict) -> dict:
    settings = get_or_create_settings(user_id)
    for key, value in patch.items():
        if key in SETTINGS_MUTABLE_FIELDS:
            setattr(settings, key, value)
    db.session.flush()
    record_change(user_id=user_id, relation="user_settings", event="UPDATE", row_id=settings.id)
    db.session.commit()
    return settings.to_dict()


def resolve_tax(user_id: int, tax_enabled: bool | None, tax_rate_bps: int | None) -> tuple[bool, int]:
    """Per-request tax options, falling back to the owner's defaults."""
    settings = get_or_create_settings(user_id)
    enabled = settings.tax_enabled if tax_enabled is None else tax_enabled
    rate = settings.default_tax_rate_bps if tax_rate_bps is None else tax_rate_bps
    return enabled, rate


def get_or_create_company_profile(user_id: int) -> CompanyProfile:
    """Return the owner's company profile, adding one named after the account if missing (no commit)."""
    require_user_id(user_id)
    profile = db.session.query(CompanyProfile).filter_by(owner_user_id=user_id).first()
    if profile is None:
        user = db.session.get(User, user_id)
        profile = CompanyProfile(
            owner_user_id=user_id,
            company_name=(user.company_name if user else None) or "",
        )
        db.session.add(profile)
        db.session.flush()
    return profile


def get_company_profile(user_id: int) -> dict:
    profile = get_or_create_company_profile(user_id)
    db.session.commit()
    return profile.to_dict()


def update_company_profile(*, user_id: int, patch: dict) -> dict:
    profile = get_or_create_company_profile(user_id)
    for key, value in patch.items():
        if key in COMPANY_PROFILE_MUTABLE_FIELDS:
            setattr(profile, key, value)
    db.session.flush()
    record_change(user_id=user_id, relation="company_profiles", event="UPDATE", row_id=profile.id)
    db.session.commit()
    return profile.to_dict()
