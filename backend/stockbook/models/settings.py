from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class UserSettings(db.Model):
    """
    Per-user business preferences.

    Tax defaults feed the totals calculator when a document request does not
    carry its own tax_enabled / tax_rate_bps. Prefixes feed document numbers.
    """
    __tablename__ = "user_settings"
    __table_args__ = (
        db.CheckConstraint(
            "default_tax_rate_bps >= 0 AND default_tax_rate_bps <= 10000",
            name="ck_settings_tax_rate_range",
        ),
        db.CheckConstraint("default_payment_terms >= 0", name="ck_settings_payment_terms"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, unique=True)

    currency_code = db.Column(db.String(8), nullable=False, default="INR")
    currency_symbol = db.Column(db.String(8), nullable=False, default="₹")

    # Basis points (e.g., 1800 = 18%)
    default_tax_rate_bps = db.Column(db.Integer, nullable=False, default=1800)
    tax_name = db.Column(db.String(32), nullable=False, default="GST")
    tax_enabled = db.Column(db.Boolean, nullable=False, default=True)

    invoice_prefix = db.Column(db.String(16), nullable=False, default="INV-")
    bill_prefix = db.Column(db.String(16), nullable=False, default="BILL-")
    purchase_order_prefix = db.Column(db.String(16), nullable=False, default="PO-")

    # Days between issue date and the default due date
    default_payment_terms = db.Column(db.Integer, nullable=False, default=30)

    low_stock_alerts = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "currency_code": self.currency_code,
            "currency_symbol": self.currency_symbol,
            "default_tax_rate_bps": self.default_tax_rate_bps,
            "tax_name": self.tax_name,
            "tax_enabled": self.tax_enabled,
            "invoice_prefix": self.invoice_prefix,
            "bill_prefix": self.bill_prefix,
            "purchase_order_prefix": self.purchase_order_prefix,
            "default_payment_terms": self.default_payment_terms,
            "low_stock_alerts": self.low_stock_alerts,
            "updated_at": to_utc_z(self.updated_at),
        }


class CompanyProfile(db.Model):
    """
    Business details printed on the owner's invoices, bills and orders.

    One row per owner, created on first read. company_name starts as the
    name given at registration.
    """
    __tablename__ = "company_profiles"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    owner_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, unique=True)

    company_name = db.Column(db.String(255), nullable=False, default="")
    address = db.Column(db.Text, nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    gst_number = db.Column(db.String(32), nullable=True)
    website = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "company_name": self.company_name,
            "address": self.address,
            "phone": self.phone,
            "email": self.email,
            "gst_number": self.gst_number,
            "website": self.website,
            "updated_at": to_utc_z(self.updated_at),
        }
