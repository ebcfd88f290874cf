# Overview: Service-layer operations for reporting; profit analytics and dashboard figures.

from __future__ import annotations

from datetime import date

from sqlalchemy import case, func

from ..extensions import db
from ..models import Invoice, InvoiceItem, Product
from ..time_utils import today
from .ownership_service import require_user_id

TOP_PRODUCTS_LIMIT = 10
DASHBOARD_MONTHS = 6
DASHBOARD_TOP_PRODUCTS = 5
DASHBOARD_UPCOMING_PAYMENTS = 5


class ReportError(Exception):
    """Raised when report generation fails."""
    pass


def _margin_percent(revenue_cents: int, profit_cents: int) -> float:
    if revenue_cents <= 0:
        return 0.0
    return round(profit_cents * 100 / revenue_cents, 2)


def _month_start(d: date, months_back: int) -> date:
    month_index = d.year * 12 + (d.month - 1) - months_back
    return date(month_index // 12, month_index % 12 + 1, 1)


def _month_end(d: date) -> date:
    next_month = _month_start(d, -1)
    return date.fromordinal(next_month.toordinal() - 1)


def default_profit_range(reference: date | None = None) -> tuple[date, date]:
    """First day of the month five months back through the end of this month."""
    reference = reference or today()
    return _month_start(reference, 5), _month_end(reference)


def profit_report(*, user_id: int, start: date | None = None, end: date | None = None) -> dict:
    """
    Profit over invoice lines of non-cancelled invoices issued in [start, end].

    revenue = sum(line amount)
    cost    = sum(current product purchase price * quantity)
    Free-text lines, and lines whose product was deleted, count as revenue
    with zero cost.
    """
    require_user_id(user_id)
    if start is None or end is None:
        default_start, default_end = default_profit_range()
        start = start or default_start
        end = end or default_end
    if end < start:
        raise ReportError("end must not be before start")

    rows = (
        db.session.query(
            InvoiceItem.product_id,
            InvoiceItem.quantity,
            InvoiceItem.amount_cents,
            Invoice.issue_date,
            Product.name,
            Product.purchase_price_cents,
        )
        .join(Invoice, InvoiceItem.invoice_id == Invoice.id)
        .outerjoin(Product, InvoiceItem.product_id == Product.id)
        .filter(
            Invoice.owner_user_id == user_id,
            Invoice.status != "cancelled",
            Invoice.issue_date >= start,
            Invoice.issue_date <= end,
        )
        .all()
    )

    total_revenue = 0
    total_cost = 0
    by_product: dict[int | None, dict] = {}
    by_month: dict[str, dict] = {}

    for product_id, quantity, amount, issue_date, name, purchase_price in rows:
        cost = (purchase_price or 0) * quantity
        total_revenue += amount
        total_cost += cost

        entry = by_product.setdefault(product_id, {
            "product_id": product_id,
            "name": name or "Unknown",
            "quantity": 0,
            "revenue_cents": 0,
            "cost_cents": 0,
        })
        entry["quantity"] += quantity
        entry["revenue_cents"] += amount
        entry["cost_cents"] += cost

        month = issue_date.strftime("%Y-%m")
        bucket = by_month.setdefault(month, {"month": month, "revenue_cents": 0, "cost_cents": 0})
        bucket["revenue_cents"] += amount
        bucket["cost_cents"] += cost

    products = []
    for entry in by_product.values():
        profit = entry["revenue_cents"] - entry["cost_cents"]
        products.append({
            **entry,
            "profit_cents": profit,
            "margin_percent": _margin_percent(entry["revenue_cents"], profit),
        })
    products.sort(key=lambda p: (-p["profit_cents"], p["name"]))

    monthly = []
    for month in sorted(by_month):
        bucket = by_month[month]
        monthly.append({**bucket, "profit_cents": bucket["revenue_cents"] - bucket["cost_cents"]})

    total_profit = total_revenue - total_cost

    return {
        "start": start.isoformat(),
        "end": end.isoformat(),
        "revenue_cents": total_revenue,
        "cost_cents": total_cost,
        "profit_cents": total_profit,
        "margin_percent": _margin_percent(total_revenue, total_profit),
        "top_products": products[:TOP_PRODUCTS_LIMIT],
        "monthly": monthly,
        "inventory_profit_potential_cents": inventory_profit_potential(user_id=user_id),
    }


def inventory_profit_potential(*, user_id: int) -> int:
    """sum((sale price - purchase price) * quantity) over current stock."""
    value = (
        db.session.query(
            func.coalesce(
                func.sum((Product.sale_price_cents - Product.purchase_price_cents) * Product.quantity),
                0,
            )
        )
        .filter(Product.owner_user_id == user_id)
        .scalar()
    )
    return int(value or 0)


def _revenue_by_month(user_id: int, months: int) -> list[dict]:
    """Invoice totals per issue month, the latest `months` months that have invoices."""
    rows = (
        db.session.query(Invoice.issue_date, Invoice.total_cents)
        .filter(Invoice.owner_user_id == user_id, Invoice.status != "cancelled")
        .all()
    )
    by_month: dict[str, int] = {}
    for issue_date, total in rows:
        month = issue_date.strftime("%Y-%m")
        by_month[month] = by_month.get(month, 0) + total
    return [{"month": m, "revenue_cents": by_month[m]} for m in sorted(by_month)[-months:]]


def _top_selling_products(user_id: int, limit: int) -> list[dict]:
    """Invoice line amounts per product name; free-text and orphaned lines are "Unknown"."""
    rows = (
        db.session.query(Product.name, func.sum(InvoiceItem.amount_cents))
        .select_from(InvoiceItem)
        .join(Invoice, InvoiceItem.invoice_id == Invoice.id)
        .outerjoin(Product, InvoiceItem.product_id == Product.id)
        .filter(Invoice.owner_user_id == user_id, Invoice.status != "cancelled")
        .group_by(Product.name)
        .all()
    )
    totals: dict[str, int] = {}
    for name, amount in rows:
        key = name or "Unknown"
        totals[key] = totals.get(key, 0) + int(amount or 0)
    ranked = sorted(totals.items(), key=lambda kv: (-kv[1], kv[0]))
    return [{"name": name, "revenue_cents": amount} for name, amount in ranked[:limit]]


def _upcoming_payments(user_id: int, limit: int) -> list[dict]:
    """Unpaid, uncancelled invoices, earliest due date first."""
    invoices = (
        db.session.query(Invoice)
        .filter(
            Invoice.owner_user_id == user_id,
            Invoice.status.notin_(("paid", "cancelled")),
        )
        .order_by(Invoice.due_date.is_(None), Invoice.due_date.asc(), Invoice.id.asc())
        .limit(limit)
        .all()
    )
    return [inv.to_dict() for inv in invoices]


def dashboard_stats(*, user_id: int) -> dict:
    """
    Headline figures:
    - product_count / low_stock_count
    - invoice_count: every invoice, cancelled included
    - pending_invoice_count: neither paid nor cancelled
    - revenue_cents: sum of totals of non-cancelled invoices
    - stock_value_cents: sum(quantity * sale price)

    Plus the last six months of revenue, the five best-selling products and
    the five unpaid invoices due soonest.
    """
    require_user_id(user_id)

    product_count, low_stock_count, stock_value = (
        db.session.query(
            func.count(Product.id),
            func.coalesce(
                func.sum(case((Product.quantity <= Product.low_stock_threshold, 1), else_=0)),
                0,
            ),
            func.coalesce(func.sum(Product.quantity * Product.sale_price_cents), 0),
        )
        .filter(Product.owner_user_id == user_id)
        .one()
    )

    pending_count, revenue = (
        db.session.query(
            func.coalesce(
                func.sum(case((Invoice.status != "paid", 1), else_=0)),
                0,
            ),
            func.coalesce(func.sum(Invoice.total_cents), 0),
        )
        .filter(Invoice.owner_user_id == user_id, Invoice.status != "cancelled")
        .one()
    )

    invoice_count = db.session.query(func.count(Invoice.id)).filter(Invoice.owner_user_id == user_id).scalar()

    return {
        "product_count": int(product_count or 0),
        "low_stock_count": int(low_stock_count or 0),
        "invoice_count": int(invoice_count or 0),
        "pending_invoice_count": int(pending_count or 0),
        "revenue_cents": int(revenue or 0),
        "stock_value_cents": int(stock_value or 0),
        "revenue_by_month": _revenue_by_month(user_id, DASHBOARD_MONTHS),
        "top_products": _top_selling_products(user_id, DASHBOARD_TOP_PRODUCTS),
        "upcoming_payments": _upcoming_payments(user_id, DASHBOARD_UPCOMING_PAYMENTS),
    }
