# Overview: Global search across the owner's products, clients, invoices and bills.

"""
Search Service

One case-insensitive substring match per entity type, capped per type so a
short term cannot pull back a whole table:
- products: name, SKU or category
- clients: name, email or phone
- invoices / bills: document number or customer name
"""

from __future__ import annotations

import logging

from ..extensions import db
from ..models import Bill, Client, Invoice, Product
from .ownership_service import owned_query

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 10


def _matches(model, user_id: int, columns, pattern: str):
    return owned_query(model, user_id).filter(db.or_(*(c.ilike(pattern) for c in columns)))


def search(*, user_id: int, term: str | None, limit: int = SEARCH_LIMIT) -> dict:
    """
    Returns {"query", "products", "clients", "invoices", "bills"}.
    A blank term matches nothing.
    """
    query = (term or "").strip()
    results = {"query": query, "products": [], "clients": [], "invoices": [], "bills": []}
    if not query:
        return results

    pattern = f"%{query}%"

    products = (
        _matches(Product, user_id, (Product.name, Product.sku, Product.category), pattern)
        .order_by(Product.name.asc(), Product.id.asc())
        .limit(limit)
        .all()
    )
    clients = (
        _matches(Client, user_id, (Client.name, Client.email, Client.phone), pattern)
        .order_by(Client.name.asc(), Client.id.asc())
        .limit(limit)
        .all()
    )
    invoices = (
        _matches(Invoice, user_id, (Invoice.document_number, Invoice.customer_name), pattern)
        .order_by(Invoice.issue_date.desc(), Invoice.id.desc())
        .limit(limit)
        .all()
    )
    bills = (
        _matches(Bill, user_id, (Bill.document_number, Bill.customer_name), pattern)
        .order_by(Bill.bill_date.desc(), Bill.id.desc())
        .limit(limit)
        .all()
    )

    results["products"] = [p.to_dict() for p in products]
    results["clients"] = [c.to_dict() for c in clients]
    results["invoices"] = [i.to_dict() for i in invoices]
    results["bills"] = [b.to_dict() for b in bills]

    logger.debug(
        "Search %r for user %s: %d products, %d clients, %d invoices, %d bills",
        query, user_id, len(products), len(clients), len(invoices), len(bills),
    )
    return results
