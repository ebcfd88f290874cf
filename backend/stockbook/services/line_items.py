# Overview: Line-item resolution; fills product defaults and builds item rows for documents.

from __future__ import annotations

from ..extensions import db
from ..models import Product
from .document_service import DocumentValidationError
from .totals_service import line_amount_cents


def resolve_lines(*, user_id: int, items: list[dict], price_field: str) -> list[dict]:
    """
    Resolve validated line payloads against the owner's products.

    - product lines must reference an owned product
    - description defaults to the product name
    - unit_price_cents defaults to product.<price_field>
      (sale_price_cents on invoices, purchase_price_cents on bills/orders)

    Returns new dicts with amount_cents filled in.
    """
    product_ids = {item["product_id"] for item in items if item["product_id"] is not None}
    products: dict[int, Product] = {}
    if product_ids:
        rows = (
            db.session.query(Product)
            .filter(Product.owner_user_id == user_id, Product.id.in_(product_ids))
            .all()
        )
        products = {p.id: p for p in rows}

    missing = sorted(product_ids - set(products))
    if missing:
        raise DocumentValidationError(
            f"Product not found: {', '.join(str(pid) for pid in missing)}"
        )

    resolved = []
    for item in items:
        product = products.get(item["product_id"]) if item["product_id"] is not None else None
        description = item["description"]
        unit_price_cents = item["unit_price_cents"]
        if product is not None:
            if not description:
                description = product.name
            if unit_price_cents is None:
                unit_price_cents = getattr(product, price_field)

        resolved.append({
            "product_id": item["product_id"],
            "description": description,
            "quantity": item["quantity"],
            "unit_price_cents": unit_price_cents,
            "amount_cents": line_amount_cents(item["quantity"], unit_price_cents),
        })
    return resolved


def build_item_rows(item_model, lines: list[dict]) -> list:
    """Instantiate item rows; the caller attaches them to the document."""
    return [
        item_model(
            product_id=line["product_id"],
            description=line["description"],
            quantity=line["quantity"],
            unit_price_cents=line["unit_price_cents"],
            amount_cents=line["amount_cents"],
        )
        for line in lines
    ]
