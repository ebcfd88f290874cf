# backend/stockbook/services/products_service.py
"""
Products Service

OWNERSHIP: All product operations are scoped to the signed-in user.
- list_products only returns the caller's products
- update_product and delete_product treat foreign ids as missing

QUANTITY: A direct edit of `quantity` goes through stock_service as a
MANUAL_EDIT delta, so the product's movement history stays complete.
"""
from __future__ import annotations

from ..extensions import db
from ..models import Product, StockMovement, InvoiceItem, BillItem, PurchaseOrderItem
from ..validation import ConflictError
from .change_service import record_change
from .concurrency import begin_write_transaction, run_with_retry
from .document_service import paginate
from .ownership_service import get_owned, owned_query, require_user_id
from .stock_service import REASON_MANUAL_EDIT, apply_deltas
from ..time_utils import utcnow

PRODUCT_MUTABLE_FIELDS = {
    "name",
    "sku",
    "category",
    "description",
    "purchase_price_cents",
    "sale_price_cents",
    "low_stock_threshold",
}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _ensure_unique_sku(user_id: int, sku: str | None, exclude_id: int | None = None) -> None:
    if not sku:
        return
    query = owned_query(Product, user_id).filter(Product.sku == sku)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first():
        raise ConflictError("SKU already exists.")


def list_products(
    *,
    user_id: int,
    search: str | None = None,
    category: str | None = None,
    low_stock: bool = False,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Owner-scoped product listing with optional pagination.

    Args:
        search: case-insensitive match on name or SKU
        category: exact category match
        low_stock: only products at or below their threshold
        page / per_page: see document_service.paginate
    """
    query = owned_query(Product, user_id)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(db.or_(Product.name.ilike(pattern), Product.sku.ilike(pattern)))
    if category:
        query = query.filter(Product.category == category)
    if low_stock:
        query = query.filter(Product.quantity <= Product.low_stock_threshold)

    query = query.order_by(Product.name.asc(), Product.id.asc())
    return paginate(query, page=page, per_page=per_page, serialize=lambda p: p.to_dict())


def low_stock_products(*, user_id: int) -> list[Product]:
    return (
        owned_query(Product, user_id)
        .filter(Product.quantity <= Product.low_stock_threshold)
        .order_by(Product.quantity.asc(), Product.name.asc())
        .all()
    )


def get_product(*, user_id: int, product_id: int) -> Product | None:
    return get_owned(Product, product_id, user_id)


def create_product(*, user_id: int, patch: dict) -> dict:
    """
    Create product using a validated patch dict.

    An opening quantity is recorded as a MANUAL_EDIT movement.

    Raises:
        ConflictError: If SKU already exists for this owner
    """
    require_user_id(user_id)
    _ensure_unique_sku(user_id, patch.get("sku"))

    p = Product(owner_user_id=user_id, quantity=patch.get("quantity") or 0)
    apply_product_patch(p, patch)

    db.session.add(p)
    db.session.flush()  # ensure p.id exists before the movement row

    if p.quantity:
        db.session.add(StockMovement(
            owner_user_id=user_id,
            product_id=p.id,
            quantity_delta=p.quantity,
            quantity_after=p.quantity,
            reason=REASON_MANUAL_EDIT,
            occurred_at=utcnow(),
        ))

    record_change(user_id=user_id, relation="products", event="INSERT", row_id=p.id)
    db.session.commit()
    return p.to_dict()


def update_product(*, user_id: int, product_id: int, patch: dict) -> dict | None:
    """
    Update product fields; a new `quantity` is applied as a delta.

    Returns None if the product does not exist for this owner.

    Raises:
        ConflictError: If the new SKU is taken
    """
    require_user_id(user_id)

    def _op() -> dict | None:
        begin_write_transaction()
        p = get_owned(Product, product_id, user_id)
        if p is None:
            return None

        if "sku" in patch:
            _ensure_unique_sku(user_id, patch["sku"], exclude_id=p.id)

        apply_product_patch(p, patch)
        db.session.flush()

        target = patch.get("quantity")
        if target is not None and target != p.quantity:
            apply_deltas(
                user_id=user_id,
                deltas={p.id: target - p.quantity},
                reason=REASON_MANUAL_EDIT,
                document_type="PRODUCT",
                document_id=p.id,
            )
        else:
            record_change(user_id=user_id, relation="products", event="UPDATE", row_id=p.id)

        db.session.commit()
        return p.to_dict()

    return run_with_retry(_op)


def delete_product(*, user_id: int, product_id: int) -> bool:
    """
    Hard-delete a product.

    Document lines that referenced it become free-text lines (product_id
    cleared, description and prices kept). Its movement history goes with it.
    """
    require_user_id(user_id)

    def _op() -> bool:
        begin_write_transaction()
        p = get_owned(Product, product_id, user_id)
        if p is None:
            return False

        for item_model in (InvoiceItem, BillItem, PurchaseOrderItem):
            db.session.query(item_model).filter(item_model.product_id == p.id).update(
                {item_model.product_id: None}, synchronize_session="fetch"
            )
        db.session.query(StockMovement).filter(StockMovement.product_id == p.id).delete(
            synchronize_session="fetch"
        )

        record_change(user_id=user_id, relation="products", event="DELETE", row_id=p.id)
        db.session.delete(p)
        db.session.commit()
        return True

    return run_with_retry(_op)
