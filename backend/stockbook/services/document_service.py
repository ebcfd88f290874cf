# Overview: Shared document plumbing; numbering, status machines, errors and list filters.

from __future__ import annotations

from datetime import date

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence

DOCUMENT_INVOICE = "INVOICE"
DOCUMENT_BILL = "BILL"
DOCUMENT_PURCHASE_ORDER = "PURCHASE_ORDER"

# status -> statuses reachable from it
STATUS_TRANSITIONS: dict[str, dict[str, set[str]]] = {
    DOCUMENT_INVOICE: {
        "draft": {"sent", "cancelled"},
        "sent": {"paid", "overdue", "cancelled"},
        "overdue": {"paid", "cancelled"},
        "paid": set(),
        "cancelled": set(),
    },
    DOCUMENT_BILL: {
        "active": {"cancelled"},
        "cancelled": set(),
    },
    DOCUMENT_PURCHASE_ORDER: {
        "pending": {"received", "cancelled"},
        "received": set(),
        "cancelled": set(),
    },
}


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


class DocumentNotFoundError(Exception):
    """Raised when a document does not exist for the caller."""
    pass


class DocumentValidationError(Exception):
    """Raised when document data fails validation after the payload checks."""
    pass


class DocumentStateError(Exception):
    """Raised when an operation is invalid for the current document status."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def next_document_number(
    *,
    user_id: int,
    document_type: str,
    prefix: str,
    pad: int = 4,
) -> str:
    """
    Atomically allocate the next document number for an owner/type.

    The increment is a single UPDATE, so two requests can never read the
    same next_number. Runs inside the caller's transaction.
    """
    if not user_id:
        raise DocumentSequenceError("user_id is required")
    if not document_type:
        raise DocumentSequenceError("document_type is required")

    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.owner_user_id == user_id,
            DocumentSequence.document_type == document_type,
        )
        .values(next_number=DocumentSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )

    def _read_allocated() -> int:
        current = (
            db.session.query(DocumentSequence.next_number)
            .filter_by(owner_user_id=user_id, document_type=document_type)
            .scalar()
        )
        return current - 1

    result = db.session.execute(stmt)
    if result.rowcount:
        next_num = _read_allocated()
    else:
        try:
            with db.session.begin_nested():
                db.session.add(
                    DocumentSequence(owner_user_id=user_id, document_type=document_type, next_number=2)
                )
            next_num = 1
        except IntegrityError:
            # Another request created the row first
            result = db.session.execute(stmt)
            if not result.rowcount:
                raise
            next_num = _read_allocated()

    return f"{prefix}{next_num:0{pad}d}"


def check_transition(document_type: str, current: str, target: str) -> bool:
    """
    Validate a status change.

    Returns False for a same-status request (no-op), True for an allowed
    transition. Raises DocumentStateError otherwise.
    """
    machine = STATUS_TRANSITIONS[document_type]
    if target not in machine:
        raise DocumentStateError(
            f"Unknown status '{target}'. Expected one of: {', '.join(sorted(machine))}",
            details={"status": target},
        )
    if current == target:
        return False
    if target not in machine.get(current, set()):
        raise DocumentStateError(
            f"Cannot change status from {current} to {target}",
            details={"from": current, "to": target},
        )
    return True


def apply_list_filters(
    query,
    model,
    *,
    date_column,
    status: str | None = None,
    client_id: int | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
):
    """Status / client / date-range filters shared by the document lists."""
    if status:
        query = query.filter(model.status == status)
    if client_id is not None:
        query = query.filter(model.client_id == client_id)
    if date_from is not None:
        query = query.filter(date_column >= date_from)
    if date_to is not None:
        query = query.filter(date_column <= date_to)
    return query


def paginate(query, *, page: int | None, per_page: int | None, serialize) -> dict:
    """
    Optional pagination.

    page=None returns every row. Otherwise per_page defaults to 20, max 100.
    """
    if page is None:
        rows = query.all()
        return {
            "items": [serialize(r) for r in rows],
            "count": len(rows),
        }

    per_page = min(per_page or 20, 100)  # Default 20, max 100
    per_page = max(per_page, 1)
    page = max(page, 1)  # Ensure page >= 1

    total = query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    rows = query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [serialize(r) for r in rows],
        "count": len(rows),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }
