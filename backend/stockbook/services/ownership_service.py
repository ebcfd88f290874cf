"""
Ownership Service: per-user row scoping helpers

WHY: Every business row belongs to exactly one user (owner_user_id).
Services never read or mutate a row without checking the owner, and a
foreign row is indistinguishable from a missing one.

SECURITY INVARIANTS:
1. Every authenticated request has g.current_user set
2. Services receive user_id explicitly and refuse to run without it
3. Lookups filter by id AND owner_user_id in the same query
"""

from __future__ import annotations

from ..extensions import db


class AuthenticationRequiredError(Exception):
    """Raised when a data operation is attempted without a signed-in user."""
    pass


def require_user_id(user_id: int | None) -> int:
    if not user_id:
        raise AuthenticationRequiredError("Authentication required")
    return user_id


def owned_query(model, user_id: int):
    """Query of `model` restricted to rows owned by user_id."""
    require_user_id(user_id)
    return db.session.query(model).filter(model.owner_user_id == user_id)


def get_owned(model, row_id: int, user_id: int):
    """Return the owned row or None (foreign rows are reported as missing)."""
    return owned_query(model, user_id).filter(model.id == row_id).first()
