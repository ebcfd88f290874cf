# Overview: Change feed; records row-change events and notifies in-process subscribers after commit.

"""
Change Feed Service

WHY: Clients keep their lists fresh by reacting to row changes instead of
polling every table. Each mutation records a ChangeEvent in the same
transaction as the change itself, so the feed never reports a change that
was rolled back.

DELIVERY:
- Polling: list_changes(since=cursor) returns events after the cursor.
- In-process: subscribe(relation, event, handler). Handlers run after the
  transaction commits, sequentially, in registration order.

Subscriber failure must NOT:
- Break dispatch to other subscribers
- Roll back or alter the persisted change
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from threading import Lock
from typing import Callable

from sqlalchemy import event as sa_event
from sqlalchemy.orm import Session

from ..extensions import db
from ..models import ChangeEvent
from ..time_utils import utcnow, to_utc_z
from .ownership_service import require_user_id

logger = logging.getLogger(__name__)

CHANGE_EVENTS = ("INSERT", "UPDATE", "DELETE")
WILDCARD = "*"

# Relations clients may watch
WATCHED_RELATIONS = (
    "products",
    "invoices",
    "bills",
    "purchase_orders",
    "clients",
    "transactions",
    "user_settings",
    "company_profiles",
)

_PENDING_KEY = "stockbook_pending_changes"
_READY_KEY = "stockbook_committed_changes"


class ChangeFeedError(ValueError):
    """Raised for invalid change feed queries or subscriptions."""
    pass


@dataclass(frozen=True)
class ChangeNotification:
    """Immutable snapshot of a committed ChangeEvent handed to subscribers."""
    id: int
    owner_user_id: int
    relation: str
    event: str
    row_id: int
    occurred_at: str | None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "relation": self.relation,
            "event": self.event,
            "row_id": self.row_id,
            "occurred_at": self.occurred_at,
        }


class ChangeSubscriberRegistry:
    """
    In-memory registry of change subscribers.

    Keys are (relation, event); either may be "*" to match everything.
    """

    def __init__(self):
        self._subscribers: dict[tuple[str, str], list[Callable]] = {}
        self._lock = Lock()

    def subscribe(self, relation: str, event: str, handler: Callable) -> Callable[[], None]:
        if relation != WILDCARD and relation not in WATCHED_RELATIONS:
            raise ChangeFeedError(f"Unknown relation: {relation}")
        if event != WILDCARD and event not in CHANGE_EVENTS:
            raise ChangeFeedError(f"event must be one of {', '.join(CHANGE_EVENTS)} or *")
        if not callable(handler):
            raise ChangeFeedError("handler must be callable")

        key = (relation, event)
        with self._lock:
            handlers = self._subscribers.setdefault(key, [])
            if handler in handlers:
                raise ChangeFeedError("handler already subscribed")
            handlers.append(handler)

        def _unsubscribe() -> None:
            self.unsubscribe(relation, event, handler)

        return _unsubscribe

    def unsubscribe(self, relation: str, event: str, handler: Callable) -> bool:
        with self._lock:
            handlers = self._subscribers.get((relation, event), [])
            if handler in handlers:
                handlers.remove(handler)
                return True
        return False

    def get_subscribers(self, relation: str, event: str) -> list[Callable]:
        with self._lock:
            matched: list[Callable] = []
            for key in ((relation, event), (relation, WILDCARD), (WILDCARD, event), (WILDCARD, WILDCARD)):
                for handler in self._subscribers.get(key, []):
                    if handler not in matched:
                        matched.append(handler)
            return matched

    def clear(self) -> None:
        with self._lock:
            self._subscribers.clear()


registry = ChangeSubscriberRegistry()


def subscribe(relation: str, event: str, handler: Callable) -> Callable[[], None]:
    """Register handler(ChangeNotification); returns an unsubscribe callable."""
    return registry.subscribe(relation, event, handler)


def record_change(*, user_id: int, relation: str, event: str, row_id: int) -> ChangeEvent:
    """
    Add a ChangeEvent to the current transaction.

    Does not commit. Subscribers hear about it only if the caller commits.
    """
    if relation not in WATCHED_RELATIONS:
        raise ChangeFeedError(f"Unknown relation: {relation}")
    if event not in CHANGE_EVENTS:
        raise ChangeFeedError(f"event must be one of {', '.join(CHANGE_EVENTS)}")

    change = ChangeEvent(
        owner_user_id=user_id,
        relation=relation,
        event=event,
        row_id=row_id,
        occurred_at=utcnow(),
    )
    db.session.add(change)
    db.session.info.setdefault(_PENDING_KEY, []).append(change)
    return change


def dispatch(notification: ChangeNotification) -> dict:
    """
    Deliver one committed change to every matching subscriber.

    Never raises. Handler failures are logged and counted.
    """
    result = {"notified": 0, "failed": 0}
    for handler in registry.get_subscribers(notification.relation, notification.event):
        handler_name = getattr(handler, "__qualname__", repr(handler))
        try:
            handler(notification)
            result["notified"] += 1
        except Exception:
            result["failed"] += 1
            logger.error(
                "Change subscriber %s failed for %s %s row=%s",
                handler_name,
                notification.relation,
                notification.event,
                notification.row_id,
                exc_info=True,
            )
    return result


@sa_event.listens_for(Session, "before_commit")
def _snapshot_pending_changes(session):
    # Savepoint releases also fire commit events; wait for the outer commit
    if session.in_nested_transaction():
        return
    pending = session.info.pop(_PENDING_KEY, None)
    if not pending:
        return
    session.flush()
    session.info[_READY_KEY] = [
        ChangeNotification(
            id=change.id,
            owner_user_id=change.owner_user_id,
            relation=change.relation,
            event=change.event,
            row_id=change.row_id,
            occurred_at=to_utc_z(change.occurred_at),
        )
        for change in pending
    ]


@sa_event.listens_for(Session, "after_commit")
def _dispatch_committed_changes(session):
    if session.in_nested_transaction():
        return
    ready = session.info.pop(_READY_KEY, None)
    if not ready:
        return
    for notification in ready:
        dispatch(notification)


@sa_event.listens_for(Session, "after_rollback")
def _discard_pending_changes(session):
    session.info.pop(_PENDING_KEY, None)
    session.info.pop(_READY_KEY, None)


def list_changes(
    *,
    user_id: int,
    since: int | None = None,
    relation: str | None = None,
    event: str | None = None,
    limit: int = 100,
) -> dict:
    """
    Polling feed: the caller's change events with id > since, oldest first.

    Returns {"items": [...], "next_cursor": int}. Pass next_cursor back as
    `since` to continue.
    """
    require_user_id(user_id)
    since = since or 0
    limit = min(max(limit or 100, 1), 500)

    query = db.session.query(ChangeEvent).filter(
        ChangeEvent.owner_user_id == user_id,
        ChangeEvent.id > since,
    )
    if relation and relation != WILDCARD:
        if relation not in WATCHED_RELATIONS:
            raise ChangeFeedError(f"Unknown relation: {relation}")
        query = query.filter(ChangeEvent.relation == relation)
    if event and event != WILDCARD:
        if event not in CHANGE_EVENTS:
            raise ChangeFeedError(f"event must be one of {', '.join(CHANGE_EVENTS)} or *")
        query = query.filter(ChangeEvent.event == event)

    changes = query.order_by(ChangeEvent.id.asc()).limit(limit).all()
    next_cursor = changes[-1].id if changes else since

    return {
        "items": [c.to_dict() for c in changes],
        "count": len(changes),
        "next_cursor": next_cursor,
    }
