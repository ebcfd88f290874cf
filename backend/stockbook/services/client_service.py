# Overview: Service-layer operations for clients; encapsulates business logic and database work.

from __future__ import annotations

from ..extensions import db
from ..models import Client
from .change_service import record_change
from .document_service import paginate
from .ownership_service import get_owned, owned_query

CLIENT_MUTABLE_FIELDS = {"name", "email", "phone", "address"}


class ClientNotFoundError(Exception):
    """Raised when a client does not exist for the caller."""
    pass


def get_client(*, user_id: int, client_id: int) -> Client:
    client = get_owned(Client, client_id, user_id)
    if client is None:
        raise ClientNotFoundError("Client not found")
    return client


def list_clients(
    *,
    user_id: int,
    search: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    query = owned_query(Client, user_id)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(db.or_(Client.name.ilike(pattern), Client.email.ilike(pattern)))
    query = query.order_by(Client.name.asc(), Client.id.asc())
    return paginate(query, page=page, per_page=per_page, serialize=lambda c: c.to_dict())


def create_client(*, user_id: int, patch: dict) -> dict:
    client = Client(owner_user_id=user_id)
    for key, value in patch.items():
        if key in CLIENT_MUTABLE_FIELDS:
            setattr(client, key, value)
    db.session.add(client)
    db.session.flush()
    record_change(user_id=user_id, relation="clients", event="INSERT", row_id=client.id)
    db.session.commit()
    return client.to_dict()


def update_client(*, user_id: int, client_id: int, patch: dict) -> dict | None:
    client = get_owned(Client, client_id, user_id)
    if client is None:
        return None
    for key, value in patch.items():
        if key in CLIENT_MUTABLE_FIELDS:
            setattr(client, key, value)
    record_change(user_id=user_id, relation="clients", event="UPDATE", row_id=client.id)
    db.session.commit()
    return client.to_dict()


def delete_client(*, user_id: int, client_id: int) -> bool:
    """
    Delete a client.

    Documents keep their copied counterparty name/email; their client_id is
    cleared explicitly so SQLite without FK enforcement behaves the same.
    """
    from ..models import Invoice, Bill, PurchaseOrder

    client = get_owned(Client, client_id, user_id)
    if client is None:
        return False

    for model in (Invoice, Bill, PurchaseOrder):
        db.session.query(model).filter(
            model.owner_user_id == user_id,
            model.client_id == client.id,
        ).update({model.client_id: None}, synchronize_session="fetch")

    record_change(user_id=user_id, relation="clients", event="DELETE", row_id=client.id)
    db.session.delete(client)
    db.session.commit()
    return True


def resolve_document_client(*, user_id: int, client_id: int | None) -> Client | None:
    """Client referenced by a new document; a foreign or missing id is a validation error."""
    from .document_service import DocumentValidationError

    if client_id is None:
        return None
    client = get_owned(Client, client_id, user_id)
    if client is None:
        raise DocumentValidationError("Client not found")
    return client
