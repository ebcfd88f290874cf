# Overview: Pytest coverage for document numbering and status machines.

import pytest

from stockbook.extensions import db
from stockbook.models import DocumentSequence
from stockbook.services.document_service import (
    DOCUMENT_BILL,
    DOCUMENT_INVOICE,
    DOCUMENT_PURCHASE_ORDER,
    DocumentSequenceError,
    DocumentStateError,
    check_transition,
    next_document_number,
)


class TestNextDocumentNumber:

    def test_sequence_starts_at_one_and_pads(self, owner):
        first = next_document_number(user_id=owner.id, document_type=DOCUMENT_INVOICE, prefix="INV-")
        second = next_document_number(user_id=owner.id, document_type=DOCUMENT_INVOICE, prefix="INV-")
        db.session.commit()
        assert (first, second) == ("INV-0001", "INV-0002")

    def test_sequences_are_per_type(self, owner):
        next_document_number(user_id=owner.id, document_type=DOCUMENT_INVOICE, prefix="INV-")
        bill = next_document_number(user_id=owner.id, document_type=DOCUMENT_BILL, prefix="BILL-")
        db.session.commit()
        assert bill == "BILL-0001"
        assert db.session.query(DocumentSequence).filter_by(owner_user_id=owner.id).count() == 2

    def test_width_grows_past_padding(self, owner):
        db.session.add(DocumentSequence(
            owner_user_id=owner.id, document_type=DOCUMENT_PURCHASE_ORDER, next_number=12345,
        ))
        db.session.commit()
        number = next_document_number(user_id=owner.id, document_type=DOCUMENT_PURCHASE_ORDER, prefix="PO-")
        assert number == "PO-12345"

    def test_requires_owner(self):
        with pytest.raises(DocumentSequenceError):
            next_document_number(user_id=None, document_type=DOCUMENT_INVOICE, prefix="INV-")


class TestCheckTransition:

    @pytest.mark.parametrize("current,target", [
        ("draft", "sent"),
        ("draft", "cancelled"),
        ("sent", "paid"),
        ("sent", "overdue"),
        ("overdue", "paid"),
        ("overdue", "cancelled"),
    ])
    def test_allowed_invoice_transitions(self, current, target):
        assert check_transition(DOCUMENT_INVOICE, current, target) is True

    @pytest.mark.parametrize("current,target", [
        ("paid", "cancelled"),
        ("cancelled", "draft"),
        ("draft", "paid"),
        ("sent", "draft"),
    ])
    def test_refused_invoice_transitions(self, current, target):
        with pytest.raises(DocumentStateError):
            check_transition(DOCUMENT_INVOICE, current, target)

    def test_same_status_is_a_no_op(self):
        assert check_transition(DOCUMENT_INVOICE, "cancelled", "cancelled") is False
        assert check_transition(DOCUMENT_PURCHASE_ORDER, "received", "received") is False

    def test_unknown_status(self):
        with pytest.raises(DocumentStateError) as exc_info:
            check_transition(DOCUMENT_BILL, "active", "paid")
        assert exc_info.value.details == {"status": "paid"}

    def test_purchase_order_machine(self):
        assert check_transition(DOCUMENT_PURCHASE_ORDER, "pending", "received") is True
        with pytest.raises(DocumentStateError):
            check_transition(DOCUMENT_PURCHASE_ORDER, "cancelled", "received")
