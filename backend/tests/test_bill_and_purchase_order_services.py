# Overview: Pytest coverage for bills and purchase orders and their stock effects.

from datetime import date

import pytest

from stockbook.extensions import db
from stockbook.models import Bill, Product, PurchaseOrder, StockMovement
from stockbook.services import bill_service, purchase_order_service
from stockbook.services.document_service import (
    DocumentNotFoundError,
    DocumentStateError,
    DocumentValidationError,
)
from stockbook.services.stock_service import InsufficientStockError


def _line(product_id=None, quantity=1, unit_price_cents=None, description=None):
    return {
        "product_id": product_id,
        "description": description,
        "quantity": quantity,
        "unit_price_cents": unit_price_cents,
    }


def _quantity(product_id: int) -> int:
    return db.session.get(Product, product_id).quantity


class TestBills:

    def test_stock_enters_on_creation(self, owner, widget):
        bill = bill_service.create_bill(
            user_id=owner.id,
            header={"customer_name": "Supplier Co", "bill_date": date(2024, 2, 1)},
            items=[_line(widget.id, 10)],
        )
        assert _quantity(widget.id) == 60
        assert bill.status == "active"
        assert bill.document_number == "BILL-0001"
        # Bills price at the purchase price by default
        assert bill.items[0].unit_price_cents == 600
        assert bill.subtotal_cents == 6000

    def test_cancel_takes_stock_back_once(self, owner, widget):
        bill = bill_service.create_bill(
            user_id=owner.id, header={"customer_name": "S"}, items=[_line(widget.id, 10)],
        )
        bill_service.set_bill_status(user_id=owner.id, bill_id=bill.id, status="cancelled")
        assert _quantity(widget.id) == 50
        bill_service.set_bill_status(user_id=owner.id, bill_id=bill.id, status="cancelled")
        assert _quantity(widget.id) == 50

    def test_cancel_refused_when_stock_already_sold(self, owner, widget):
        bill = bill_service.create_bill(
            user_id=owner.id, header={"customer_name": "S"}, items=[_line(widget.id, 10)],
        )
        from stockbook.services.stock_service import apply_deltas

        apply_deltas(user_id=owner.id, deltas={widget.id: -55}, reason="MANUAL_EDIT")
        db.session.commit()

        with pytest.raises(InsufficientStockError):
            bill_service.set_bill_status(user_id=owner.id, bill_id=bill.id, status="cancelled")
        assert db.session.get(Bill, bill.id).status == "active"
        assert _quantity(widget.id) == 5

    def test_cancelled_bill_cannot_be_reactivated(self, owner, widget):
        bill = bill_service.create_bill(
            user_id=owner.id, header={"customer_name": "S"}, items=[_line(widget.id, 1)],
        )
        bill_service.set_bill_status(user_id=owner.id, bill_id=bill.id, status="cancelled")
        with pytest.raises(DocumentStateError):
            bill_service.set_bill_status(user_id=owner.id, bill_id=bill.id, status="active")

    def test_delete_active_bill_reverses_stock(self, owner, widget):
        bill = bill_service.create_bill(
            user_id=owner.id, header={"customer_name": "S"}, items=[_line(widget.id, 4)],
        )
        bill_service.delete_bill(user_id=owner.id, bill_id=bill.id)
        assert _quantity(widget.id) == 50
        assert db.session.query(Bill).count() == 0

    def test_delete_cancelled_bill_moves_nothing(self, owner, widget):
        bill = bill_service.create_bill(
            user_id=owner.id, header={"customer_name": "S"}, items=[_line(widget.id, 4)],
        )
        bill_service.set_bill_status(user_id=owner.id, bill_id=bill.id, status="cancelled")
        bill_service.delete_bill(user_id=owner.id, bill_id=bill.id)
        assert _quantity(widget.id) == 50

    def test_free_text_bill(self, owner, widget):
        bill_service.create_bill(
            user_id=owner.id,
            header={"customer_name": "Landlord"},
            items=[_line(None, 1, 150000, "Rent")],
            tax_enabled=False,
        )
        assert _quantity(widget.id) == 50
        assert db.session.query(StockMovement).count() == 0

    def test_foreign_bill_not_found(self, owner, other_owner, widget):
        bill = bill_service.create_bill(
            user_id=owner.id, header={"customer_name": "S"}, items=[_line(widget.id, 1)],
        )
        with pytest.raises(DocumentNotFoundError):
            bill_service.get_bill(user_id=other_owner.id, bill_id=bill.id)
        with pytest.raises(DocumentNotFoundError):
            bill_service.delete_bill(user_id=other_owner.id, bill_id=bill.id)


class TestPurchaseOrders:

    def _order(self, owner, *lines):
        return purchase_order_service.create_purchase_order(
            user_id=owner.id,
            header={"supplier_name": "Parts Inc", "order_date": date(2024, 3, 1)},
            items=list(lines),
        )

    def test_creation_leaves_stock_alone(self, owner, widget):
        order = self._order(owner, _line(widget.id, 20))
        assert order.status == "pending"
        assert order.document_number == "PO-0001"
        assert _quantity(widget.id) == 50

    def test_receive_adds_stock_once(self, owner, widget, gadget):
        order = self._order(owner, _line(widget.id, 20), _line(gadget.id, 5))

        received = purchase_order_service.receive_purchase_order(
            user_id=owner.id, purchase_order_id=order.id,
        )
        assert received.status == "received"
        assert received.received_at is not None
        assert _quantity(widget.id) == 70
        assert _quantity(gadget.id) == 25

        purchase_order_service.receive_purchase_order(user_id=owner.id, purchase_order_id=order.id)
        assert _quantity(widget.id) == 70
        assert _quantity(gadget.id) == 25

    def test_cancel_pending_has_no_stock_effect(self, owner, widget):
        order = self._order(owner, _line(widget.id, 20))
        cancelled = purchase_order_service.set_purchase_order_status(
            user_id=owner.id, purchase_order_id=order.id, status="cancelled",
        )
        assert cancelled.cancelled_at is not None
        assert _quantity(widget.id) == 50

        with pytest.raises(DocumentStateError):
            purchase_order_service.receive_purchase_order(user_id=owner.id, purchase_order_id=order.id)
        assert _quantity(widget.id) == 50

    def test_received_order_cannot_be_cancelled(self, owner, widget):
        order = self._order(owner, _line(widget.id, 20))
        purchase_order_service.receive_purchase_order(user_id=owner.id, purchase_order_id=order.id)
        with pytest.raises(DocumentStateError):
            purchase_order_service.set_purchase_order_status(
                user_id=owner.id, purchase_order_id=order.id, status="cancelled",
            )

    def test_delete_never_reverses_received_stock(self, owner, widget):
        order = self._order(owner, _line(widget.id, 20))
        purchase_order_service.receive_purchase_order(user_id=owner.id, purchase_order_id=order.id)
        purchase_order_service.delete_purchase_order(user_id=owner.id, purchase_order_id=order.id)
        assert _quantity(widget.id) == 70
        assert db.session.query(PurchaseOrder).count() == 0

    def test_every_line_needs_a_product(self, owner, widget):
        with pytest.raises(DocumentValidationError):
            self._order(owner, _line(widget.id, 1), _line(None, 1, 100, "Shipping"))

    def test_supplier_required(self, owner, widget):
        with pytest.raises(DocumentValidationError):
            purchase_order_service.create_purchase_order(
                user_id=owner.id, header={}, items=[_line(widget.id, 1)],
            )

    def test_receive_skips_deleted_product(self, owner, widget, gadget):
        from stockbook.services.products_service import delete_product

        order = self._order(owner, _line(widget.id, 2), _line(gadget.id, 3))
        delete_product(user_id=owner.id, product_id=widget.id)

        purchase_order_service.receive_purchase_order(user_id=owner.id, purchase_order_id=order.id)
        assert _quantity(gadget.id) == 23
