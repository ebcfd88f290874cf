# Overview: Threaded tests for stock and numbering safeguards against a file-backed SQLite database.

import threading

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from stockbook import create_app
from stockbook.extensions import db
from stockbook.models import Product, StockMovement
from stockbook.services import invoice_service
from stockbook.services.auth_service import create_user
from stockbook.services.concurrency import run_with_retry
from stockbook.services.stock_service import REASON_INVOICE_REVERSED, InsufficientStockError

from conftest import PASSWORD, make_product


THREADS = 8


@pytest.fixture
def file_app(tmp_path):
    """An app on a real database file so every thread gets its own connection."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'concurrency.sqlite3'}",
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
    })
    with app.app_context():
        db.create_all()
        user = create_user(username="owner", email="owner@example.com", password=PASSWORD)
        app.config["TEST_OWNER_ID"] = user.id
        db.session.remove()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


def _run_threads(app, target, count=THREADS):
    """Run target() in `count` threads, each inside its own app context. Returns (results, errors)."""
    results = []
    errors = []
    lock = threading.Lock()

    def worker():
        with app.app_context():
            try:
                value = target()
                with lock:
                    results.append(value)
            except Exception as exc:
                with lock:
                    errors.append(exc)
            finally:
                db.session.remove()

    threads = [threading.Thread(target=worker) for _ in range(count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return results, errors


def _line(product_id, quantity):
    return {"product_id": product_id, "quantity": quantity, "description": None, "unit_price_cents": None}


def _free_text_line():
    return {"product_id": None, "quantity": 1, "description": "Service", "unit_price_cents": 1000}


class TestConcurrentStock:

    def test_concurrent_cancel_restores_stock_once(self, file_app):
        owner_id = file_app.config["TEST_OWNER_ID"]
        with file_app.app_context():
            product_id = make_product(owner_id, quantity=50).id
            invoice_id = invoice_service.create_invoice(
                user_id=owner_id,
                header={"customer_name": "Walk-in"},
                items=[_line(product_id, 5)],
            ).id
            assert db.session.get(Product, product_id).quantity == 45
            db.session.remove()

        def cancel():
            invoice = invoice_service.set_invoice_status(
                user_id=owner_id, invoice_id=invoice_id, status="cancelled",
            )
            return invoice.status

        results, errors = _run_threads(file_app, cancel)

        assert errors == []
        assert results == ["cancelled"] * THREADS
        with file_app.app_context():
            assert db.session.get(Product, product_id).quantity == 50
            reversals = db.session.query(StockMovement).filter_by(
                product_id=product_id, reason=REASON_INVOICE_REVERSED,
            ).count()
            assert reversals == 1

    def test_concurrent_invoices_never_oversell(self, file_app):
        owner_id = file_app.config["TEST_OWNER_ID"]
        with file_app.app_context():
            product_id = make_product(owner_id, quantity=10).id
            db.session.remove()

        def sell_three():
            return invoice_service.create_invoice(
                user_id=owner_id,
                header={"customer_name": "Walk-in"},
                items=[_line(product_id, 3)],
            ).id

        results, errors = _run_threads(file_app, sell_three, count=6)

        assert len(results) == 3
        assert len(errors) == 3
        assert all(isinstance(e, InsufficientStockError) for e in errors)
        with file_app.app_context():
            assert db.session.get(Product, product_id).quantity == 1


class TestConcurrentNumbering:

    def test_document_numbers_are_unique(self, file_app):
        owner_id = file_app.config["TEST_OWNER_ID"]

        def create():
            return invoice_service.create_invoice(
                user_id=owner_id,
                header={"customer_name": "Walk-in"},
                items=[_free_text_line()],
                tax_enabled=False,
            ).document_number

        results, errors = _run_threads(file_app, create)

        assert errors == []
        assert sorted(results) == [f"INV-{n:04d}" for n in range(1, THREADS + 1)]


class TestRunWithRetry:

    def test_retries_stale_data(self, app):
        calls = []

        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise StaleDataError("row version changed")
            return "ok"

        assert run_with_retry(flaky, backoff_base=0) == "ok"
        assert len(calls) == 3

    def test_gives_up_after_attempts(self, app):
        calls = []

        def locked():
            calls.append(1)
            raise OperationalError("UPDATE products", {}, Exception("database is locked"))

        with pytest.raises(OperationalError):
            run_with_retry(locked, attempts=3, backoff_base=0)
        assert len(calls) == 3

    def test_other_errors_are_not_retried(self, app):
        calls = []

        def broken():
            calls.append(1)
            raise ValueError("bad input")

        with pytest.raises(ValueError):
            run_with_retry(broken, backoff_base=0)
        assert len(calls) == 1
