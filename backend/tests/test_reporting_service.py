# Overview: Pytest coverage for profit analytics and dashboard figures.

from datetime import date

import pytest

from stockbook.services import invoice_service, reporting_service
from stockbook.services.reporting_service import ReportError


def _line(product_id=None, quantity=1, unit_price_cents=None, description=None):
    return {
        "product_id": product_id,
        "description": description,
        "quantity": quantity,
        "unit_price_cents": unit_price_cents,
    }


@pytest.fixture
def sales(owner, widget, gadget):
    """January: 2 widgets. February: 1 gadget plus labour, paid. A cancelled January invoice."""
    january = invoice_service.create_invoice(
        user_id=owner.id,
        header={"customer_name": "A", "issue_date": date(2024, 1, 10)},
        items=[_line(widget.id, 2)],
        tax_enabled=False,
    )
    february = invoice_service.create_invoice(
        user_id=owner.id,
        header={"customer_name": "B", "issue_date": date(2024, 2, 10), "status": "paid"},
        items=[_line(gadget.id, 1), _line(None, 1, 500, "Labour")],
        tax_enabled=False,
    )
    cancelled = invoice_service.create_invoice(
        user_id=owner.id,
        header={"customer_name": "C", "issue_date": date(2024, 1, 20)},
        items=[_line(widget.id, 3)],
        tax_enabled=False,
    )
    invoice_service.set_invoice_status(user_id=owner.id, invoice_id=cancelled.id, status="cancelled")
    return january, february


class TestProfitReport:

    def test_totals_exclude_cancelled(self, owner, sales):
        report = reporting_service.profit_report(
            user_id=owner.id, start=date(2024, 1, 1), end=date(2024, 2, 29),
        )
        assert report["revenue_cents"] == 5000
        assert report["cost_cents"] == 2700
        assert report["profit_cents"] == 2300
        assert report["margin_percent"] == 46.0

    def test_top_products_and_unknown_lines(self, owner, sales, widget, gadget):
        report = reporting_service.profit_report(
            user_id=owner.id, start=date(2024, 1, 1), end=date(2024, 2, 29),
        )
        ranked = [(p["product_id"], p["name"], p["profit_cents"]) for p in report["top_products"]]
        assert ranked == [
            (gadget.id, "Gadget", 1000),
            (widget.id, "Widget", 800),
            (None, "Unknown", 500),
        ]

    def test_monthly_series(self, owner, sales):
        report = reporting_service.profit_report(
            user_id=owner.id, start=date(2024, 1, 1), end=date(2024, 2, 29),
        )
        assert report["monthly"] == [
            {"month": "2024-01", "revenue_cents": 2000, "cost_cents": 1200, "profit_cents": 800},
            {"month": "2024-02", "revenue_cents": 3000, "cost_cents": 1500, "profit_cents": 1500},
        ]

    def test_range_filters_by_issue_date(self, owner, sales):
        report = reporting_service.profit_report(
            user_id=owner.id, start=date(2024, 2, 1), end=date(2024, 2, 29),
        )
        assert report["revenue_cents"] == 3000

    def test_empty_range(self, owner, sales):
        report = reporting_service.profit_report(
            user_id=owner.id, start=date(2023, 1, 1), end=date(2023, 1, 31),
        )
        assert report["revenue_cents"] == 0
        assert report["margin_percent"] == 0.0
        assert report["top_products"] == []

    def test_inverted_range(self, owner):
        with pytest.raises(ReportError):
            reporting_service.profit_report(user_id=owner.id, start=date(2024, 2, 1), end=date(2024, 1, 1))

    def test_other_owner_sees_nothing(self, other_owner, sales):
        report = reporting_service.profit_report(
            user_id=other_owner.id, start=date(2024, 1, 1), end=date(2024, 2, 29),
        )
        assert report["revenue_cents"] == 0

    def test_default_range_covers_six_months(self):
        start, end = reporting_service.default_profit_range(date(2024, 3, 15))
        assert start == date(2023, 10, 1)
        assert end == date(2024, 3, 31)


class TestInventoryAndDashboard:

    def test_inventory_profit_potential(self, owner, widget, gadget):
        # 50 * 4.00 + 20 * 10.00
        assert reporting_service.inventory_profit_potential(user_id=owner.id) == 40000

    def test_dashboard_stats(self, owner, sales):
        stats = reporting_service.dashboard_stats(user_id=owner.id)
        assert stats["product_count"] == 2
        assert stats["low_stock_count"] == 0
        assert stats["invoice_count"] == 3
        assert stats["pending_invoice_count"] == 1
        assert stats["revenue_cents"] == 5000
        assert stats["stock_value_cents"] == 48 * 1000 + 19 * 2500

    def test_dashboard_revenue_by_month(self, owner, sales):
        stats = reporting_service.dashboard_stats(user_id=owner.id)
        assert stats["revenue_by_month"] == [
            {"month": "2024-01", "revenue_cents": 2000},
            {"month": "2024-02", "revenue_cents": 3000},
        ]

    def test_dashboard_keeps_last_six_months(self, owner):
        for month in range(1, 9):
            invoice_service.create_invoice(
                user_id=owner.id,
                header={"customer_name": "A", "issue_date": date(2024, month, 1)},
                items=[_line(None, 1, 100 * month, "Service")],
                tax_enabled=False,
            )
        months = reporting_service.dashboard_stats(user_id=owner.id)["revenue_by_month"]
        assert [m["month"] for m in months] == [
            "2024-03", "2024-04", "2024-05", "2024-06", "2024-07", "2024-08",
        ]
        assert months[-1]["revenue_cents"] == 800

    def test_dashboard_top_products(self, owner, sales):
        # The cancelled January invoice does not count
        stats = reporting_service.dashboard_stats(user_id=owner.id)
        assert stats["top_products"] == [
            {"name": "Gadget", "revenue_cents": 2500},
            {"name": "Widget", "revenue_cents": 2000},
            {"name": "Unknown", "revenue_cents": 500},
        ]

    def test_dashboard_upcoming_payments(self, owner, widget):
        later = invoice_service.create_invoice(
            user_id=owner.id,
            header={"customer_name": "Later", "issue_date": date(2024, 1, 1), "due_date": date(2024, 3, 1),
                    "status": "sent"},
            items=[_line(widget.id, 1)],
        )
        sooner = invoice_service.create_invoice(
            user_id=owner.id,
            header={"customer_name": "Sooner", "issue_date": date(2024, 1, 1), "due_date": date(2024, 2, 1)},
            items=[_line(widget.id, 1)],
        )
        invoice_service.create_invoice(
            user_id=owner.id,
            header={"customer_name": "Settled", "issue_date": date(2024, 1, 1), "status": "paid"},
            items=[_line(widget.id, 1)],
        )
        upcoming = reporting_service.dashboard_stats(user_id=owner.id)["upcoming_payments"]
        assert [i["id"] for i in upcoming] == [sooner.id, later.id]
        assert upcoming[0]["due_date"] == "2024-02-01"

    def test_analytics_routes(self, client, owner_headers, sales):
        profit = client.get('/api/analytics/profit?start=2024-01-01&end=2024-02-29', headers=owner_headers)
        assert profit.status_code == 200
        assert profit.json["profit_cents"] == 2300

        inverted = client.get('/api/analytics/profit?start=2024-02-01&end=2024-01-01', headers=owner_headers)
        assert inverted.status_code == 400

        bad_date = client.get('/api/analytics/profit?start=yesterday', headers=owner_headers)
        assert bad_date.status_code == 400

        dashboard = client.get('/api/analytics/dashboard', headers=owner_headers)
        assert dashboard.status_code == 200
        assert dashboard.json["product_count"] == 2
        assert dashboard.json["upcoming_payments"][0]["customer_name"] == "A"
