# Overview: Pytest coverage for the document totals calculator.

from types import SimpleNamespace

from stockbook.services.totals_service import Totals, calculate_totals, tax_for


class TestCalculateTotals:

    def test_subtotal_tax_and_total(self):
        items = [
            {"quantity": 2, "unit_price_cents": 1000},
            {"quantity": 1, "unit_price_cents": 550},
        ]
        totals = calculate_totals(items, tax_enabled=True, tax_rate_bps=1800)
        assert totals == Totals(subtotal_cents=2550, tax_cents=459, total_cents=3009)

    def test_order_does_not_matter(self):
        items = [
            {"quantity": 3, "unit_price_cents": 333},
            {"quantity": 7, "unit_price_cents": 1299},
            {"quantity": 1, "unit_price_cents": 5},
        ]
        forward = calculate_totals(items, tax_enabled=True, tax_rate_bps=1250)
        backward = calculate_totals(list(reversed(items)), tax_enabled=True, tax_rate_bps=1250)
        assert forward == backward

    def test_subtotal_is_additive_across_splits(self):
        first = [{"quantity": 2, "unit_price_cents": 400}]
        second = [{"quantity": 5, "unit_price_cents": 120}]
        combined = calculate_totals(first + second, tax_enabled=False, tax_rate_bps=0)
        assert combined.subtotal_cents == (
            calculate_totals(first, tax_enabled=False, tax_rate_bps=0).subtotal_cents
            + calculate_totals(second, tax_enabled=False, tax_rate_bps=0).subtotal_cents
        )

    def test_tax_disabled_means_total_equals_subtotal(self):
        items = [{"quantity": 4, "unit_price_cents": 2500}]
        totals = calculate_totals(items, tax_enabled=False, tax_rate_bps=1800)
        assert totals.tax_cents == 0
        assert totals.total_cents == totals.subtotal_cents == 10000

    def test_empty_document(self):
        totals = calculate_totals([], tax_enabled=True, tax_rate_bps=1800)
        assert totals.to_dict() == {"subtotal_cents": 0, "tax_cents": 0, "total_cents": 0}

    def test_accepts_row_objects(self):
        rows = [SimpleNamespace(quantity=3, unit_price_cents=100)]
        assert calculate_totals(rows, tax_enabled=True, tax_rate_bps=1000).total_cents == 330


class TestTaxRounding:

    def test_rounds_half_up_to_the_cent(self):
        # 250 * 5% = 12.5 cents
        assert tax_for(250, 500) == 13
        # 249 * 5% = 12.45 cents
        assert tax_for(249, 500) == 12

    def test_zero_rate(self):
        assert tax_for(123456, 0) == 0

    def test_full_rate(self):
        assert tax_for(999, 10_000) == 999
