# Overview: Pytest coverage for payload validation and coercion.

from datetime import date

import pytest
from werkzeug.datastructures import MultiDict

from stockbook.models import Product
from stockbook.routes.products import PRODUCT_POLICY
from stockbook.validation import (
    ValidationError,
    enforce_rules_product,
    enforce_rules_settings,
    parse_document_filters,
    parse_document_header,
    parse_tax_options,
    validate_line_items,
    validate_payload,
)


class TestValidatePayload:

    def test_create_requires_name(self):
        with pytest.raises(ValidationError, match="Missing required fields: name"):
            validate_payload(model=Product, payload={"sku": "X"}, policy=PRODUCT_POLICY, partial=False)

    def test_rejects_non_writable_fields(self):
        with pytest.raises(ValidationError, match="Field not allowed: owner_user_id"):
            validate_payload(
                model=Product, payload={"name": "A", "owner_user_id": 2}, policy=PRODUCT_POLICY, partial=False,
            )

    def test_coerces_and_strips(self):
        patch = validate_payload(
            model=Product,
            payload={"name": "  Lamp ", "sale_price_cents": "1299", "sku": ""},
            policy=PRODUCT_POLICY,
            partial=False,
        )
        assert patch == {"name": "Lamp", "sale_price_cents": 1299, "sku": None}

    @pytest.mark.parametrize("raw", ["12.5", "1e3", 12.5, True])
    def test_rejects_non_integer_money(self, raw):
        with pytest.raises(ValidationError):
            validate_payload(
                model=Product, payload={"sale_price_cents": raw}, policy=PRODUCT_POLICY, partial=True,
            )

    def test_blank_name_rejected(self):
        with pytest.raises(ValidationError, match="name cannot be blank"):
            validate_payload(model=Product, payload={"name": "  "}, policy=PRODUCT_POLICY, partial=True)


class TestBusinessRules:

    def test_negative_quantity(self):
        with pytest.raises(ValidationError):
            enforce_rules_product({"quantity": -1})

    def test_price_ceiling(self):
        with pytest.raises(ValidationError):
            enforce_rules_product({"sale_price_cents": 1_000_000_000})

    def test_settings_tax_rate_range(self):
        enforce_rules_settings({"default_tax_rate_bps": 10_000})
        with pytest.raises(ValidationError):
            enforce_rules_settings({"default_tax_rate_bps": 10_001})


class TestLineItems:

    def test_product_line_may_omit_price_and_description(self):
        assert validate_line_items([{"product_id": "3", "quantity": 2}]) == [
            {"product_id": 3, "description": None, "quantity": 2, "unit_price_cents": None},
        ]

    def test_free_text_line_needs_description_and_price(self):
        with pytest.raises(ValidationError, match="description is required"):
            validate_line_items([{"quantity": 1, "unit_price_cents": 100}])
        with pytest.raises(ValidationError, match="unit_price_cents is required"):
            validate_line_items([{"quantity": 1, "description": "Labour"}])

    @pytest.mark.parametrize("quantity", [0, -3])
    def test_quantity_must_be_positive(self, quantity):
        with pytest.raises(ValidationError, match="quantity must be > 0"):
            validate_line_items([{"product_id": 1, "quantity": quantity}])

    def test_empty_list_rejected(self):
        with pytest.raises(ValidationError):
            validate_line_items([])

    def test_unknown_line_fields_rejected(self):
        with pytest.raises(ValidationError, match="field not allowed: amount_cents"):
            validate_line_items([{"product_id": 1, "quantity": 1, "amount_cents": 5}])

    def test_require_product(self):
        with pytest.raises(ValidationError, match="product_id is required"):
            validate_line_items(
                [{"description": "Freight", "quantity": 1, "unit_price_cents": 100}],
                require_product=True,
            )


class TestDocumentHeader:

    def test_dates_and_client_coerced(self):
        header = parse_document_header(
            {"customer_name": " Acme ", "client_id": "7", "issue_date": "2024-01-31", "items": []},
            allowed={"customer_name", "client_id", "issue_date"},
            email_key="customer_email",
        )
        assert header == {"customer_name": "Acme", "client_id": 7, "issue_date": date(2024, 1, 31)}

    def test_unknown_header_field(self):
        with pytest.raises(ValidationError, match="Field not allowed: total_cents"):
            parse_document_header({"total_cents": 1}, allowed={"customer_name"}, email_key="customer_email")

    def test_bad_email(self):
        with pytest.raises(ValidationError):
            parse_document_header(
                {"customer_email": "nobody"},
                allowed={"customer_email"},
                email_key="customer_email",
            )

    def test_non_object_payload(self):
        with pytest.raises(ValidationError, match="JSON object required"):
            parse_document_header([1], allowed={"customer_name"}, email_key="customer_email")

    def test_due_before_issue(self):
        with pytest.raises(ValidationError):
            parse_document_header(
                {"issue_date": "2024-02-01", "due_date": "2024-01-01"},
                allowed={"issue_date", "due_date"},
                email_key="customer_email",
            )


class TestTaxOptions:

    def test_defaults_are_none(self):
        assert parse_tax_options({}) == (None, None)

    def test_rate_out_of_range(self):
        with pytest.raises(ValidationError):
            parse_tax_options({"tax_rate_bps": 20_000})

    def test_enabled_must_be_boolean(self):
        with pytest.raises(ValidationError):
            parse_tax_options({"tax_enabled": "yes"})


class TestDocumentFilters:

    def test_parses_filters(self):
        filters = parse_document_filters(
            MultiDict({"status": "paid", "client_id": "4", "date_from": "2024-01-01"}),
            statuses={"paid", "draft"},
        )
        assert filters == {
            "status": "paid",
            "client_id": 4,
            "date_from": date(2024, 1, 1),
            "date_to": None,
        }

    def test_unknown_status(self):
        with pytest.raises(ValidationError):
            parse_document_filters(MultiDict({"status": "lost"}), statuses={"paid"})

    def test_inverted_range(self):
        with pytest.raises(ValidationError):
            parse_document_filters(
                MultiDict({"date_from": "2024-02-01", "date_to": "2024-01-01"}),
                statuses={"paid"},
            )
