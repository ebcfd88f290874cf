# Overview: Pytest coverage for client, balance sheet, settings and system routes.

from stockbook.extensions import db
from stockbook.models import Invoice


class TestClientRoutes:

    def test_crud(self, client, owner_headers):
        created = client.post('/api/clients', headers=owner_headers, json={
            "name": "Globex", "email": "ap@globex.test", "phone": "555-0100",
        })
        assert created.status_code == 201
        client_id = created.json["id"]

        updated = client.put(f'/api/clients/{client_id}', headers=owner_headers, json={"address": "1 Main St"})
        assert updated.status_code == 200
        assert updated.json["address"] == "1 Main St"

        assert client.get(f'/api/clients/{client_id}', headers=owner_headers).json["name"] == "Globex"

        searched = client.get('/api/clients?search=glob', headers=owner_headers)
        assert [c["id"] for c in searched.json["items"]] == [client_id]

    def test_validation(self, client, owner_headers):
        assert client.post('/api/clients', headers=owner_headers, json={"email": "x@y.test"}).status_code == 400
        assert client.post('/api/clients', headers=owner_headers, json={
            "name": "Bad", "email": "not-an-email",
        }).status_code == 400

    def test_delete_detaches_documents(self, client, owner_headers, acme, widget):
        invoice = client.post('/api/invoices', headers=owner_headers, json={
            "client_id": acme.id,
            "items": [{"product_id": widget.id, "quantity": 1}],
        })
        assert invoice.status_code == 201
        assert invoice.json["customer_name"] == "Acme Ltd"

        assert client.delete(f'/api/clients/{acme.id}', headers=owner_headers).status_code == 200

        stored = db.session.get(Invoice, invoice.json["id"])
        assert stored.client_id is None
        assert stored.customer_name == "Acme Ltd"

    def test_foreign_client_is_404(self, client, other_headers, acme):
        assert client.get(f'/api/clients/{acme.id}', headers=other_headers).status_code == 404
        assert client.put(f'/api/clients/{acme.id}', headers=other_headers, json={"name": "X"}).status_code == 404
        assert client.delete(f'/api/clients/{acme.id}', headers=other_headers).status_code == 404


class TestBalanceSheetRoutes:

    def _add(self, client, headers, **payload):
        return client.post('/api/transactions', headers=headers, json=payload)

    def test_balance_sheet_totals(self, client, owner_headers):
        self._add(client, owner_headers, type="income", category="Sales", amount_cents=10000,
                  transaction_date="2024-01-05")
        self._add(client, owner_headers, type="income", category="Interest", amount_cents=500,
                  transaction_date="2024-01-06")
        self._add(client, owner_headers, type="expense", category="Rent", amount_cents=4000,
                  transaction_date="2024-01-07")
        self._add(client, owner_headers, type="expense", category="Rent", amount_cents=4000,
                  transaction_date="2024-03-07")

        sheet = client.get('/api/balance-sheet?start=2024-01-01&end=2024-01-31', headers=owner_headers)
        assert sheet.status_code == 200
        body = sheet.json
        assert body["income_cents"] == 10500
        assert body["expense_cents"] == 4000
        assert body["net_cents"] == 6500
        assert [c["category"] for c in body["income_by_category"]] == ["Sales", "Interest"]
        assert body["expense_by_category"] == [{"category": "Rent", "amount_cents": 4000, "count": 1}]

        everything = client.get('/api/balance-sheet', headers=owner_headers).json
        assert everything["expense_cents"] == 8000

    def test_transaction_validation(self, client, owner_headers):
        assert self._add(client, owner_headers, type="gift", category="X", amount_cents=1).status_code == 400
        assert self._add(client, owner_headers, type="income", category="X", amount_cents=-1).status_code == 400
        assert self._add(client, owner_headers, type="income", amount_cents=1).status_code == 400

    def test_transaction_date_defaults_to_today(self, client, owner_headers):
        created = self._add(client, owner_headers, type="expense", category="Fuel", amount_cents=250)
        assert created.status_code == 201
        assert created.json["transaction_date"]

    def test_list_and_delete(self, client, owner_headers, other_headers):
        tx_id = self._add(client, owner_headers, type="expense", category="Fuel", amount_cents=250).json["id"]

        listed = client.get('/api/transactions?type=expense', headers=owner_headers)
        assert [t["id"] for t in listed.json["items"]] == [tx_id]
        assert client.get('/api/transactions?type=gift', headers=owner_headers).status_code == 400

        assert client.delete(f'/api/transactions/{tx_id}', headers=other_headers).status_code == 404
        assert client.delete(f'/api/transactions/{tx_id}', headers=owner_headers).status_code == 200
        assert client.get('/api/transactions', headers=owner_headers).json["count"] == 0

    def test_inverted_range(self, client, owner_headers):
        response = client.get('/api/balance-sheet?start=2024-02-01&end=2024-01-01', headers=owner_headers)
        assert response.status_code == 400


class TestSettingsRoutes:

    def test_defaults(self, client, owner_headers):
        response = client.get('/api/settings', headers=owner_headers)
        assert response.status_code == 200
        assert response.json["currency_code"] == "INR"
        assert response.json["default_tax_rate_bps"] == 1800
        assert response.json["invoice_prefix"] == "INV-"

    def test_update_changes_new_document_numbers(self, client, owner_headers, widget):
        updated = client.put('/api/settings', headers=owner_headers, json={"invoice_prefix": "S-"})
        assert updated.status_code == 200

        invoice = client.post('/api/invoices', headers=owner_headers, json={
            "customer_name": "Walk-in",
            "items": [{"product_id": widget.id, "quantity": 1}],
        })
        assert invoice.json["document_number"] == "S-0001"

    def test_rejects_bad_values(self, client, owner_headers):
        assert client.put('/api/settings', headers=owner_headers,
                          json={"default_tax_rate_bps": 10_001}).status_code == 400
        assert client.put('/api/settings', headers=owner_headers,
                          json={"owner_user_id": 9}).status_code == 400


class TestSystemRoutes:

    def test_health(self, client, owner):
        response = client.get('/health')
        assert response.status_code == 200
        assert response.json["status"] == "healthy"
        assert response.json["checks"]["database"]["details"]["users"] == 1

    def test_version(self, client):
        response = client.get('/version')
        assert response.status_code == 200
        assert response.json["api_version"] == "1.0.0"
