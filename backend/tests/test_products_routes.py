# Overview: Pytest coverage for product API routes.

from stockbook.extensions import db
from stockbook.models import Product, StockMovement


class TestProductRoutes:

    def test_requires_auth(self, client):
        response = client.get('/api/products')
        assert response.status_code == 401
        assert response.json == {"error": "Authentication required"}

    def test_invalid_token(self, client):
        response = client.get('/api/products', headers={'Authorization': 'Bearer nope'})
        assert response.status_code == 401

    def test_create_and_get(self, client, owner_headers):
        response = client.post('/api/products', headers=owner_headers, json={
            "name": "Desk Lamp",
            "sku": "LAMP-1",
            "quantity": 12,
            "purchase_price_cents": 1500,
            "sale_price_cents": 2999,
        })
        assert response.status_code == 201
        created = response.json
        assert created["quantity"] == 12

        fetched = client.get(f'/api/products/{created["id"]}', headers=owner_headers)
        assert fetched.status_code == 200
        assert fetched.json["sku"] == "LAMP-1"

        # Opening stock is part of the movement history
        movements = client.get(f'/api/products/{created["id"]}/movements', headers=owner_headers)
        assert [m["reason"] for m in movements.json["items"]] == ["MANUAL_EDIT"]

    def test_validation_error(self, client, owner_headers):
        response = client.post('/api/products', headers=owner_headers, json={"name": "X", "quantity": -1})
        assert response.status_code == 400

    def test_duplicate_sku_conflicts(self, client, owner_headers, widget):
        response = client.post('/api/products', headers=owner_headers, json={"name": "Copy", "sku": "W-001"})
        assert response.status_code == 409

    def test_same_sku_allowed_for_other_owner(self, client, other_headers, widget):
        response = client.post('/api/products', headers=other_headers, json={"name": "Copy", "sku": "W-001"})
        assert response.status_code == 201

    def test_quantity_edit_records_movement(self, client, owner_headers, widget):
        response = client.put(f'/api/products/{widget.id}', headers=owner_headers, json={"quantity": 42})
        assert response.status_code == 200
        assert response.json["quantity"] == 42

        movement = db.session.query(StockMovement).filter_by(product_id=widget.id).one()
        assert movement.quantity_delta == -8
        assert movement.quantity_after == 42

    def test_list_search_and_low_stock(self, client, owner_headers, widget, gadget):
        db.session.get(Product, gadget.id).quantity = 3
        db.session.commit()

        everything = client.get('/api/products', headers=owner_headers)
        assert everything.json["count"] == 2

        searched = client.get('/api/products?search=gadg', headers=owner_headers)
        assert [p["name"] for p in searched.json["items"]] == ["Gadget"]

        low = client.get('/api/products/low-stock', headers=owner_headers)
        assert [p["id"] for p in low.json["items"]] == [gadget.id]

        paged = client.get('/api/products?page=1&per_page=1', headers=owner_headers)
        assert paged.json["pagination"]["total"] == 2
        assert paged.json["pagination"]["has_next"] is True

    def test_other_owner_sees_404(self, client, other_headers, widget):
        assert client.get(f'/api/products/{widget.id}', headers=other_headers).status_code == 404
        assert client.put(
            f'/api/products/{widget.id}', headers=other_headers, json={"name": "Mine"},
        ).status_code == 404
        assert client.delete(f'/api/products/{widget.id}', headers=other_headers).status_code == 404
        assert client.get('/api/products', headers=other_headers).json["count"] == 0

    def test_delete_keeps_document_lines(self, client, owner_headers, widget):
        created = client.post('/api/invoices', headers=owner_headers, json={
            "customer_name": "Walk-in",
            "items": [{"product_id": widget.id, "quantity": 2}],
        })
        assert created.status_code == 201

        response = client.delete(f'/api/products/{widget.id}', headers=owner_headers)
        assert response.status_code == 200

        invoice = client.get(f'/api/invoices/{created.json["id"]}', headers=owner_headers).json
        assert invoice["items"][0]["product_id"] is None
        assert invoice["items"][0]["description"] == "Widget"
