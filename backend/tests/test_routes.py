"""
HTTP route tests.

Verifies:
- Unauthenticated requests return 401
- Sellers are denied manager operations (403)
- Stock operations map errors to 400 / 404 / 409 with the error body
- Kardex and report endpoints return JSON
"""

import pytest

from conftest import auth_headers, get_auth_token


# =============================================================================
# UNAUTHENTICATED ACCESS - 401
# =============================================================================


class TestUnauthenticatedAccess:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/products"),
            ("POST", "/api/products"),
            ("GET", "/api/users"),
            ("GET", "/api/customers"),
            ("POST", "/api/inventory/sales"),
            ("POST", "/api/inventory/purchases"),
            ("POST", "/api/inventory/adjustments"),
            ("GET", "/api/inventory/kardex/1"),
            ("GET", "/api/inventory/critical-stock"),
            ("GET", "/api/reports/profit-today"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_health_is_public(self, client, db_session):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json == {"status": "ok"}


# =============================================================================
# AUTH
# =============================================================================


class TestAuthRoutes:

    def test_login_and_logout(self, client, seller):
        resp = client.post("/api/auth/login", json={"username": "seller1", "password": "secret1"})
        assert resp.status_code == 200
        token = resp.json["token"]
        assert resp.json["user"]["username"] == "seller1"

        assert client.get("/api/auth/me", headers=auth_headers(token)).status_code == 200
        assert client.post("/api/auth/logout", headers=auth_headers(token)).status_code == 200
        assert client.get("/api/auth/me", headers=auth_headers(token)).status_code == 401

    def test_bad_credentials(self, client, seller):
        resp = client.post("/api/auth/login", json={"username": "seller1", "password": "wrong-one"})
        assert resp.status_code == 401
        assert get_auth_token(client, "nobody", "secret1") is None

    def test_missing_credentials(self, client, db_session):
        resp = client.post("/api/auth/login", json={"username": "seller1"})
        assert resp.status_code == 400


# =============================================================================
# SELLER DENIED MANAGER OPERATIONS - 403
# =============================================================================


class TestSellerDenied:

    def test_cannot_record_purchase(self, client, seller_headers):
        resp = client.post("/api/inventory/purchases", json={}, headers=seller_headers)
        assert resp.status_code == 403

    def test_cannot_adjust_stock(self, client, seller_headers):
        resp = client.post("/api/inventory/adjustments", json={}, headers=seller_headers)
        assert resp.status_code == 403
        assert resp.json["required_role"] == "manager"

    def test_cannot_manage_users(self, client, seller_headers):
        assert client.get("/api/users", headers=seller_headers).status_code == 403

    def test_cannot_view_profit(self, client, seller_headers):
        assert client.get("/api/reports/profit-today", headers=seller_headers).status_code == 403


# =============================================================================
# STOCK OPERATIONS
# =============================================================================


class TestSaleRoutes:

    def test_sale(self, client, seller, seller_headers, customer, make_product):
        product = make_product(stock=5)
        resp = client.post("/api/inventory/sales", headers=seller_headers, json={
            "seller_id": seller.id,
            "customer_id": customer.id,
            "total_cents": 2000,
            "lines": [{"product_id": product.id, "quantity": 2, "unit_price_cents": 1000}],
        })
        assert resp.status_code == 201
        sale_id = resp.json["sale_id"]

        detail = client.get(f"/api/inventory/sales/{sale_id}", headers=seller_headers)
        assert detail.status_code == 200
        assert detail.json["lines"][0]["quantity"] == 2

    def test_insufficient_stock_is_409(self, client, seller, seller_headers, customer, make_product):
        product = make_product(name="Hammer", stock=5)
        resp = client.post("/api/inventory/sales", headers=seller_headers, json={
            "seller_id": seller.id,
            "customer_id": customer.id,
            "lines": [{"product_id": product.id, "quantity": 10}],
        })
        assert resp.status_code == 409
        assert resp.json["details"] == {
            "product_id": product.id,
            "product_name": "Hammer",
            "available": 5,
            "requested": 10,
        }

    def test_missing_seller_is_400(self, client, seller_headers, customer, make_product):
        product = make_product(stock=5)
        resp = client.post("/api/inventory/sales", headers=seller_headers, json={
            "customer_id": customer.id,
            "lines": [{"product_id": product.id, "quantity": 1}],
        })
        assert resp.status_code == 400
        assert resp.json["error"] == "seller_id is required"

    def test_unknown_product_is_404(self, client, seller, seller_headers, customer):
        resp = client.post("/api/inventory/sales", headers=seller_headers, json={
            "seller_id": seller.id,
            "customer_id": customer.id,
            "lines": [{"product_id": 424242, "quantity": 1}],
        })
        assert resp.status_code == 404


class TestManagerStockRoutes:

    def test_purchase_adjustment_and_kardex(self, client, manager, manager_headers, supplier, make_product):
        product = make_product(stock=0)

        resp = client.post("/api/inventory/purchases", headers=manager_headers, json={
            "supplier_id": supplier.id,
            "lines": [{"product_id": product.id, "quantity": 20, "unit_cost_cents": 350}],
        })
        assert resp.status_code == 201
        purchase_id = resp.json["purchase_id"]
        assert client.get(f"/api/inventory/purchases/{purchase_id}", headers=manager_headers).status_code == 200

        resp = client.post("/api/inventory/adjustments", headers=manager_headers, json={
            "reason": "Breakage",
            "user_id": manager.id,
            "lines": [
                {"product_id": product.id, "quantity": -2},
                {"product_id": product.id, "quantity": 2, "kind": "entrada", "warehouse_id": 2},
            ],
        })
        assert resp.status_code == 200
        assert resp.json == {"lines_processed": 2}

        kardex = client.get(f"/api/inventory/kardex/{product.id}", headers=manager_headers)
        assert kardex.status_code == 200
        assert kardex.json["current_stock"] == 18
        assert [m["balance_after"] for m in kardex.json["movements"]] == [20, 18]

        damaged = client.get(f"/api/inventory/kardex/{product.id}?warehouse_id=2", headers=manager_headers)
        assert damaged.json["current_stock"] == 2

    def test_empty_adjustment_is_400(self, client, manager_headers):
        resp = client.post("/api/inventory/adjustments", headers=manager_headers, json={"lines": []})
        assert resp.status_code == 400
        assert resp.json["error"] == "No adjustment lines were provided"

    def test_kardex_unknown_product_is_404(self, client, manager_headers):
        resp = client.get("/api/inventory/kardex/424242", headers=manager_headers)
        assert resp.status_code == 404

    def test_critical_stock(self, client, seller_headers, make_product):
        make_product(name="Low", stock=1)
        resp = client.get("/api/inventory/critical-stock", headers=seller_headers)
        assert resp.status_code == 200
        assert resp.json["count"] == 1


# =============================================================================
# CATALOG, PARTIES, USERS, REPORTS
# =============================================================================


class TestCatalogRoutes:

    def test_create_and_update_product(self, client, manager_headers, seller_headers):
        resp = client.post("/api/products", headers=manager_headers, json={
            "code": "SAW-1",
            "name": "Saw",
            "sell_price_cents": 2500,
            "cost_price_cents": 1200,
            "initial_stock": 4,
        })
        assert resp.status_code == 201
        product_id = resp.json["id"]
        assert resp.json["stock"]["1"] == 4

        resp = client.put(f"/api/products/{product_id}", headers=manager_headers, json={"name": "Hand saw"})
        assert resp.status_code == 200
        assert resp.json["name"] == "Hand saw"

        listing = client.get("/api/products", headers=seller_headers)
        assert [(p["name"], p["stock"]) for p in listing.json["items"]] == [("Hand saw", 4)]

    def test_product_validation(self, client, manager_headers):
        resp = client.post("/api/products", headers=manager_headers, json={"name": "No code"})
        assert resp.status_code == 400

        resp = client.post("/api/products", headers=manager_headers, json={"code": "X", "name": "X", "stock": 9})
        assert resp.status_code == 400

    def test_duplicate_product_code_is_409(self, client, manager_headers, make_product):
        make_product(code="DUP")
        resp = client.post("/api/products", headers=manager_headers, json={"code": "DUP", "name": "Again"})
        assert resp.status_code == 409

    def test_customers_and_suppliers(self, client, seller_headers, manager_headers):
        resp = client.post("/api/customers", headers=seller_headers, json={"business_name": "Alfa SRL"})
        assert resp.status_code == 201
        assert client.get("/api/customers", headers=seller_headers).json["items"][0]["business_name"] == "Alfa SRL"

        assert client.post("/api/suppliers", headers=seller_headers, json={"name": "Norte"}).status_code == 403
        assert client.post("/api/suppliers", headers=manager_headers, json={"name": "Norte"}).status_code == 201


class TestUserRoutes:

    def test_manager_manages_users(self, client, manager, manager_headers):
        resp = client.post("/api/users", headers=manager_headers, json={
            "username": "newbie",
            "password": "secret1",
            "name": "New Seller",
        })
        assert resp.status_code == 201
        user_id = resp.json["id"]
        assert resp.json["role"] == "seller"

        resp = client.put(f"/api/users/{user_id}", headers=manager_headers, json={"name": "Renamed"})
        assert resp.json["name"] == "Renamed"

        resp = client.delete(f"/api/users/{user_id}", headers=manager_headers)
        assert resp.json["is_active"] is False

        assert client.delete(f"/api/users/{manager.id}", headers=manager_headers).status_code == 400

    def test_update_rejects_blank_username_and_name(self, client, seller, manager_headers):
        resp = client.put(f"/api/users/{seller.id}", headers=manager_headers, json={"username": "", "name": ""})
        assert resp.status_code == 400
        assert "required" in resp.json["error"]

        resp = client.put(f"/api/users/{seller.id}", headers=manager_headers, json={"name": 7})
        assert resp.status_code == 400

        resp = client.get("/api/users", headers=manager_headers)
        stored = next(u for u in resp.json["items"] if u["id"] == seller.id)
        assert (stored["username"], stored["name"]) == ("seller1", "Sam Seller")


class TestReportRoutes:

    def test_commissions_requires_arguments(self, client, manager_headers):
        resp = client.get("/api/reports/commissions", headers=manager_headers)
        assert resp.status_code == 400

    def test_reports(self, client, manager_headers):
        assert client.get("/api/reports/profit-today", headers=manager_headers).status_code == 200
        assert client.get("/api/reports/top-products", headers=manager_headers).json == {"items": []}
        resp = client.get(
            "/api/reports/commissions?start=2026-01-01&end=2026-01-31&percentage=3",
            headers=manager_headers,
        )
        assert resp.status_code == 200
        assert resp.json["percentage"] == "3"
