# Overview: Pytest coverage for tenant isolation behavior.

"""
Multi-Tenant Isolation Tests

SECURITY TESTS: Prove that cross-tenant access is denied for core resources.

Two companies each own products and orders; these tests verify that:
1. Company A cannot read or write Company B's products, orders or alerts
2. Foreign ids behave exactly like missing ids (404, never 403)
3. Requests without a valid, active tenant are rejected with 401
"""

import pytest

from backoffice.models import Order, Product
from backoffice.services import order_service
from backoffice.services.errors import OrderNotFound, ProductNotFound
from backoffice.services.tenant_service import (
    TenantAccessError,
    get_scoped,
    resolve_company,
    scoped_query,
)


class TestTenantServiceHelpers:
    def test_resolve_active_company(self, db_session, company_a):
        context = resolve_company(str(company_a.id))
        assert context.company_id == company_a.id
        assert context.is_active is True

    def test_resolve_unknown_company(self, db_session):
        with pytest.raises(TenantAccessError):
            resolve_company(999999)

    def test_resolve_malformed_id(self, db_session):
        with pytest.raises(TenantAccessError):
            resolve_company("abc")

    def test_resolve_deactivated_company(self, db_session, company_a):
        company_a.is_active = False
        db_session.commit()
        with pytest.raises(TenantAccessError):
            resolve_company(company_a.id)

    def test_scoped_query_filters_products(self, db_session, company_a, company_b, product_a, product_b):
        assert [p.id for p in scoped_query(Product, company_a.id).all()] == [product_a.id]
        assert [p.id for p in scoped_query(Product, company_b.id).all()] == [product_b.id]

    def test_get_scoped_hides_foreign_rows(self, db_session, company_a, product_b):
        assert get_scoped(Product, company_a.id, product_b.id) is None


class TestOrderIsolation:
    def test_cannot_sell_other_tenant_product(self, db_session, company_a, product_b, stock_of):
        with pytest.raises(ProductNotFound):
            order_service.create_sale(
                company_a.id, counterpart=None, items=[{"product_id": product_b.id, "quantity": 1}]
            )
        assert stock_of(product_b) == 10
        assert db_session.query(Order).count() == 0

    def test_cannot_read_or_cancel_other_tenant_order(self, db_session, company_a, company_b, product_b, stock_of):
        order = order_service.create_sale(
            company_b.id, counterpart=None, items=[{"product_id": product_b.id, "quantity": 2}]
        )

        with pytest.raises(OrderNotFound):
            order_service.get_order(company_a.id, order.id)
        with pytest.raises(OrderNotFound):
            order_service.cancel_order(company_a.id, order.id)
        with pytest.raises(OrderNotFound):
            order_service.update_status(company_a.id, order.id, "COMPLETED")

        assert stock_of(product_b) == 8

    def test_listing_shows_only_own_orders(self, db_session, company_a, company_b, product_a, product_b):
        order_service.create_sale(company_a.id, counterpart=None, items=[{"product_id": product_a.id, "quantity": 1}])
        order_service.create_sale(company_b.id, counterpart=None, items=[{"product_id": product_b.id, "quantity": 1}])

        listed = order_service.list_orders(company_a.id, document_type="SALE")
        assert listed["count"] == 1
        assert listed["items"][0]["company_id"] == company_a.id


class TestRequestTenantContext:
    def test_missing_tenant_header_is_401(self, client, db_session):
        assert client.get("/api/products").status_code == 401

    def test_unknown_tenant_is_401(self, client, db_session):
        response = client.get("/api/products", headers={"X-Company-Id": "999999"})
        assert response.status_code == 401

    def test_deactivated_tenant_is_401(self, client, db_session, company_a, headers_a):
        company_a.is_active = False
        db_session.commit()
        assert client.get("/api/sales", headers=headers_a).status_code == 401

    def test_foreign_ids_answer_404(self, client, db_session, company_b, product_b, headers_a):
        order = order_service.create_sale(
            company_b.id, counterpart=None, items=[{"product_id": product_b.id, "quantity": 1}]
        )

        assert client.get(f"/api/products/{product_b.id}", headers=headers_a).status_code == 404
        assert client.get(f"/api/sales/{order.id}", headers=headers_a).status_code == 404
        assert client.patch(f"/api/sales/{order.id}/cancel", headers=headers_a).status_code == 404
        assert client.delete(f"/api/products/{product_b.id}", headers=headers_a).status_code == 404

    def test_custom_tenant_resolver(self, app, client, db_session, company_a, product_a, monkeypatch):
        monkeypatch.setitem(app.config, "TENANT_RESOLVER", lambda: company_a.id)
        response = client.get("/api/products")
        assert response.status_code == 200
        assert response.get_json()["count"] == 1
