# Overview: Pytest coverage for the conditional stock adjustment primitive.

import pytest

from backoffice.models import Product
from backoffice.services import stock_ledger
from backoffice.services.errors import InsufficientStock, ProductNotFound


class TestAdjust:
    def test_decrement_returns_new_stock(self, db_session, company_a, product_a, stock_of):
        new_stock = stock_ledger.decrement(company_a.id, product_a.id, 4)
        db_session.commit()

        assert new_stock == 6
        assert stock_of(product_a) == 6

    def test_increment_returns_new_stock(self, db_session, company_a, product_a, stock_of):
        assert stock_ledger.increment(company_a.id, product_a.id, 5) == 15
        db_session.commit()
        assert stock_of(product_a) == 15

    def test_decrement_to_exactly_zero_is_allowed(self, db_session, company_a, product_a, stock_of):
        assert stock_ledger.decrement(company_a.id, product_a.id, 10) == 0
        db_session.commit()
        assert stock_of(product_a) == 0

    def test_decrement_below_zero_rejected_and_unchanged(self, db_session, company_a, product_a, stock_of):
        with pytest.raises(InsufficientStock) as exc:
            stock_ledger.decrement(company_a.id, product_a.id, 11)
        db_session.rollback()

        assert exc.value.product_id == product_a.id
        assert exc.value.product_name == "Widget A"
        assert exc.value.details["available"] == 10
        assert exc.value.details["requested"] == 11
        assert "Widget A" in str(exc.value)
        assert stock_of(product_a) == 10

    def test_cached_attribute_refreshed_after_update(self, db_session, company_a, product_a):
        """The identity-mapped Product sees the value written by the UPDATE."""
        loaded = db_session.get(Product, product_a.id)
        assert loaded.stock == 10

        stock_ledger.decrement(company_a.id, product_a.id, 3)

        assert loaded.stock == 7

    def test_cost_price_overwritten_unconditionally(self, db_session, company_a, product_a):
        stock_ledger.increment(company_a.id, product_a.id, 1, cost_price_cents=9999)
        db_session.commit()
        db_session.expire_all()
        assert db_session.get(Product, product_a.id).cost_price_cents == 9999

        # Lower price also overwrites; no averaging
        stock_ledger.increment(company_a.id, product_a.id, 1, cost_price_cents=10)
        db_session.commit()
        db_session.expire_all()
        assert db_session.get(Product, product_a.id).cost_price_cents == 10

    def test_set_quantity_overwrites_count(self, db_session, company_a, product_a, stock_of):
        assert stock_ledger.set_quantity(company_a.id, product_a.id, 4) == 4
        db_session.commit()
        assert product_a.stock == 4
        assert stock_of(product_a) == 4

    def test_cost_price_untouched_without_argument(self, db_session, company_a, product_a):
        stock_ledger.increment(company_a.id, product_a.id, 1)
        db_session.commit()
        db_session.expire_all()
        assert db_session.get(Product, product_a.id).cost_price_cents == 600


class TestTenantScope:
    def test_other_tenant_product_is_not_found(self, db_session, company_a, product_b, stock_of):
        with pytest.raises(ProductNotFound):
            stock_ledger.decrement(company_a.id, product_b.id, 1)
        db_session.rollback()
        assert stock_of(product_b) == 10

    def test_missing_product_is_not_found(self, db_session, company_a):
        with pytest.raises(ProductNotFound):
            stock_ledger.increment(company_a.id, 999999, 1)

    def test_set_quantity_respects_tenant(self, db_session, company_a, product_b, stock_of):
        with pytest.raises(ProductNotFound):
            stock_ledger.set_quantity(company_a.id, product_b.id, 0)
        db_session.rollback()
        assert stock_of(product_b) == 10
