# Overview: Pytest coverage for per-tenant display number allocation.

from backoffice.models import Order, OrderSequence
from backoffice.models.orders import DOCUMENT_PURCHASE, DOCUMENT_SALE
from backoffice.services import order_service
from backoffice.services.sequence_service import format_number, next_order_number


def _sell(company, product, quantity=1):
    return order_service.create_sale(
        company.id,
        counterpart="Walk-in",
        items=[{"product_id": product.id, "quantity": quantity}],
    )


class TestFormatting:
    def test_zero_padded_to_six_digits(self):
        assert format_number(1) == "000001"
        assert format_number(42) == "000042"
        assert format_number(123456) == "123456"


class TestSequencing:
    def test_three_sales_are_numbered_sequentially(self, db_session, company_a, product_a):
        numbers = [_sell(company_a, product_a).number for _ in range(3)]
        assert numbers == ["000001", "000002", "000003"]

    def test_second_tenant_starts_at_one(self, db_session, company_a, company_b, product_a, product_b):
        _sell(company_a, product_a)
        _sell(company_a, product_a)

        assert _sell(company_b, product_b).number == "000001"

    def test_sales_and_purchases_have_independent_counters(self, db_session, company_a, product_a):
        _sell(company_a, product_a)
        _sell(company_a, product_a)

        purchase = order_service.create_purchase(
            company_a.id,
            counterpart="Supplier",
            items=[{"product_id": product_a.id, "quantity": 1, "unit_price_cents": 500}],
        )
        assert purchase.number == "000001"

    def test_first_use_seeds_from_highest_existing_number(self, db_session, company_a, product_a):
        # Order created before the counter row existed
        legacy = Order(
            company_id=company_a.id,
            document_type=DOCUMENT_SALE,
            direction="OUT",
            number="000041",
            status="COMPLETED",
        )
        db_session.add(legacy)
        db_session.commit()

        assert _sell(company_a, product_a).number == "000042"

    def test_cancelled_numbers_are_not_reused(self, db_session, company_a, product_a):
        first = _sell(company_a, product_a)
        order_service.cancel_order(company_a.id, first.id)

        assert _sell(company_a, product_a).number == "000002"

    def test_counter_row_advanced_in_place(self, db_session, company_a):
        next_order_number(company_a.id, DOCUMENT_PURCHASE)
        next_order_number(company_a.id, DOCUMENT_PURCHASE)
        db_session.commit()

        rows = db_session.query(OrderSequence).filter_by(company_id=company_a.id).all()
        assert len(rows) == 1
        assert rows[0].next_number == 3

