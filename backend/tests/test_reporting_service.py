# Overview: Pytest coverage for order reports and the completed-sales feed.

from datetime import timedelta

import pytest

from backoffice.services import order_service, reporting_service
from backoffice.services.reporting_service import ReportError
from backoffice.time_utils import utcnow


def _sale(company, product, quantity, **kwargs):
    return order_service.create_sale(
        company.id,
        counterpart=kwargs.pop("counterpart", "Maria"),
        items=[{"product_id": product.id, "quantity": quantity}],
        **kwargs,
    )


class TestOrderReport:
    def test_only_completed_orders_counted(self, db_session, company_a, product_a, product_a2):
        _sale(company_a, product_a, 2, status="COMPLETED", payment_method="PIX")
        _sale(company_a, product_a2, 3, status="COMPLETED")
        _sale(company_a, product_a, 1)  # pending
        cancelled = _sale(company_a, product_a, 1, status="COMPLETED")
        order_service.cancel_order(company_a.id, cancelled.id)

        report = reporting_service.order_report(company_a.id, "SALE")

        assert report["order_count"] == 2
        assert report["total_cents"] == 2 * 1000 + 3 * 2500
        methods = {row["payment_method"]: row["total_cents"] for row in report["by_payment_method"]}
        assert methods == {"CASH": 7500, "PIX": 2000}
        assert [p["code"] for p in report["top_products"]] == ["A-002", "A-001"]
        assert "top_counterparts" not in report

    def test_purchase_report_lists_suppliers(self, db_session, company_a, product_a):
        for supplier, price in (("Alpha", 100), ("Beta", 500), ("Alpha", 100)):
            order_service.create_purchase(
                company_a.id,
                counterpart=supplier,
                items=[{"product_id": product_a.id, "quantity": 2, "unit_price_cents": price}],
                status="COMPLETED",
            )

        report = reporting_service.order_report(company_a.id, "PURCHASE")
        assert report["order_count"] == 3
        assert [(c["counterpart"], c["order_count"]) for c in report["top_counterparts"]] == [
            ("Beta", 1),
            ("Alpha", 2),
        ]

    def test_bad_range_rejected(self, db_session, company_a):
        with pytest.raises(ReportError):
            reporting_service.order_report(company_a.id, "SALE", start="2026-02-01", end="2026-01-01")
        with pytest.raises(ReportError):
            reporting_service.order_report(company_a.id, "SALE", start="yesterday")

    def test_unknown_document_type(self, db_session, company_a):
        with pytest.raises(ReportError):
            reporting_service.order_report(company_a.id, "QUOTE")


class TestCompletedSalesBetween:
    def test_returns_completed_sales_with_items(self, db_session, company_a, company_b, product_a, product_b):
        done = _sale(company_a, product_a, 2, status="COMPLETED")
        _sale(company_a, product_a, 1)
        _sale(company_b, product_b, 1, status="COMPLETED")

        now = utcnow()
        rows = reporting_service.completed_sales_between(
            company_a.id, now - timedelta(hours=1), now + timedelta(hours=1)
        )

        assert [r["id"] for r in rows] == [done.id]
        assert rows[0]["items"][0]["quantity"] == 2
        assert rows[0]["total_cents"] == sum(i["subtotal_cents"] for i in rows[0]["items"])

    def test_range_excludes_outside_orders(self, db_session, company_a, product_a):
        _sale(company_a, product_a, 1, status="COMPLETED")
        past = utcnow() - timedelta(days=10)
        assert reporting_service.completed_sales_between(company_a.id, past, past + timedelta(days=1)) == []
