# Overview: Pytest coverage for the low-stock trigger and alert maintenance.

from datetime import timedelta

import pytest

from backoffice.models import Alert, Order
from backoffice.services import alert_service, order_service, products_service
from backoffice.time_utils import utcnow
from backoffice.validation import ValidationError


def _sell(company, product, quantity):
    return order_service.create_sale(
        company.id,
        counterpart="Maria",
        items=[{"product_id": product.id, "quantity": quantity}],
    )


def _low_stock_alerts(db_session, company):
    return db_session.query(Alert).filter_by(company_id=company.id, type="LOW_STOCK").all()


class TestLowStockTrigger:
    def test_sale_below_threshold_creates_high_priority_alert(self, db_session, company_a, product_a):
        _sell(company_a, product_a, 6)

        alerts = _low_stock_alerts(db_session, company_a)
        assert len(alerts) == 1
        assert alerts[0].priority == "HIGH"
        assert alerts[0].title == "Low stock: Widget A"
        assert alerts[0].is_read is False

    def test_sale_above_threshold_creates_nothing(self, db_session, company_a, product_a):
        _sell(company_a, product_a, 4)
        assert _low_stock_alerts(db_session, company_a) == []

    def test_threshold_is_fixed_not_min_stock(self, db_session, company_a, make_product):
        product = make_product(company_a, code="BIG", name="Big Min", stock=12, min_stock=20)
        _sell(company_a, product, 2)

        # 10 units is below this product's min_stock but above the fixed 5
        assert _low_stock_alerts(db_session, company_a) == []

    def test_inactive_products_ignored(self, db_session, company_a, make_product):
        make_product(company_a, code="OFF", name="Off", stock=0, is_active=False)
        assert alert_service.refresh_low_stock_alerts(company_a.id) == []

    def test_refresh_twice_within_window_creates_one_alert(self, db_session, company_a, product_a):
        _sell(company_a, product_a, 8)
        alert_service.refresh_low_stock_alerts(company_a.id)
        alert_service.refresh_low_stock_alerts(company_a.id)

        assert len(_low_stock_alerts(db_session, company_a)) == 1

    def test_refresh_after_window_creates_new_alert(self, db_session, company_a, product_a):
        _sell(company_a, product_a, 8)
        later = utcnow() + timedelta(hours=25)

        created = alert_service.refresh_low_stock_alerts(company_a.id, now=later)

        assert len(created) == 1
        assert len(_low_stock_alerts(db_session, company_a)) == 2

    def test_completing_a_sale_rechecks(self, db_session, company_a, product_a):
        order = _sell(company_a, product_a, 7)
        db_session.query(Alert).delete()
        db_session.commit()

        order_service.update_status(company_a.id, order.id, "COMPLETED")

        assert len(_low_stock_alerts(db_session, company_a)) == 1

    def test_manual_stock_edit_rechecks(self, db_session, company_a, product_a):
        products_service.adjust_stock(company_a.id, product_a.id, 7, "OUT")
        assert len(_low_stock_alerts(db_session, company_a)) == 1

    def test_purchase_does_not_trigger(self, db_session, company_a, make_product):
        product = make_product(company_a, code="Z", name="Zero", stock=0)
        order_service.create_purchase(
            company_a.id,
            counterpart="S",
            items=[{"product_id": product.id, "quantity": 1, "unit_price_cents": 10}],
        )
        assert _low_stock_alerts(db_session, company_a) == []

    def test_alert_failure_never_fails_the_sale(self, db_session, company_a, product_a, monkeypatch, stock_of):
        def boom(company_id, **kwargs):
            raise RuntimeError("alert store unavailable")

        monkeypatch.setattr(alert_service, "refresh_low_stock_alerts", boom)

        order = _sell(company_a, product_a, 8)

        assert order.id is not None
        assert db_session.query(Order).count() == 1
        assert stock_of(product_a) == 2

    def test_thread_mode_dispatches_to_worker(self, db_session, app, company_a, monkeypatch):
        started = []

        class FakeThread:
            def __init__(self, target, args, name, daemon):
                self.target, self.args, self.name = target, args, name

            def start(self):
                started.append(self)

        monkeypatch.setattr(alert_service.threading, "Thread", FakeThread)
        monkeypatch.setitem(app.config, "ALERT_DISPATCH_MODE", "thread")

        alert_service.trigger_low_stock_refresh(company_a.id)

        assert len(started) == 1
        assert started[0].args == (app, company_a.id)
        assert started[0].target is alert_service._refresh_in_app_context


class TestAlertMaintenance:
    def test_create_and_list_by_priority(self, db_session, company_a):
        alert_service.create_alert(company_a.id, alert_type="OTHER", title="Low", message="m", priority="LOW")
        alert_service.create_alert(company_a.id, alert_type="OTHER", title="High", message="m", priority="HIGH")
        alert_service.create_alert(company_a.id, alert_type="DUE_DATE", title="Mid", message="m")

        result = alert_service.list_alerts(company_a.id)
        assert [a["title"] for a in result["items"]] == ["High", "Mid", "Low"]

        only_other = alert_service.list_alerts(company_a.id, alert_type="OTHER")
        assert only_other["count"] == 2

    def test_manual_create_validates(self, db_session, company_a):
        with pytest.raises(ValidationError):
            alert_service.create_alert(company_a.id, alert_type="NOPE", title="t", message="m")
        with pytest.raises(ValidationError):
            alert_service.create_alert(company_a.id, alert_type="OTHER", title=" ", message="m")

    def test_read_flags_and_cleanup(self, db_session, company_a, company_b):
        a1 = alert_service.create_alert(company_a.id, alert_type="OTHER", title="1", message="m")
        alert_service.create_alert(company_a.id, alert_type="OTHER", title="2", message="m")
        alert_service.create_alert(company_b.id, alert_type="OTHER", title="b", message="m")

        assert alert_service.mark_read(company_a.id, a1.id).is_read is True
        assert alert_service.list_alerts(company_a.id, is_read=False)["count"] == 1

        assert alert_service.mark_all_read(company_a.id) == 1
        assert alert_service.delete_read_alerts(company_a.id) == 2

        # Other tenant untouched
        assert alert_service.list_alerts(company_b.id)["count"] == 1

    def test_cross_tenant_alert_is_not_found(self, db_session, company_a, company_b):
        alert = alert_service.create_alert(company_b.id, alert_type="OTHER", title="b", message="m")
        assert alert_service.get_alert(company_a.id, alert.id) is None
        assert alert_service.mark_read(company_a.id, alert.id) is None
        assert alert_service.delete_alert(company_a.id, alert.id) is False

    def test_stats(self, db_session, company_a):
        alert_service.create_alert(company_a.id, alert_type="OTHER", title="1", message="m", priority="HIGH")
        a2 = alert_service.create_alert(company_a.id, alert_type="DUE_DATE", title="2", message="m")
        alert_service.mark_read(company_a.id, a2.id)

        stats = alert_service.alert_stats(company_a.id)
        assert stats["total"] == 2
        assert stats["unread"] == 1
        assert {row["type"]: row["count"] for row in stats["by_type"]} == {"OTHER": 1, "DUE_DATE": 1}
        assert {row["priority"]: row["count"] for row in stats["by_priority"]} == {"HIGH": 1, "MEDIUM": 1}

    def test_check_alerts_marks_read_then_scans(self, db_session, company_a, make_product):
        alert_service.create_alert(company_a.id, alert_type="OTHER", title="old", message="m")
        make_product(company_a, code="L", name="Lowish", stock=2)

        result = alert_service.check_alerts(company_a.id)

        assert result == {"marked_read": 1, "created": 1}
        assert alert_service.list_alerts(company_a.id, is_read=False)["count"] == 1
