# Overview: Pytest coverage for the flask CLI command groups.

from backoffice.models import Alert, Company


class TestCompaniesCommands:
    def test_create_and_list(self, app, db_session):
        runner = app.test_cli_runner()

        result = runner.invoke(args=["companies", "create", "--name", "Gamma", "--document", "333"])
        assert "PASS Created company: Gamma" in result.output

        dup = runner.invoke(args=["companies", "create", "--name", "Gamma 2", "--document", "333"])
        assert "FAIL" in dup.output
        assert db_session.query(Company).filter_by(document="333").count() == 1

        listed = runner.invoke(args=["companies", "list"])
        assert "Gamma" in listed.output

    def test_deactivate(self, app, db_session, company_a):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["companies", "deactivate", "--company-id", str(company_a.id)])

        assert "PASS" in result.output
        db_session.expire_all()
        assert db_session.get(Company, company_a.id).is_active is False


class TestAlertsCommands:
    def test_refresh_low_stock(self, app, db_session, company_a, make_product):
        make_product(company_a, code="LOW", name="Almost gone", stock=1)
        runner = app.test_cli_runner()

        first = runner.invoke(args=["alerts", "refresh-low-stock", "--company-id", str(company_a.id)])
        second = runner.invoke(args=["alerts", "refresh-low-stock", "--company-id", str(company_a.id)])

        assert "Created 1 low-stock alert(s)" in first.output
        assert "Created 0 low-stock alert(s)" in second.output
        assert db_session.query(Alert).count() == 1

    def test_unknown_company(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["alerts", "refresh-low-stock", "--company-id", "999999"])
        assert "FAIL" in result.output
