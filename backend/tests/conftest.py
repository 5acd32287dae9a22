"""
Pytest fixtures for back-office tests.

Provides test database setup, tenant fixtures, products, and test client.
"""

import pytest
from backoffice import create_app
from backoffice.extensions import db
from backoffice.models import Company, Product


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'ALERT_DISPATCH_MODE': 'inline',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def company_a(db_session):
    """Create Company A (first tenant)."""
    company = Company(name="Company A - Acme Ltda", document="11111111000111", is_active=True)
    db_session.add(company)
    db_session.commit()
    return company


@pytest.fixture(scope='function')
def company_b(db_session):
    """Create Company B (second tenant)."""
    company = Company(name="Company B - Beta SA", document="22222222000122", is_active=True)
    db_session.add(company)
    db_session.commit()
    return company


def _insert_product(db_session, company, *, code, name, stock=0, sale_price_cents=1000,
                    cost_price_cents=600, min_stock=5, is_active=True):
    # Fixture setup only; application code moves stock through the ledger
    product = Product(
        company_id=company.id,
        code=code,
        name=name,
        stock=stock,
        sale_price_cents=sale_price_cents,
        cost_price_cents=cost_price_cents,
        min_stock=min_stock,
        is_active=is_active,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def product_a(db_session, company_a):
    """Product in Company A with stock 10, sells for 10.00."""
    return _insert_product(db_session, company_a, code="A-001", name="Widget A", stock=10)


@pytest.fixture(scope='function')
def product_a2(db_session, company_a):
    """Second product in Company A with plenty of stock."""
    return _insert_product(db_session, company_a, code="A-002", name="Gadget A", stock=50,
                          sale_price_cents=2500, cost_price_cents=1500)


@pytest.fixture(scope='function')
def product_b(db_session, company_b):
    """Product in Company B."""
    return _insert_product(db_session, company_b, code="B-001", name="Widget B", stock=10)


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory for extra products: make_product(company, code=..., name=..., stock=...)."""
    def _make(company, **kwargs):
        return _insert_product(db_session, company, **kwargs)
    return _make


@pytest.fixture(scope='function')
def stock_of(db_session):
    """Committed stock of a product, bypassing cached attributes."""
    def _stock(product):
        db_session.expire_all()
        return db_session.get(Product, product.id).stock
    return _stock


@pytest.fixture(scope='function')
def headers_a(company_a):
    """Headers the upstream authentication layer forwards for Company A."""
    return {'X-Company-Id': str(company_a.id)}


@pytest.fixture(scope='function')
def headers_b(company_b):
    """Headers the upstream authentication layer forwards for Company B."""
    return {'X-Company-Id': str(company_b.id)}
