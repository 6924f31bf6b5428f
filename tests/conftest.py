import pytest
from decimal import Decimal

from punto_venta import create_app
from punto_venta.database import db_session, create_all, drop_all
from punto_venta.models import User, Product, CashAdvanceFund, Setting
from punto_venta.services.settings_service import EXCHANGE_RATE_KEY


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing (in-memory SQLite, no Redis)."""
    app = create_app('config.TestingConfig')
    return app


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session(app):
    """Fresh schema per test."""
    create_all()
    yield db_session
    db_session.remove()
    drop_all()


# Fixtures refresh what they create: request teardown detaches the objects
# and only loaded columns stay readable afterwards.

@pytest.fixture(scope='function')
def admin_user(session):
    user = User(email='admin@test.com', full_name='Ana Admin', role='admin', active=True)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture(scope='function')
def cashier_user(session):
    user = User(email='cajero@test.com', full_name='Carlos Cajero', role='user', active=True)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture(scope='function')
def product(session):
    """Product priced 10.000 USD with 10 units."""
    product = Product(name='Harina PAN', quantity=10, price=Decimal('10.000'), category='Víveres')
    session.add(product)
    session.commit()
    session.refresh(product)
    return product


@pytest.fixture(scope='function')
def second_product(session):
    product = Product(name='Café', quantity=3, price=Decimal('5.800'), category='Víveres')
    session.add(product)
    session.commit()
    session.refresh(product)
    return product


@pytest.fixture(scope='function')
def exchange_rate(session):
    """Global exchange rate of 36.5 local units per USD."""
    session.add(Setting(key=EXCHANGE_RATE_KEY, value='36.5', user_id=None))
    session.commit()
    return Decimal('36.5')


@pytest.fixture(scope='function')
def fund(session):
    """Active fund with 1000 available."""
    fund = CashAdvanceFund(
        initial_amount=Decimal('1000'),
        current_balance=Decimal('1000'),
        description='Fondo caja 1',
        is_active=True,
    )
    session.add(fund)
    session.commit()
    session.refresh(fund)
    return fund


@pytest.fixture(scope='function')
def cashier_client(client, cashier_user):
    """Client logged in as a regular user."""
    with client.session_transaction() as sess:
        sess['user_id'] = cashier_user.id
    return client


@pytest.fixture(scope='function')
def admin_client(client, admin_user):
    """Client logged in as an admin."""
    with client.session_transaction() as sess:
        sess['user_id'] = admin_user.id
    return client
