"""
Pytest fixtures for posledger backend tests.

Provides test database setup, ledger fixtures (branch, customer, due orders),
and test client.
"""

import pytest
from posledger import create_app
from posledger.extensions import db
from posledger.models import Branch, Customer
from posledger.services import order_service
from posledger.services.ledger_schemas import OrderDraft


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LEDGER_RETRY_BACKOFF': 0,
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
def runner(app):
    """Create CLI runner."""
    return app.test_cli_runner()


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
def branch(db_session):
    """Create the main branch."""
    branch = Branch(name="Main Branch", code="MAIN", is_active=True)
    db_session.add(branch)
    db_session.commit()
    return branch


@pytest.fixture(scope='function')
def other_branch(db_session):
    branch = Branch(name="Airport Branch", code="AIRPORT", is_active=True)
    db_session.add(branch)
    db_session.commit()
    return branch


@pytest.fixture(scope='function')
def customer(db_session, branch):
    """Create a credit customer in the main branch."""
    customer = Customer(branch_id=branch.id, name="Rahim", phone="01700000000")
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def other_customer(db_session, branch):
    customer = Customer(branch_id=branch.id, name="Karim")
    db_session.add(customer)
    db_session.commit()
    return customer


def make_due_order(customer, total_cents, branch_id=None):
    """Helper to create a completed credit order for a customer."""
    draft = OrderDraft(
        subtotal_cents=total_cents,
        status="completed",
        payment_method="due",
        payment_status="due",
        customer_id=customer.id,
        customer_name=customer.name,
        branch_id=branch_id if branch_id is not None else customer.branch_id,
    )
    return order_service.create_order(draft)


@pytest.fixture(scope='function')
def due_order(db_session, customer):
    """A 100.00 credit order owned by `customer`."""
    return make_due_order(customer, 10000)
