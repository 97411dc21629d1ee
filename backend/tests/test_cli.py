# Overview: Pytest coverage for the Flask CLI command groups.

from posledger.extensions import db
from posledger.models import Branch, Order

from conftest import make_due_order


class TestSystemCommands:

    def test_init_db_creates_branch(self, runner, db_session):
        result = runner.invoke(args=['system', 'init-db', '--branch', 'Dhanmondi', '--branch-code', 'DHN'])
        assert result.exit_code == 0, result.output
        assert 'Created branch: Dhanmondi' in result.output
        assert db_session.query(Branch).filter_by(code='DHN').count() == 1

        result = runner.invoke(args=['system', 'init-db', '--branch', 'Dhanmondi', '--branch-code', 'DHN'])
        assert 'Using existing branch' in result.output
        assert db_session.query(Branch).filter_by(code='DHN').count() == 1


class TestSequenceCommands:

    def test_show_and_next(self, runner, db_session):
        result = runner.invoke(args=['sequence', 'show'])
        assert 'No order numbers allocated yet' in result.output

        result = runner.invoke(args=['sequence', 'next'])
        assert result.exit_code == 0
        assert result.output.strip() == '1'

        result = runner.invoke(args=['sequence', 'show'])
        assert 'Last order number: 1' in result.output


class TestDueCommands:

    def test_summary(self, runner, db_session, customer):
        result = runner.invoke(args=['due', 'summary'])
        assert 'No customers with outstanding dues or credit' in result.output

        make_due_order(customer, 4550)
        result = runner.invoke(args=['due', 'summary'])
        assert result.exit_code == 0
        assert 'Rahim' in result.output
        assert 'balance=     45.50' in result.output

    def test_summary_unknown_customer(self, runner, db_session):
        result = runner.invoke(args=['due', 'summary', '--customer-id', '99'])
        assert result.exit_code != 0
        assert 'Customer 99 not found' in result.output

    def test_audit(self, runner, db_session, customer, due_order):
        result = runner.invoke(args=['due', 'audit'])
        assert result.exit_code == 0
        assert 'PASS Ledger consistent' in result.output

        order = db.session.get(Order, due_order.id)
        order.paid_amount_cents = 100
        db.session.commit()

        result = runner.invoke(args=['due', 'audit', '--customer-id', str(customer.id)])
        assert result.exit_code == 1
        assert 'order_paid_amount' in result.output
