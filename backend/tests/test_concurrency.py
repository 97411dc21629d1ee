# Overview: Threaded tests for order numbering and payment allocation under contention.

"""
Concurrency tests run against a file-backed SQLite database so that every
worker thread gets its own connection and the write lock is really contended.
"""
import os
import tempfile
import threading
import unittest

from posledger import create_app
from posledger.extensions import db
from posledger.models import Branch, Customer, Order, DuePayment, DuePaymentAllocation
from posledger.services import order_service, due_payment_service, sequence_service
from posledger.services.due_payment_service import AllocationError
from posledger.services.ledger_schemas import OrderDraft, PaymentDraft, AllocationRequest


class ConcurrencyTests(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        db_path = os.path.join(self.tmpdir.name, "concurrency.db")
        self.app = create_app({
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
            "LEDGER_RETRY_ATTEMPTS": 5,
            "LEDGER_RETRY_BACKOFF": 0.01,
        })

        with self.app.app_context():
            db.drop_all()
            db.create_all()

            branch = Branch(name="Concurrency Branch", code="CONC")
            db.session.add(branch)
            db.session.commit()
            self.branch_id = branch.id

            customer = Customer(branch_id=self.branch_id, name="Concurrent Customer")
            db.session.add(customer)
            db.session.commit()
            self.customer_id = customer.id

    def tearDown(self):
        with self.app.app_context():
            db.session.remove()
            db.drop_all()
            db.session.remove()
            db.engine.dispose()
        self.tmpdir.cleanup()

    def _run_threads(self, target, args_list):
        results = []
        errors = []
        lock = threading.Lock()

        def worker(*args):
            with self.app.app_context():
                try:
                    value = target(*args)
                    with lock:
                        results.append(value)
                except Exception as exc:
                    with lock:
                        errors.append(exc)
                finally:
                    db.session.remove()

        threads = [threading.Thread(target=worker, args=args) for args in args_list]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        return results, errors

    def test_order_numbers_unique_and_gap_free(self):
        def create(i):
            draft = OrderDraft(subtotal_cents=100 * (i + 1), branch_id=self.branch_id)
            return order_service.create_order(draft).order_number

        created, errors = self._run_threads(create, [(i,) for i in range(12)])

        self.assertFalse(errors)
        self.assertEqual(len(created), len(set(created)))
        self.assertEqual(sorted(int(n) for n in created), list(range(1, 13)))

        with self.app.app_context():
            self.assertEqual(sequence_service.current_order_number(), "12")
            numbers = [int(o.order_number) for o in db.session.query(Order).order_by(Order.id).all()]
            self.assertEqual(numbers, sorted(numbers))

    def test_first_use_counter_creation_race(self):
        created, errors = self._run_threads(sequence_service.next_order_number, [() for _ in range(8)])

        self.assertFalse(errors)
        self.assertEqual(sorted(int(n) for n in created), list(range(1, 9)))

    def test_concurrent_payments_cannot_overpay_order(self):
        with self.app.app_context():
            draft = OrderDraft(
                subtotal_cents=10000,
                status="completed",
                payment_status="due",
                customer_id=self.customer_id,
            )
            order_id = order_service.create_order(draft).id

        def pay():
            return due_payment_service.record_payment_with_allocations(
                PaymentDraft(customer_id=self.customer_id, amount_cents=6000),
                [AllocationRequest(order_id=order_id, amount_cents=6000)],
            ).id

        recorded, errors = self._run_threads(pay, [() for _ in range(2)])

        self.assertEqual(len(recorded), 1)
        self.assertEqual(len(errors), 1)
        self.assertIsInstance(errors[0], AllocationError)

        with self.app.app_context():
            order = db.session.get(Order, order_id)
            self.assertEqual(order.paid_amount_cents, 6000)
            self.assertEqual(order.payment_status, "partial")
            self.assertEqual(db.session.query(DuePayment).count(), 1)
            self.assertEqual(db.session.query(DuePaymentAllocation).count(), 1)

    def test_concurrent_payments_settle_exactly(self):
        with self.app.app_context():
            draft = OrderDraft(
                subtotal_cents=10000,
                payment_status="due",
                customer_id=self.customer_id,
            )
            order_id = order_service.create_order(draft).id

        def pay():
            return due_payment_service.record_payment_with_allocations(
                PaymentDraft(customer_id=self.customer_id, amount_cents=2500),
                [AllocationRequest(order_id=order_id, amount_cents=2500)],
            ).id

        recorded, errors = self._run_threads(pay, [() for _ in range(4)])

        self.assertFalse(errors)
        self.assertEqual(len(recorded), 4)
        with self.app.app_context():
            order = db.session.get(Order, order_id)
            self.assertEqual(order.paid_amount_cents, 10000)
            self.assertEqual(order.payment_status, "paid")


if __name__ == "__main__":
    unittest.main()
