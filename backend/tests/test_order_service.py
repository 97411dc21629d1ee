# Overview: Pytest coverage for order creation, credit sales and lifecycle.

"""
Order Ledger Tests

Test Coverage:
- Numbering: every created order gets the next sequential number
- Credit sales: due/paid initialization, customer resolution and creation
- Atomicity: a failed creation leaves no order, no items, no consumed number
- Lifecycle: status updates, accept/reject, completed_at stamping
- Items: adding lines recomputes totals; refused once a balance exists
- Deletion: refused while allocations reference the order
"""

import pytest
from posledger.models import Customer, Order, OrderItem
from posledger.services import order_service, sequence_service, due_payment_service
from posledger.services.customer_service import CustomerNotFoundError
from posledger.services.ledger_schemas import OrderDraft, LineItemDraft, PaymentDraft, AllocationRequest
from posledger.services.order_service import OrderError, OrderNotFoundError
from posledger.validation import ValidationError, NotFoundError


def _items():
    return [
        LineItemDraft(quantity=2, unit_price_cents=1500, product_id=1, product_name="Chicken Biryani"),
        LineItemDraft(quantity=1, unit_price_cents=500, product_id=2, product_name="Borhani"),
    ]


class TestCreateOrder:

    def test_paid_order_gets_sequential_number(self, db_session, branch):
        first = order_service.create_order(OrderDraft(subtotal_cents=1000, branch_id=branch.id))
        second = order_service.create_order(OrderDraft(subtotal_cents=2000, branch_id=branch.id))

        assert first.order_number == "1"
        assert second.order_number == "2"
        assert first.payment_status == "paid"
        assert first.due_amount_cents is None
        assert first.paid_amount_cents == 0

    def test_total_is_subtotal_minus_discount(self, db_session):
        order = order_service.create_order(OrderDraft(subtotal_cents=5000, discount_cents=750))
        assert order.total_cents == 4250

    def test_mismatched_total_rejected(self, db_session):
        with pytest.raises(ValidationError):
            order_service.create_order(OrderDraft(subtotal_cents=5000, total_cents=4000))
        assert sequence_service.current_order_number() is None

    def test_partial_status_not_accepted_at_creation(self, db_session, customer):
        draft = OrderDraft(subtotal_cents=1000, payment_status="partial", customer_id=customer.id)
        with pytest.raises(ValidationError):
            order_service.create_order(draft)

    def test_due_order_initializes_balance(self, db_session, customer):
        draft = OrderDraft(
            subtotal_cents=10000,
            payment_status="due",
            payment_method="due",
            customer_id=customer.id,
        )
        order = order_service.create_order(draft)

        assert order.payment_status == "due"
        assert order.due_amount_cents == 10000
        assert order.paid_amount_cents == 0
        assert order.customer_id == customer.id

    def test_due_order_with_unknown_customer(self, db_session):
        draft = OrderDraft(subtotal_cents=1000, payment_status="due", customer_id=999)
        with pytest.raises(CustomerNotFoundError):
            order_service.create_order(draft)
        assert db_session.query(Order).count() == 0
        assert sequence_service.current_order_number() is None

    def test_paid_order_with_unknown_customer(self, db_session):
        draft = OrderDraft(subtotal_cents=1000, payment_status="paid", customer_id=9999)
        with pytest.raises(CustomerNotFoundError):
            order_service.create_order(draft)
        with pytest.raises(CustomerNotFoundError):
            order_service.create_order_with_items(
                OrderDraft(payment_status="paid", customer_id=9999), _items(),
            )
        assert db_session.query(Order).count() == 0
        assert sequence_service.current_order_number() is None

    def test_paid_order_keeps_known_customer(self, db_session, customer):
        order = order_service.create_order(OrderDraft(subtotal_cents=1000, customer_id=customer.id))
        assert order.customer_id == customer.id
        assert order.due_amount_cents is None

    def test_due_order_requires_customer(self, db_session):
        with pytest.raises(ValidationError):
            order_service.create_order(OrderDraft(subtotal_cents=1000, payment_status="due"))

    def test_create_order_does_not_create_customers(self, db_session):
        draft = OrderDraft(subtotal_cents=1000, payment_status="due", customer_name="Walk-in Jamal")
        with pytest.raises(ValidationError):
            order_service.create_order(draft)
        assert db_session.query(Customer).count() == 0

    def test_unknown_branch(self, db_session):
        with pytest.raises(NotFoundError):
            order_service.create_order(OrderDraft(subtotal_cents=1000, branch_id=42))
        assert sequence_service.current_order_number() is None

    def test_completed_order_is_stamped(self, db_session):
        order = order_service.create_order(OrderDraft(subtotal_cents=1000, status="completed"))
        assert order.completed_at is not None


class TestCreateOrderWithItems:

    def test_items_and_subtotal(self, db_session, branch):
        order = order_service.create_order_with_items(OrderDraft(branch_id=branch.id), _items())

        items = order_service.get_order_items(order.id)
        assert [i.product_name for i in items] == ["Chicken Biryani", "Borhani"]
        assert [i.total_cents for i in items] == [3000, 500]
        assert order.subtotal_cents == 3500
        assert order.total_cents == 3500

    def test_due_order_creates_customer_by_name(self, db_session, branch):
        draft = OrderDraft(
            payment_status="due",
            customer_name="Nusrat",
            customer_phone="01800000000",
            branch_id=branch.id,
        )
        order = order_service.create_order_with_items(draft, _items())

        customer = db_session.query(Customer).filter_by(name="Nusrat").one()
        assert order.customer_id == customer.id
        assert customer.branch_id == branch.id
        assert customer.phone == "01800000000"
        assert order.due_amount_cents == 3500

    def test_due_order_reuses_customer_by_name(self, db_session, customer):
        draft = OrderDraft(payment_status="due", customer_name=customer.name, branch_id=customer.branch_id)
        order = order_service.create_order_with_items(draft, _items())

        assert order.customer_id == customer.id
        assert db_session.query(Customer).count() == 1

    def test_name_lookup_prefers_branch_customer(self, db_session, branch):
        shared = Customer(name="Tanvir", branch_id=None)
        local = Customer(name="Tanvir", branch_id=branch.id)
        db_session.add_all([shared, local])
        db_session.commit()

        draft = OrderDraft(payment_status="due", customer_name="Tanvir", branch_id=branch.id)
        order = order_service.create_order_with_items(draft, _items())
        assert order.customer_id == local.id

    def test_name_lookup_ignores_other_branches(self, db_session, branch, other_branch):
        stranger = Customer(name="Mitu", branch_id=other_branch.id)
        db_session.add(stranger)
        db_session.commit()

        draft = OrderDraft(payment_status="due", customer_name="Mitu", branch_id=branch.id)
        order = order_service.create_order_with_items(draft, _items())
        assert order.customer_id != stranger.id
        assert db_session.query(Customer).filter_by(name="Mitu").count() == 2

    def test_bad_item_rolls_back_everything(self, db_session, branch):
        items = _items() + [LineItemDraft(quantity=0, unit_price_cents=100)]
        draft = OrderDraft(payment_status="due", customer_name="Ghost", branch_id=branch.id)

        with pytest.raises(ValidationError):
            order_service.create_order_with_items(draft, items)

        assert db_session.query(Order).count() == 0
        assert db_session.query(OrderItem).count() == 0
        assert db_session.query(Customer).count() == 0
        assert sequence_service.current_order_number() is None

    def test_item_total_mismatch(self, db_session):
        items = [LineItemDraft(quantity=2, unit_price_cents=500, total_cents=900)]
        with pytest.raises(ValidationError):
            order_service.create_order_with_items(OrderDraft(), items)

    def test_subtotal_required_without_items(self, db_session):
        with pytest.raises(ValidationError):
            order_service.create_order_with_items(OrderDraft(), [])


class TestOrderLifecycle:

    def test_update_status(self, db_session):
        order = order_service.create_order(OrderDraft(subtotal_cents=1000, status="qr-pending"))
        updated = order_service.update_order_status(order.id, "completed")
        assert updated.status == "completed"
        assert updated.completed_at is not None

    def test_invalid_status(self, db_session):
        order = order_service.create_order(OrderDraft(subtotal_cents=1000))
        with pytest.raises(ValidationError):
            order_service.update_order_status(order.id, "shipped")

    def test_unknown_order(self, db_session):
        with pytest.raises(OrderNotFoundError):
            order_service.update_order_status(12345, "completed")

    def test_accept_and_reject(self, db_session):
        a = order_service.create_order(OrderDraft(subtotal_cents=1000, status="qr-pending"))
        b = order_service.create_order(OrderDraft(subtotal_cents=1000, status="qr-pending"))

        assert order_service.accept_order(a.id).status == "confirmed"
        assert order_service.reject_order(b.id).status == "cancelled"

    def test_status_change_keeps_payment_fields(self, db_session, due_order):
        updated = order_service.update_order_status(due_order.id, "cancelled")
        assert updated.payment_status == "due"
        assert updated.due_amount_cents == 10000


class TestOrderItems:

    def test_add_item_recomputes_totals(self, db_session, customer):
        draft = OrderDraft(status="confirmed", payment_status="due", customer_id=customer.id)
        order = order_service.create_order_with_items(draft, _items())

        order_service.add_order_item(order.id, LineItemDraft(quantity=3, unit_price_cents=200))

        order = order_service.get_order(order.id)
        assert order.subtotal_cents == 4100
        assert order.total_cents == 4100
        assert order.due_amount_cents == 4100
        assert len(order_service.get_order_items(order.id)) == 3

    def test_add_item_to_completed_order_rejected(self, db_session):
        order = order_service.create_order(OrderDraft(subtotal_cents=1000, status="completed"))
        with pytest.raises(OrderError):
            order_service.add_order_item(order.id, LineItemDraft(quantity=1, unit_price_cents=100))

    def test_add_item_after_payment_rejected(self, db_session, customer):
        draft = OrderDraft(subtotal_cents=1000, status="confirmed", payment_status="due", customer_id=customer.id)
        order = order_service.create_order(draft)
        due_payment_service.record_payment_with_allocations(
            PaymentDraft(customer_id=customer.id, amount_cents=400),
            [AllocationRequest(order_id=order.id, amount_cents=400)],
        )

        with pytest.raises(OrderError):
            order_service.add_order_item(order.id, LineItemDraft(quantity=1, unit_price_cents=100))
        assert order_service.get_order(order.id).total_cents == 1000

    def test_items_of_unknown_order(self, db_session):
        with pytest.raises(OrderNotFoundError):
            order_service.get_order_items(999)


class TestOrderQueries:

    def test_list_filters(self, db_session, customer, due_order):
        order_service.create_order(OrderDraft(subtotal_cents=500))

        assert len(order_service.list_orders()) == 2
        assert [o.id for o in order_service.list_orders(customer_id=customer.id)] == [due_order.id]
        assert [o.id for o in order_service.list_orders(payment_status="due")] == [due_order.id]
        assert len(order_service.list_orders(status="completed")) == 1


class TestDeleteOrder:

    def test_delete_order_with_items(self, db_session):
        order = order_service.create_order_with_items(OrderDraft(), _items())
        order_service.delete_order(order.id)

        assert db_session.query(Order).count() == 0
        assert db_session.query(OrderItem).count() == 0

    def test_delete_refused_with_allocations(self, db_session, customer, due_order):
        due_payment_service.record_payment_with_allocations(
            PaymentDraft(customer_id=customer.id, amount_cents=1000),
            [AllocationRequest(order_id=due_order.id, amount_cents=1000)],
        )
        with pytest.raises(OrderError):
            order_service.delete_order(due_order.id)
        assert order_service.get_order(due_order.id) is not None
