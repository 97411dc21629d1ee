from .tenancy import Branch
from .customers import Customer
from .sequence import OrderSequenceCounter
from .orders import Order, OrderItem
from .due_payments import DuePayment, DuePaymentAllocation

__all__ = [
    'Branch',
    'Customer',
    'OrderSequenceCounter',
    'Order', 'OrderItem',
    'DuePayment', 'DuePaymentAllocation',
]
