"""Cart accumulation and order finalization."""
from .order_finalizer import CustomerSnapshot, Operator, OrderFinalizer, OrderPayload, PaymentStatus
from .transaction import Priority, Stage, Transaction

__all__ = [
    'CustomerSnapshot',
    'Operator',
    'OrderFinalizer',
    'OrderPayload',
    'PaymentStatus',
    'Priority',
    'Stage',
    'Transaction',
]
