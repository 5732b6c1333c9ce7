from .catalog import Widget
from .orders import Order, Status, Transaction, TransactionStatus, Customer
from .auth import User, Token

__all__ = [
    'Widget',
    'Order', 'Status', 'Transaction', 'TransactionStatus', 'Customer',
    'User', 'Token',
]
