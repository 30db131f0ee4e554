from .auth import User
from .inventory import Product, StockAdjustment
from .sales import Transaction, TransactionLine

__all__ = [
    'User',
    'Product', 'StockAdjustment',
    'Transaction', 'TransactionLine',
]
