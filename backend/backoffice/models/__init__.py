from .catalog import Product, ProductUnit, ProductComponent, StockMovement
from .customers import Customer, Account, AccountTransaction, Note
from .orders import Order, OrderItem
from .sales import Sale, SaleItem, SalePayment, DocumentSequence

__all__ = [
    'Product', 'ProductUnit', 'ProductComponent', 'StockMovement',
    'Customer', 'Account', 'AccountTransaction', 'Note',
    'Order', 'OrderItem',
    'Sale', 'SaleItem', 'SalePayment', 'DocumentSequence',
]
