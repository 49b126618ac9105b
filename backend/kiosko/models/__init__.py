from .inventory import Product, StockMovement
from .sales import Sale, SaleItem
from .cash_register import CashRegisterSession, CashMovement
from .held_orders import HeldOrderRecord
from .documents import DocumentSequence
from .settings import Setting

__all__ = [
    'Product', 'StockMovement',
    'Sale', 'SaleItem',
    'CashRegisterSession', 'CashMovement',
    'HeldOrderRecord',
    'DocumentSequence',
    'Setting',
]
