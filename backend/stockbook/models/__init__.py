from .auth import User, SessionToken
from .inventory import Product, StockMovement
from .clients import Client
from .documents import (
    Invoice, InvoiceItem, Bill, BillItem, PurchaseOrder, PurchaseOrderItem, DocumentSequence,
)
from .finance import Transaction
from .settings import UserSettings, CompanyProfile
from .changes import ChangeEvent

__all__ = [
    'User', 'SessionToken',
    'Product', 'StockMovement',
    'Client',
    'Invoice', 'InvoiceItem', 'Bill', 'BillItem', 'PurchaseOrder', 'PurchaseOrderItem',
    'DocumentSequence',
    'Transaction',
    'UserSettings', 'CompanyProfile',
    'ChangeEvent',
]
