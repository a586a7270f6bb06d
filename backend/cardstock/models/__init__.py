from .tenancy import Store
from .auth import User
from .inventory import Product, Inventory
from .documents import TransferRequest, TransferRequestItem, TransferStatusHistory

__all__ = [
    'Store',
    'User',
    'Product', 'Inventory',
    'TransferRequest', 'TransferRequestItem', 'TransferStatusHistory',
]
