from .licensing import AccessToken, TokenOrder
from .ledger import Product, SaleTransaction, Customer, DebtLogEntry
from .auth import AdminCredential, AdminSession
from .settings import Setting

__all__ = [
    'AccessToken', 'TokenOrder',
    'Product', 'SaleTransaction', 'Customer', 'DebtLogEntry',
    'AdminCredential', 'AdminSession',
    'Setting',
]
