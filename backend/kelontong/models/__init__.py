from .products import Product, ProductPatch, CartItem, PRODUCT_DEFAULTS, PRODUCT_POLICY
from .transactions import TransactionType, SaleLineItem, Transaction, FinancialSummary
from .storage import StorageBlob

__all__ = [
    'Product', 'ProductPatch', 'CartItem', 'PRODUCT_DEFAULTS', 'PRODUCT_POLICY',
    'TransactionType', 'SaleLineItem', 'Transaction', 'FinancialSummary',
    'StorageBlob',
]
