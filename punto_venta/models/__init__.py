"""Models package - exports all SQLAlchemy models."""
# Identity
from punto_venta.models.user import User, UserRole

# Inventory and sales
from punto_venta.models.product import Product
from punto_venta.models.sale_group import SaleGroup
from punto_venta.models.sale import Sale

# Cash advance
from punto_venta.models.cash_advance_fund import CashAdvanceFund, DEFAULT_FUND_DESCRIPTION
from punto_venta.models.cash_advance_transaction import CashAdvanceTransaction, TransactionType

# Settings
from punto_venta.models.setting import Setting
from punto_venta.models.exchange_rate_history import ExchangeRateHistory

__all__ = [
    # Identity
    'User', 'UserRole',
    # Inventory and sales
    'Product', 'SaleGroup', 'Sale',
    # Cash advance
    'CashAdvanceFund', 'DEFAULT_FUND_DESCRIPTION', 'CashAdvanceTransaction', 'TransactionType',
    # Settings
    'Setting', 'ExchangeRateHistory',
]
