from .catalog import CatalogItem, StockMovement
from .sales import Sale, SaleLine, SaleNumberSequence
from .returns import Return
from .auth import User, UserRole, SessionToken
from .security import SecurityEvent

__all__ = [
    'CatalogItem', 'StockMovement',
    'Sale', 'SaleLine', 'SaleNumberSequence',
    'Return',
    'User', 'UserRole', 'SessionToken',
    'SecurityEvent',
]
