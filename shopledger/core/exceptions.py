"""
Custom Application Exceptions
"""


class ShopLedgerException(Exception):
    """Base exception for Shop Ledger application"""
    pass


class ValidationError(ShopLedgerException):
    """Raised when data validation fails"""
    pass


class NotFoundError(ShopLedgerException):
    """Raised when a sale, recovery or customer id does not resolve"""

    def __init__(self, entity: str, key):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} {key} not found")


class ConflictError(ShopLedgerException):
    """Raised when a concurrent update to the same sale was detected; retry"""
    pass


class InternalError(ShopLedgerException):
    """Raised when a ledger mutation fails unexpectedly and was rolled back"""
    pass


class IntegrityWarning(UserWarning):
    """Non-fatal: a best-effort side effect of a committed operation failed"""
    pass
