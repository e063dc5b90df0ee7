"""Sales API endpoints"""

from . import entries, price_history

__all__ = ["entries", "price_history"]
