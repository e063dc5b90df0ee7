"""Recovery Ledger API endpoints"""

from . import recoveries, ledger_views, maintenance

__all__ = ["recoveries", "ledger_views", "maintenance"]
