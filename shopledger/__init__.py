"""Shop Ledger: sale balance and payment recovery service"""

__version__ = "1.0.0"
