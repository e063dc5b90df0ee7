"""
Recovery ledger services
"""
