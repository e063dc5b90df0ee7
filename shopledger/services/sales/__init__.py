"""
Sale entry services
"""
