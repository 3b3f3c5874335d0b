"""
Data models for the token ledger.
"""
