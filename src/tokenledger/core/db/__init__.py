"""
SQLite persistence for token ledger snapshots.
"""
