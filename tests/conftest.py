"""
Pytest configuration for token ledger tests.

Makes the src/ layout importable without an install and provides the shared
ledger fixtures.
"""

import os
import sys

import pytest

# Add the src directory to the Python path to help with imports
src_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src"))
if src_root not in sys.path:
    sys.path.insert(0, src_root)

from tokenledger.core.config import config  # noqa: E402
from tokenledger.core.ledger import TokenLedger  # noqa: E402
from tokenledger.core.notifications import NotificationManager  # noqa: E402

INITIAL_SUPPLY = 1_000_000


@pytest.fixture
def notifications():
    return NotificationManager()


@pytest.fixture
def ledger(notifications):
    """Ledger with the whole supply owned by account A."""
    return TokenLedger("ERC20Token", "ERT", INITIAL_SUPPLY, "A", notifications=notifications)


@pytest.fixture
def temp_db(monkeypatch, tmp_path):
    """Point the configured database at a temporary file."""
    db_path = tmp_path / "ledger.db"
    monkeypatch.setattr(config, "db_path", db_path)
    from tokenledger.core.db import db
    db.init_db()
    return db_path
