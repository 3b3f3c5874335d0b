import logging
import sqlite3
import os
from typing import List, Optional

from tokenledger.core.config import config
from tokenledger.core.models.genesis import TokenGenesis
from tokenledger.core.models.snapshot import LedgerSnapshot

logger = logging.getLogger(__name__)


class StaleSnapshotError(Exception):
    """Exception raised when a ledger was saved after the snapshot being stored was loaded."""

    pass


def get_connection():
    return sqlite3.connect(config.db_path)


def dict_from_row(cursor, row):
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


# ───────────────────────────────
# 🏗️  Initialization
# ───────────────────────────────


def init_db():
    # Ensure the database directory exists
    os.makedirs(config.db_path.parent, exist_ok=True)

    with get_connection() as conn:
        cur = conn.cursor()

        # Amounts are TEXT: 256-bit values do not fit SQLite INTEGER
        cur.execute(
            "CREATE TABLE IF NOT EXISTS ledgers ("
            "symbol TEXT PRIMARY KEY, "
            "name TEXT, "
            "decimals INTEGER, "
            "initial_supply TEXT, "
            "owner TEXT, "
            "version INTEGER DEFAULT 0"
            ")"
        )

        cur.execute(
            "CREATE TABLE IF NOT EXISTS balances ("
            "symbol TEXT, "
            "account TEXT, "
            "amount TEXT, "
            "PRIMARY KEY (symbol, account)"
            ")"
        )

        cur.execute(
            "CREATE TABLE IF NOT EXISTS allowances ("
            "symbol TEXT, "
            "owner TEXT, "
            "spender TEXT, "
            "amount TEXT, "
            "PRIMARY KEY (symbol, owner, spender)"
            ")"
        )

        conn.commit()


# ───────────────────────────────
# 💾 Snapshots
# ───────────────────────────────


def save_snapshot(snapshot: LedgerSnapshot, replace: bool = False) -> int:
    """Store a snapshot as the new state of its ledger.

    The stored version must still equal snapshot.version, i.e. nobody saved
    the ledger since the snapshot's state was loaded. The check and the
    writes run in one IMMEDIATE transaction so concurrent savers serialize.

    Args:
        snapshot: State to store, keyed by token symbol
        replace: Overwrite whatever is stored without the version check

    Returns:
        int: The new stored version

    Raises:
        StaleSnapshotError: If the ledger was saved since the snapshot was loaded
    """
    genesis = snapshot.genesis
    symbol = genesis.symbol

    connection = get_connection()

    # Add a small timeout to avoid immediate lock failures
    connection.execute("PRAGMA busy_timeout = 5000")  # 5 second timeout

    # Take the write lock before reading the version
    connection.execute("BEGIN IMMEDIATE TRANSACTION")

    try:
        cur = connection.cursor()
        cur.execute("SELECT version FROM ledgers WHERE symbol = :symbol", {"symbol": symbol})
        row = cur.fetchone()
        stored_version = row[0] if row is not None else 0

        if row is not None and not replace and stored_version != snapshot.version:
            raise StaleSnapshotError(
                f"Ledger {symbol} is at version {stored_version}, "
                f"snapshot was taken at version {snapshot.version}"
            )
        version = stored_version + 1

        cur.execute(
            "INSERT OR REPLACE INTO ledgers (symbol, name, decimals, initial_supply, owner, version) "
            "VALUES (:symbol, :name, :decimals, :initial_supply, :owner, :version)",
            {
                "symbol": symbol,
                "name": genesis.name,
                "decimals": genesis.decimals,
                "initial_supply": str(genesis.initial_supply),
                "owner": genesis.owner,
                "version": version,
            },
        )
        cur.execute("DELETE FROM balances WHERE symbol = :symbol", {"symbol": symbol})
        cur.execute("DELETE FROM allowances WHERE symbol = :symbol", {"symbol": symbol})
        cur.executemany(
            "INSERT INTO balances (symbol, account, amount) VALUES (?, ?, ?)",
            [(symbol, account, str(amount)) for account, amount in snapshot.balances.items()],
        )
        cur.executemany(
            "INSERT INTO allowances (symbol, owner, spender, amount) VALUES (?, ?, ?, ?)",
            [
                (symbol, owner, spender, str(amount))
                for owner, spenders in snapshot.allowances.items()
                for spender, amount in spenders.items()
            ],
        )

        connection.commit()

    except Exception:
        connection.rollback()
        raise

    finally:
        connection.close()

    logger.info(f"Saved {symbol} ledger at version {version} with {len(snapshot.balances)} balances")
    return version


def load_snapshot(symbol: str) -> Optional[LedgerSnapshot]:
    """Load the stored state of a ledger.

    Args:
        symbol: Token symbol the ledger was saved under

    Returns:
        Optional[LedgerSnapshot]: Stored state or None if no such ledger exists
    """
    with get_connection() as conn:
        conn.row_factory = dict_from_row
        cur = conn.cursor()
        # One read transaction so the rows come from a single saved version
        cur.execute("BEGIN")

        cur.execute("SELECT * FROM ledgers WHERE symbol = :symbol", {"symbol": symbol})
        row = cur.fetchone()
        if row is None:
            return None

        genesis = TokenGenesis.from_dict(row)

        cur.execute(
            "SELECT account, amount FROM balances WHERE symbol = :symbol", {"symbol": symbol}
        )
        balances = {r["account"]: int(r["amount"]) for r in cur.fetchall()}

        cur.execute(
            "SELECT owner, spender, amount FROM allowances WHERE symbol = :symbol",
            {"symbol": symbol},
        )
        allowances = {}
        for r in cur.fetchall():
            allowances.setdefault(r["owner"], {})[r["spender"]] = int(r["amount"])

    return LedgerSnapshot(
        genesis=genesis, balances=balances, allowances=allowances, version=row["version"]
    )


def list_ledgers() -> List[str]:
    """Return the symbols of all stored ledgers."""
    with get_connection() as conn:
        cur = conn.cursor()
        cur.execute("SELECT symbol FROM ledgers ORDER BY symbol")
        return [row[0] for row in cur.fetchall()]


def delete_ledger(symbol: str) -> bool:
    """Remove a ledger and all of its rows.

    Returns:
        bool: True if the ledger existed
    """
    with get_connection() as conn:
        cur = conn.cursor()
        cur.execute("SELECT 1 FROM ledgers WHERE symbol = :symbol", {"symbol": symbol})
        existed = cur.fetchone() is not None
        for table in ("ledgers", "balances", "allowances"):
            cur.execute(f"DELETE FROM {table} WHERE symbol = :symbol", {"symbol": symbol})
        conn.commit()

    if existed:
        logger.info(f"Deleted {symbol} ledger")
    return existed
