"""
Command line driver for persisted token ledgers.

Each mutating command loads the ledger snapshot from the database, applies
one operation, saves the new state and prints the emitted notifications.
"""

import logging
from pathlib import Path
from typing import Optional

import dotenv
import typer

from tokenledger.core.config import config, load_config_from_env
from tokenledger.core.db import db
from tokenledger.core.ledger import TokenLedger, LedgerError

app = typer.Typer(help="Fixed-supply token ledger")

logger = logging.getLogger("tokenledger-cli")


@app.callback()
def main(
    db_path: Optional[Path] = typer.Option(None, help="SQLite database path"),
    log_level: Optional[str] = typer.Option(None, help="Logging level"),
):
    """Load configuration from the environment and prepare the database."""
    env_path = Path.cwd() / ".env"
    if env_path.exists():
        dotenv.load_dotenv(env_path)

    try:
        env_config = load_config_from_env()
        config.db_path = db_path or env_config.db_path
        config.log_level = log_level or env_config.log_level
        config.default_decimals = env_config.default_decimals
        config.event_history_size = env_config.event_history_size
    except ValueError as e:
        # pydantic ValidationError is a ValueError
        typer.echo(f"❌ Invalid configuration: {e}")
        raise typer.Exit(code=1)

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    db.init_db()


def _load_ledger(symbol: str) -> TokenLedger:
    snapshot = db.load_snapshot(symbol)
    if snapshot is None:
        typer.echo(f"❌ No ledger named {symbol} in {config.db_path}")
        raise typer.Exit(code=1)
    ledger = TokenLedger.from_snapshot(snapshot)
    logger.debug(f"Loaded {symbol} ledger from {config.db_path}")
    return ledger


def _echo_event(event):
    fields = ", ".join(f"{k}={v}" for k, v in event.to_dict().items() if k != "event")
    typer.echo(f"📣 {event.to_dict()['event']}({fields})")


def _apply(ledger: TokenLedger, operation, *args):
    """Run a mutating operation and persist the result, exiting 1 on rejection.

    The save fails if another invocation saved the ledger after it was loaded,
    so a reported transition is never overwritten. Notifications are printed
    only once the new state is stored.
    """
    try:
        operation(*args)
    except LedgerError as e:
        typer.echo(f"❌ {e}")
        raise typer.Exit(code=1)

    try:
        db.save_snapshot(ledger.snapshot())
    except db.StaleSnapshotError as e:
        typer.echo(f"❌ Not applied, ledger changed since it was loaded: {e}")
        raise typer.Exit(code=1)

    for event in ledger.notifications.events:
        _echo_event(event)


@app.command()
def init(
    name: str = typer.Option(..., help="Token name"),
    symbol: str = typer.Option(..., help="Token symbol, also the ledger key"),
    supply: int = typer.Option(..., help="Total supply in base units"),
    owner: str = typer.Option(..., help="Account credited with the supply"),
    decimals: Optional[int] = typer.Option(None, help="Display decimals"),
    force: bool = typer.Option(False, help="Replace an existing ledger"),
):
    """Create a ledger with the whole supply owned by one account."""
    if db.load_snapshot(symbol) is not None and not force:
        typer.echo(f"⚠️  Ledger {symbol} already exists (use --force to replace it)")
        raise typer.Exit(code=1)

    try:
        ledger = TokenLedger(name, symbol, supply, owner, decimals=decimals)
    except LedgerError as e:
        typer.echo(f"❌ {e}")
        raise typer.Exit(code=1)

    try:
        db.save_snapshot(ledger.snapshot(), replace=force)
    except db.StaleSnapshotError:
        typer.echo(f"⚠️  Ledger {symbol} already exists (use --force to replace it)")
        raise typer.Exit(code=1)
    typer.echo(f"✅ Created {name} ({symbol}) with supply {supply} owned by {owner}")


@app.command()
def info(symbol: str = typer.Option(..., help="Token symbol")):
    """Show token metadata."""
    ledger = _load_ledger(symbol)
    typer.echo(f"Name:         {ledger.name()}")
    typer.echo(f"Symbol:       {ledger.symbol()}")
    typer.echo(f"Decimals:     {ledger.decimals()}")
    typer.echo(f"Total supply: {ledger.total_supply()}")
    typer.echo(f"Owner:        {ledger.owner}")


@app.command()
def balance(
    account: str,
    symbol: str = typer.Option(..., help="Token symbol"),
):
    """Show the balance of an account."""
    ledger = _load_ledger(symbol)
    typer.echo(f"💰 {account}: {ledger.balance_of(account)} {symbol}")


@app.command()
def allowance(
    owner: str,
    spender: str,
    symbol: str = typer.Option(..., help="Token symbol"),
):
    """Show how much a spender may still move out of an owner's balance."""
    ledger = _load_ledger(symbol)
    typer.echo(f"🔑 {spender} may spend {ledger.allowance(owner, spender)} {symbol} of {owner}")


@app.command()
def holders(symbol: str = typer.Option(..., help="Token symbol")):
    """List all accounts with a non-zero balance."""
    ledger = _load_ledger(symbol)
    for account, amount in sorted(ledger.holders().items()):
        typer.echo(f"{account}\t{amount}")


@app.command()
def transfer(
    to: str,
    amount: int,
    caller: str = typer.Option(..., "--from", help="Sending account"),
    symbol: str = typer.Option(..., help="Token symbol"),
):
    """Send tokens from the calling account."""
    ledger = _load_ledger(symbol)
    _apply(ledger, ledger.transfer, caller, to, amount)
    typer.echo(f"✅ Sent {amount} {symbol} from {caller} to {to}")


@app.command()
def approve(
    spender: str,
    amount: int,
    caller: str = typer.Option(..., "--owner", help="Approving account"),
    symbol: str = typer.Option(..., help="Token symbol"),
):
    """Set (not add to) a spender's allowance over the calling account."""
    ledger = _load_ledger(symbol)
    _apply(ledger, ledger.approve, caller, spender, amount)
    typer.echo(f"✅ {spender} may now spend {amount} {symbol} of {caller}")


@app.command("transfer-from")
def transfer_from(
    from_account: str,
    to: str,
    amount: int,
    caller: str = typer.Option(..., "--spender", help="Account spending its allowance"),
    symbol: str = typer.Option(..., help="Token symbol"),
):
    """Send tokens out of another account using an allowance."""
    ledger = _load_ledger(symbol)
    _apply(ledger, ledger.transfer_from, caller, from_account, to, amount)
    typer.echo(f"✅ {caller} sent {amount} {symbol} from {from_account} to {to}")


@app.command()
def delete(
    symbol: str = typer.Option(..., help="Token symbol"),
    yes: bool = typer.Option(False, "--yes", help="Do not ask for confirmation"),
):
    """Remove a stored ledger."""
    if not yes:
        typer.confirm(f"Delete ledger {symbol}?", abort=True)
    if not db.delete_ledger(symbol):
        typer.echo(f"❌ No ledger named {symbol} in {config.db_path}")
        raise typer.Exit(code=1)
    typer.echo(f"🗑️  Deleted ledger {symbol}")


@app.command("list")
def list_command():
    """List stored ledgers."""
    for symbol in db.list_ledgers():
        snapshot = db.load_snapshot(symbol)
        typer.echo(f"{symbol}: {snapshot.genesis.name}, {len(snapshot.balances)} holders")


if __name__ == "__main__":
    app()
