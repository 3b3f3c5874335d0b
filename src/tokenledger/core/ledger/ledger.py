"""
Core ledger engine for fungible tokens.

This module provides the TokenLedger class that holds balances and
allowances, validates and applies transfers, and publishes Transfer and
Approval notifications to its NotificationManager.
"""

import logging
import threading
from typing import Dict, Optional

from tokenledger.core.config import config
from tokenledger.core.models.amount import MAX_DECIMALS, MAX_UINT256
from tokenledger.core.models.events import TransferEvent, ApprovalEvent
from tokenledger.core.models.genesis import TokenGenesis
from tokenledger.core.models.snapshot import LedgerSnapshot
from tokenledger.core.notifications import NotificationManager

logger = logging.getLogger(__name__)


class LedgerError(Exception):
    """Base exception for rejected ledger operations."""

    pass


class InsufficientBalanceError(LedgerError):
    """Exception raised when a debit exceeds the account balance."""

    pass


class AllowanceTooLowError(LedgerError):
    """Exception raised when a delegated debit exceeds the remaining allowance."""

    pass


class InvalidAccountError(LedgerError):
    """Exception raised for a malformed account identifier."""

    pass


class InvalidAmountError(LedgerError):
    """Exception raised for an amount outside the unsigned 256-bit range."""

    pass


def require_account(account) -> str:
    if not isinstance(account, str) or not account:
        raise InvalidAccountError(f"Invalid account identifier: {account!r}")
    return account


def require_amount(amount) -> int:
    # bool is an int subclass but never a valid amount
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmountError(f"Amount must be an integer, got {amount!r}")
    if amount < 0 or amount > MAX_UINT256:
        raise InvalidAmountError(f"Amount out of range: {amount}")
    return amount


class TokenLedger:
    """
    Fixed-supply fungible token ledger.

    All state is guarded by a single re-entrant lock: every operation runs as
    one indivisible step, and notifications are published before the lock is
    released so observers see them in transition order.
    """

    def __init__(
        self,
        name: str,
        symbol: str,
        initial_supply: int,
        owner: str,
        decimals: Optional[int] = None,
        notifications: Optional[NotificationManager] = None,
    ):
        """Create a ledger with the whole supply credited to the owner.

        Args:
            name: Token name
            symbol: Token symbol
            initial_supply: Total supply in base units, fixed for the ledger's lifetime
            owner: Account credited with the initial supply
            decimals: Display decimals (default: config.default_decimals)
            notifications: Manager receiving Transfer/Approval events

        Raises:
            LedgerError: If any argument is malformed
        """
        if decimals is None:
            decimals = config.default_decimals
        if not isinstance(name, str) or not name:
            raise LedgerError("Token name must be a non-empty string")
        if not isinstance(symbol, str) or not symbol:
            raise LedgerError("Token symbol must be a non-empty string")
        if isinstance(decimals, bool) or not isinstance(decimals, int) \
                or not 0 <= decimals <= MAX_DECIMALS:
            raise LedgerError(f"Decimals must be an integer between 0 and {MAX_DECIMALS}")
        require_account(owner)
        require_amount(initial_supply)

        genesis = TokenGenesis(
            name=name,
            symbol=symbol,
            initial_supply=initial_supply,
            owner=owner,
            decimals=decimals,
        )
        self._setup(genesis, notifications)
        if initial_supply:
            self._balances[owner] = initial_supply

        logger.info(f"Created {symbol} ledger with supply {initial_supply} owned by {owner}")

    def _setup(self, genesis: TokenGenesis, notifications: Optional[NotificationManager]) -> None:
        self._genesis = genesis
        self._balances: Dict[str, int] = {}
        self._allowances: Dict[str, Dict[str, int]] = {}
        # Version of the stored state this ledger was restored from, 0 if never stored
        self._version = 0
        self.notifications = notifications or NotificationManager()
        self._lock = threading.RLock()

    @classmethod
    def from_genesis(
        cls, genesis: TokenGenesis, notifications: Optional[NotificationManager] = None
    ) -> "TokenLedger":
        return cls(
            name=genesis.name,
            symbol=genesis.symbol,
            initial_supply=genesis.initial_supply,
            owner=genesis.owner,
            decimals=genesis.decimals,
            notifications=notifications,
        )

    @classmethod
    def from_snapshot(
        cls, snapshot: LedgerSnapshot, notifications: Optional[NotificationManager] = None
    ) -> "TokenLedger":
        """Restore a ledger from a snapshot.

        No notifications are emitted for the restored state. The snapshot's
        version is kept and reported by later snapshots.

        Raises:
            LedgerError: If the snapshot holds invalid amounts or breaks conservation
        """
        balances = {}
        for account, amount in snapshot.balances.items():
            require_account(account)
            if require_amount(amount):
                balances[account] = amount
        allowances: Dict[str, Dict[str, int]] = {}
        for owner, spenders in snapshot.allowances.items():
            require_account(owner)
            for spender, amount in spenders.items():
                require_account(spender)
                if require_amount(amount):
                    allowances.setdefault(owner, {})[spender] = amount

        if sum(balances.values()) != snapshot.genesis.initial_supply:
            raise LedgerError(
                f"Snapshot balances sum to {sum(balances.values())}, "
                f"expected total supply {snapshot.genesis.initial_supply}"
            )

        ledger = cls.__new__(cls)
        ledger._setup(snapshot.genesis, notifications)
        ledger._balances = balances
        ledger._allowances = allowances
        ledger._version = snapshot.version

        logger.debug(
            f"Restored {snapshot.genesis.symbol} ledger at version {snapshot.version} "
            f"with {len(balances)} holders"
        )
        return ledger

    # Metadata

    def name(self) -> str:
        return self._genesis.name

    def symbol(self) -> str:
        return self._genesis.symbol

    def decimals(self) -> int:
        return self._genesis.decimals

    def total_supply(self) -> int:
        return self._genesis.initial_supply

    @property
    def owner(self) -> str:
        """Account that received the initial supply."""
        return self._genesis.owner

    # Queries

    def balance_of(self, account: str) -> int:
        """Get the balance of an account.

        Args:
            account: Account identifier

        Returns:
            int: Balance in base units, zero for accounts never credited
        """
        require_account(account)
        with self._lock:
            return self._balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        """Get the remaining amount a spender may move out of an owner's balance."""
        require_account(owner)
        require_account(spender)
        with self._lock:
            return self._allowances.get(owner, {}).get(spender, 0)

    def holders(self) -> Dict[str, int]:
        """Return a copy of all non-zero balances."""
        with self._lock:
            return dict(self._balances)

    def snapshot(self) -> LedgerSnapshot:
        """Take a consistent point-in-time copy of the ledger state."""
        with self._lock:
            return LedgerSnapshot(
                genesis=self._genesis,
                balances=dict(self._balances),
                allowances={
                    owner: dict(spenders) for owner, spenders in self._allowances.items()
                },
                version=self._version,
            )

    # State transitions

    def transfer(self, caller: str, to: str, amount: int) -> bool:
        """Move tokens from the caller to another account.

        Self-transfers and zero amounts succeed and still emit a Transfer.

        Args:
            caller: Account sending the tokens
            to: Account receiving the tokens
            amount: Amount in base units

        Returns:
            bool: True if the transfer was applied

        Raises:
            InsufficientBalanceError: If the caller's balance is below amount
        """
        require_account(caller)
        require_account(to)
        require_amount(amount)

        with self._lock:
            balance = self._balances.get(caller, 0)
            if balance < amount:
                logger.warning(f"Rejected transfer of {amount} from {caller}: balance {balance}")
                raise InsufficientBalanceError(
                    f"not enough tokens for transfer: {balance} < {amount}"
                )

            self._move(caller, to, amount)

            logger.info(f"Transfer {amount} from {caller} to {to}")
            self.notifications.notify(
                TransferEvent(from_account=caller, to=to, value=amount)
            )
            return True

    def approve(self, caller: str, spender: str, amount: int) -> bool:
        """Set the amount a spender may transfer out of the caller's balance.

        The new value replaces any previous allowance; it is not added to it.

        Returns:
            bool: Always True for well-formed arguments
        """
        require_account(caller)
        require_account(spender)
        require_amount(amount)

        with self._lock:
            spenders = self._allowances.setdefault(caller, {})
            if amount:
                spenders[spender] = amount
            else:
                spenders.pop(spender, None)
                if not spenders:
                    del self._allowances[caller]

            logger.info(f"Approval of {amount} from {caller} to spender {spender}")
            self.notifications.notify(
                ApprovalEvent(owner=caller, spender=spender, value=amount)
            )
            return True

    def transfer_from(self, caller: str, from_account: str, to: str, amount: int) -> bool:
        """Move tokens out of another account using the caller's allowance.

        The allowance is checked before the balance. On success the allowance,
        the debit and the credit are applied together and a single Transfer
        is emitted; the allowance decrement emits no Approval.

        Args:
            caller: Spender invoking the transfer
            from_account: Owner whose balance is debited
            to: Account receiving the tokens
            amount: Amount in base units

        Returns:
            bool: True if the transfer was applied

        Raises:
            AllowanceTooLowError: If the caller's allowance over from_account is below amount
            InsufficientBalanceError: If from_account's balance is below amount
        """
        require_account(caller)
        require_account(from_account)
        require_account(to)
        require_amount(amount)

        with self._lock:
            allowed = self._allowances.get(from_account, {}).get(caller, 0)
            if allowed < amount:
                logger.warning(
                    f"Rejected transferFrom of {amount} from {from_account} by {caller}: "
                    f"allowance {allowed}"
                )
                raise AllowanceTooLowError(f"allowance too low: {allowed} < {amount}")

            balance = self._balances.get(from_account, 0)
            if balance < amount:
                logger.warning(
                    f"Rejected transferFrom of {amount} from {from_account} by {caller}: "
                    f"balance {balance}"
                )
                raise InsufficientBalanceError(
                    f"not enough tokens for transfer: {balance} < {amount}"
                )

            # Both checks passed, nothing below can fail
            remaining = allowed - amount
            if remaining:
                self._allowances[from_account][caller] = remaining
            elif from_account in self._allowances:
                self._allowances[from_account].pop(caller, None)
                if not self._allowances[from_account]:
                    del self._allowances[from_account]
            self._move(from_account, to, amount)

            logger.info(f"TransferFrom {amount} from {from_account} to {to} by {caller}")
            self.notifications.notify(
                TransferEvent(from_account=from_account, to=to, value=amount)
            )
            return True

    def _move(self, source: str, target: str, amount: int) -> None:
        """Debit source and credit target. Caller holds the lock and has checked the balance."""
        new_source = self._balances.get(source, 0) - amount
        if new_source:
            self._balances[source] = new_source
        else:
            self._balances.pop(source, None)

        new_target = self._balances.get(target, 0) + amount
        if new_target > MAX_UINT256:
            # Unreachable while supply is conserved; restore the debit before failing
            self._balances[source] = new_source + amount
            raise InvalidAmountError(f"Balance overflow crediting {target}")
        if new_target:
            self._balances[target] = new_target

    # ERC20 ABI names

    balanceOf = balance_of
    totalSupply = total_supply
    transferFrom = transfer_from
