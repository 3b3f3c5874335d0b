"""
Tests for the TokenLedger implementation.
"""
import logging

import pytest

from tokenledger.core.ledger import TokenLedger, LedgerError, InsufficientBalanceError, \
    AllowanceTooLowError, InvalidAccountError, InvalidAmountError
from tokenledger.core.models.amount import MAX_UINT256
from tokenledger.core.models.events import TransferEvent, ApprovalEvent
from tokenledger.core.models.genesis import TokenGenesis


def state_of(ledger):
    """Copy balances and allowances for before/after comparisons."""
    snapshot = ledger.snapshot()
    return snapshot.balances, snapshot.allowances


def test_metadata(ledger):
    """Test name, symbol and total supply are reported as constructed."""
    assert ledger.name() == "ERC20Token"
    assert ledger.symbol() == "ERT"
    assert ledger.total_supply() == 1_000_000
    assert ledger.totalSupply() == 1_000_000
    assert ledger.decimals() == 18
    assert ledger.owner == "A"


def test_initial_balance_of_owner(ledger):
    """Test the owner holds the whole supply and everyone else holds zero."""
    assert ledger.balance_of("A") == 1_000_000
    assert ledger.balanceOf("A") == 1_000_000
    assert ledger.balance_of("never-seen") == 0
    assert ledger.allowance("A", "B") == 0


def test_supply_in_ether_units():
    """Test a supply of one million whole tokens with 18 decimals."""
    supply = 1_000_000 * 10**18
    ledger = TokenLedger("ERC20Token", "ERT", supply, "A")
    assert ledger.total_supply() == supply
    assert ledger.balance_of("A") == supply


def test_transfer(ledger, notifications):
    """Test a plain transfer moves tokens and emits Transfer."""
    assert ledger.transfer("A", "B", 1000)

    assert ledger.balance_of("B") == 1000
    assert ledger.balance_of("A") == 999_000
    assert notifications.events == [TransferEvent(from_account="A", to="B", value=1000)]


def test_transfer_insufficient_balance(ledger, notifications):
    """Test a transfer above the balance is rejected without side effects."""
    ledger.transfer("A", "B", 1000)
    notifications.clear()
    before = state_of(ledger)

    with pytest.raises(InsufficientBalanceError, match="not enough tokens for transfer"):
        ledger.transfer("B", "C", 1500)

    assert ledger.balance_of("B") == 1000
    assert ledger.balance_of("C") == 0
    assert state_of(ledger) == before
    assert notifications.events == []


def test_transfer_from_unfunded_account(ledger):
    """Test an account that was never credited cannot send."""
    with pytest.raises(InsufficientBalanceError):
        ledger.transfer("nobody", "A", 1)


def test_transfer_to_self(ledger, notifications):
    """Test a self-transfer leaves the balance unchanged but still emits."""
    assert ledger.transfer("A", "A", 500)

    assert ledger.balance_of("A") == 1_000_000
    assert notifications.events == [TransferEvent(from_account="A", to="A", value=500)]


def test_transfer_whole_balance_to_self(ledger):
    assert ledger.transfer("A", "A", 1_000_000)
    assert ledger.balance_of("A") == 1_000_000


def test_zero_transfer(ledger, notifications):
    """Test zero-value transfers always succeed and are observable."""
    assert ledger.transfer("nobody", "B", 0)
    assert ledger.transfer("A", "A", 0)

    assert ledger.balance_of("B") == 0
    assert ledger.balance_of("A") == 1_000_000
    assert notifications.events == [
        TransferEvent(from_account="nobody", to="B", value=0),
        TransferEvent(from_account="A", to="A", value=0),
    ]


def test_transfer_whole_balance(ledger):
    ledger.transfer("A", "B", 1_000_000)
    assert ledger.balance_of("A") == 0
    assert ledger.balance_of("B") == 1_000_000
    assert ledger.holders() == {"B": 1_000_000}


def test_approve(ledger, notifications):
    """Test approve sets the allowance and emits Approval."""
    assert ledger.approve("B", "A", 1000)

    assert ledger.allowance("B", "A") == 1000
    assert ledger.allowance("A", "B") == 0
    assert notifications.events == [ApprovalEvent(owner="B", spender="A", value=1000)]


def test_approve_overwrites(ledger):
    """Test a second approval replaces the first instead of adding to it."""
    ledger.approve("A", "B", 300)
    ledger.approve("A", "B", 100)
    assert ledger.allowance("A", "B") == 100

    ledger.approve("A", "B", 0)
    assert ledger.allowance("A", "B") == 0


def test_approve_does_not_need_balance(ledger):
    """Test approving more than the owner holds is allowed."""
    assert ledger.approve("empty", "B", 10**30)
    assert ledger.allowance("empty", "B") == 10**30


def test_transfer_from_without_approval(ledger, notifications):
    """Test a delegated transfer with no approval fails with AllowanceTooLow."""
    ledger.transfer("A", "B", 1000)
    notifications.clear()
    before = state_of(ledger)

    with pytest.raises(AllowanceTooLowError, match="allowance too low"):
        ledger.transfer_from("D", "B", "C", 1000)

    assert state_of(ledger) == before
    assert notifications.events == []


def test_transfer_from_with_approval(ledger, notifications):
    """Test the approve then transferFrom flow end to end."""
    ledger.transfer("A", "B", 1000)
    assert ledger.balance_of("B") == 1000
    assert ledger.balance_of("D") == 0
    assert ledger.allowance("B", "A") == 0

    ledger.approve("B", "A", 1000)
    assert ledger.allowance("B", "A") == 1000

    notifications.clear()
    assert ledger.transferFrom("A", "B", "D", 1000)

    assert ledger.balance_of("B") == 0
    assert ledger.balance_of("D") == 1000
    assert ledger.allowance("B", "A") == 0
    # One Transfer, no Approval for the allowance decrement
    assert notifications.events == [TransferEvent(from_account="B", to="D", value=1000)]


def test_transfer_from_partial_allowance(ledger):
    """Test the allowance is decremented by the amount moved."""
    ledger.approve("A", "S", 700)
    ledger.transfer_from("S", "A", "C", 200)

    assert ledger.allowance("A", "S") == 500
    assert ledger.balance_of("C") == 200
    assert ledger.balance_of("A") == 999_800


def test_transfer_from_allowance_checked_before_balance(ledger):
    """Test an allowance shortfall is reported even when the balance is also short."""
    ledger.approve("poor", "S", 5)
    with pytest.raises(AllowanceTooLowError):
        ledger.transfer_from("S", "poor", "C", 10)


def test_transfer_from_insufficient_balance(ledger, notifications):
    """Test a covered allowance over an empty balance is rejected atomically."""
    ledger.transfer("A", "B", 100)
    ledger.approve("B", "S", 1000)
    notifications.clear()
    before = state_of(ledger)

    with pytest.raises(InsufficientBalanceError):
        ledger.transfer_from("S", "B", "C", 500)

    assert state_of(ledger) == before
    assert ledger.allowance("B", "S") == 1000
    assert notifications.events == []


def test_transfer_from_self_spender(ledger):
    """Test an owner spending its own balance still needs an allowance."""
    with pytest.raises(AllowanceTooLowError):
        ledger.transfer_from("A", "A", "B", 1)

    ledger.approve("A", "A", 10)
    ledger.transfer_from("A", "A", "B", 10)
    assert ledger.balance_of("B") == 10
    assert ledger.allowance("A", "A") == 0


def test_transfer_from_zero_amount(ledger, notifications):
    """Test a zero delegated transfer needs no approval and still emits."""
    assert ledger.transfer_from("S", "B", "C", 0)
    assert notifications.events == [TransferEvent(from_account="B", to="C", value=0)]


@pytest.mark.parametrize("account", ["", None, 42, b"A"])
def test_invalid_accounts(ledger, account):
    before = state_of(ledger)
    with pytest.raises(InvalidAccountError):
        ledger.transfer("A", account, 1)
    with pytest.raises(InvalidAccountError):
        ledger.balance_of(account)
    with pytest.raises(InvalidAccountError):
        ledger.approve(account, "B", 1)
    assert state_of(ledger) == before


@pytest.mark.parametrize("amount", [-1, 1.0, "10", True, MAX_UINT256 + 1])
def test_invalid_amounts(ledger, notifications, amount):
    """Test negative, non-integer and oversized amounts are rejected."""
    before = state_of(ledger)
    with pytest.raises(InvalidAmountError):
        ledger.transfer("A", "B", amount)
    with pytest.raises(InvalidAmountError):
        ledger.approve("A", "B", amount)
    with pytest.raises(InvalidAmountError):
        ledger.transfer_from("S", "A", "B", amount)
    assert state_of(ledger) == before
    assert notifications.events == []


def test_errors_share_base_class():
    for error in (InsufficientBalanceError, AllowanceTooLowError,
                  InvalidAccountError, InvalidAmountError):
        assert issubclass(error, LedgerError)


def test_construction_validation():
    """Test malformed construction arguments are rejected."""
    with pytest.raises(LedgerError):
        TokenLedger("", "ERT", 1, "A")
    with pytest.raises(LedgerError):
        TokenLedger("Token", "", 1, "A")
    with pytest.raises(InvalidAccountError):
        TokenLedger("Token", "ERT", 1, "")
    with pytest.raises(InvalidAmountError):
        TokenLedger("Token", "ERT", -1, "A")
    with pytest.raises(LedgerError):
        TokenLedger("Token", "ERT", 1, "A", decimals=78)


def test_max_supply():
    """Test a full 256-bit supply can be moved without overflow."""
    ledger = TokenLedger("Big", "BIG", MAX_UINT256, "A", decimals=0)
    ledger.transfer("A", "B", MAX_UINT256)
    assert ledger.balance_of("B") == MAX_UINT256
    assert ledger.balance_of("A") == 0


def test_zero_supply():
    ledger = TokenLedger("Empty", "NIL", 0, "A")
    assert ledger.balance_of("A") == 0
    assert ledger.holders() == {}
    with pytest.raises(InsufficientBalanceError):
        ledger.transfer("A", "B", 1)


def test_from_genesis():
    genesis = TokenGenesis(name="ERC20Token", symbol="ERT", initial_supply=500, owner="X", decimals=6)
    ledger = TokenLedger.from_genesis(genesis)
    assert ledger.balance_of("X") == 500
    assert ledger.decimals() == 6


def test_snapshot_restore(ledger):
    """Test a ledger restored from a snapshot has the same state."""
    ledger.transfer("A", "B", 250)
    ledger.approve("B", "C", 100)

    restored = TokenLedger.from_snapshot(ledger.snapshot())

    assert restored.balance_of("A") == 999_750
    assert restored.balance_of("B") == 250
    assert restored.allowance("B", "C") == 100
    assert restored.total_supply() == ledger.total_supply()
    assert restored.notifications.events == []


def test_snapshot_restore_rejects_unbalanced(ledger):
    snapshot = ledger.snapshot()
    snapshot.balances["B"] = 1
    with pytest.raises(LedgerError):
        TokenLedger.from_snapshot(snapshot)


def test_snapshot_is_a_copy(ledger):
    """Test mutating a snapshot does not touch the ledger."""
    snapshot = ledger.snapshot()
    snapshot.balances["A"] = 0
    assert ledger.balance_of("A") == 1_000_000


def test_snapshot_restore_keeps_version(ledger):
    snapshot = ledger.snapshot()
    assert snapshot.version == 0

    restored = TokenLedger.from_snapshot(snapshot.model_copy(update={"version": 4}))
    restored.transfer("A", "B", 1)
    assert restored.snapshot().version == 4


def test_snapshot_restore_is_not_logged_as_creation(ledger, caplog):
    snapshot = ledger.snapshot()

    with caplog.at_level(logging.DEBUG, logger="tokenledger.core.ledger.ledger"):
        TokenLedger.from_snapshot(snapshot)

    messages = [record.getMessage() for record in caplog.records]
    assert not any(message.startswith("Created") for message in messages)
    assert any(message.startswith("Restored ERT ledger") for message in messages)
