"""
Core ledger engine for the token ledger system.
"""
from tokenledger.core.ledger.ledger import TokenLedger, LedgerError, InsufficientBalanceError, \
    AllowanceTooLowError, InvalidAccountError, InvalidAmountError

__all__ = [
    "TokenLedger",
    "LedgerError",
    "InsufficientBalanceError",
    "AllowanceTooLowError",
    "InvalidAccountError",
    "InvalidAmountError"
]
