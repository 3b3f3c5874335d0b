"""
Fixed-supply fungible token ledger with ERC20 accounting semantics.
"""
from tokenledger.core.ledger import TokenLedger, LedgerError, InsufficientBalanceError, \
    AllowanceTooLowError, InvalidAccountError, InvalidAmountError
from tokenledger.core.notifications import NotificationManager, NotificationType
from tokenledger.core.models.events import TransferEvent, ApprovalEvent
from tokenledger.core.models.genesis import TokenGenesis
from tokenledger.core.models.snapshot import LedgerSnapshot

__all__ = [
    "TokenLedger",
    "LedgerError",
    "InsufficientBalanceError",
    "AllowanceTooLowError",
    "InvalidAccountError",
    "InvalidAmountError",
    "NotificationManager",
    "NotificationType",
    "TransferEvent",
    "ApprovalEvent",
    "TokenGenesis",
    "LedgerSnapshot",
]
