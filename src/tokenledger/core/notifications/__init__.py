"""
Notification system for token ledger events.

This module provides the observer registry for Transfer and Approval
notifications emitted by a ledger.
"""
from tokenledger.core.notifications.manager import NotificationManager, NotificationType

__all__ = ["NotificationManager", "NotificationType"]
