"""
Notification manager for the token ledger.

This module provides the observer registry through which a ledger publishes
its Transfer and Approval notifications.
"""

import logging
import enum
import threading
from collections import deque
from typing import Dict, Set, List, Callable, Optional, Union

from tokenledger.core.config import config
from tokenledger.core.models.events import TransferEvent, ApprovalEvent

# Set up logging
logger = logging.getLogger(__name__)

LedgerEvent = Union[TransferEvent, ApprovalEvent]


class NotificationType(enum.Enum):
    """Types of notifications that can be subscribed to."""

    TRANSFER = "Transfer"  # Balance moved between accounts
    APPROVAL = "Approval"  # Allowance set by an owner


def notification_type_of(event: LedgerEvent) -> NotificationType:
    if isinstance(event, TransferEvent):
        return NotificationType.TRANSFER
    return NotificationType.APPROVAL


class NotificationManager:
    """
    Notification manager for a token ledger.

    Handles subscriptions to notification types and to individual accounts,
    and notifies subscribers when a ledger emits an event. Each ledger owns
    its manager; there is no process-wide instance.
    """

    def __init__(self, history_size: Optional[int] = None):
        """Initialize the notification manager.

        Args:
            history_size: Number of recent events to keep (default: config.event_history_size)
        """
        if history_size is None:
            history_size = config.event_history_size
        if history_size < 0:
            raise ValueError("Event history size cannot be negative")

        # Mapping of notification types to subscribers
        self.subscribers: Dict[NotificationType, Set[Callable]] = {
            event_type: set() for event_type in NotificationType
        }

        # Mapping of account identifiers to interested subscribers
        self.account_subscribers: Dict[str, Set[Callable]] = {}

        # Most recent events, oldest first; older ones are dropped
        self._events = deque(maxlen=history_size)

        # Lock for thread safety
        self.lock = threading.RLock()

    @property
    def events(self) -> List[LedgerEvent]:
        """Recorded events, oldest first, up to the history size."""
        with self.lock:
            return list(self._events)

    def subscribe(self, event_type: NotificationType, callback: Callable) -> None:
        """Subscribe to a specific event type.

        Args:
            event_type: Type of event to subscribe to
            callback: Function to call with the event model when it occurs
        """
        with self.lock:
            self.subscribers[event_type].add(callback)
        logger.debug(f"Subscribed to {event_type.value} events")

    def unsubscribe(self, event_type: NotificationType, callback: Callable) -> None:
        """Unsubscribe from a specific event type.

        Args:
            event_type: Type of event to unsubscribe from
            callback: Function to remove from subscribers
        """
        with self.lock:
            self.subscribers[event_type].discard(callback)
        logger.debug(f"Unsubscribed from {event_type.value} events")

    def subscribe_all(self, callback: Callable) -> None:
        """Subscribe a callback to every event type."""
        for event_type in NotificationType:
            self.subscribe(event_type, callback)

    def subscribe_account(self, account: str, callback: Callable) -> None:
        """Subscribe to every event that involves an account.

        Args:
            account: Account identifier to watch
            callback: Function to call when an event names this account
        """
        with self.lock:
            if account not in self.account_subscribers:
                self.account_subscribers[account] = set()
            self.account_subscribers[account].add(callback)
        logger.debug(f"Subscribed to events for account {account}")

    def unsubscribe_account(self, account: str, callback: Callable) -> None:
        with self.lock:
            callbacks = self.account_subscribers.get(account)
            if callbacks is not None:
                callbacks.discard(callback)
                if not callbacks:
                    del self.account_subscribers[account]
        logger.debug(f"Unsubscribed from events for account {account}")

    def notify(self, event: LedgerEvent) -> None:
        """Record an event and notify all interested subscribers.

        A subscriber interested both in the event type and in one of the
        accounts it names is called once.

        Args:
            event: Transfer or Approval event that occurred
        """
        event_type = notification_type_of(event)

        with self.lock:
            self._events.append(event)
            targets = list(self.subscribers[event_type])
            for account, callbacks in self.account_subscribers.items():
                if event.involves(account):
                    targets.extend(cb for cb in callbacks if cb not in targets)

        self._notify_subscribers(targets, event)
        logger.debug(f"Notified subscribers of {event_type.value} event")

    def _notify_subscribers(self, subscribers: List[Callable], event: LedgerEvent) -> None:
        """Notify a list of subscribers with an event.

        Args:
            subscribers: Callback functions to notify
            event: Event to pass to callbacks
        """
        for callback in subscribers:
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Error notifying subscriber: {str(e)}")

    def events_of(self, event_type: NotificationType) -> List[LedgerEvent]:
        """Return the recorded events of one type, in emission order."""
        with self.lock:
            return [e for e in self._events if notification_type_of(e) is event_type]

    def clear(self) -> None:
        """Forget recorded events; subscriptions are kept."""
        with self.lock:
            self._events.clear()
