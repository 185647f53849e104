"""Client-side order collection and transition notifications."""

from .notifier import CallbackObserver, Notification, OrderObserver, TransitionNotifier
from .store import OrderService, OrderStore, StoreUpdate

__all__ = [
    "CallbackObserver",
    "Notification",
    "OrderObserver",
    "OrderService",
    "OrderStore",
    "StoreUpdate",
    "TransitionNotifier",
]
