"""Fires notifications for order status transitions."""

from __future__ import annotations

import contextlib
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from ..constants import STATUS_DELIVERED
from ..core.models import Order
from .store import StoreUpdate

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class Notification:
    title: str
    body: str
    order: Optional[Order] = None


class OrderObserver(Protocol):
    def on_notification(self, notification: Notification) -> None:
        ...

    def on_order_delivered(self, order: Order) -> None:
        ...


class CallbackObserver:
    """Adapts plain callables to the observer interface."""

    def __init__(
        self,
        on_notification: Optional[Callable[[Notification], None]] = None,
        on_order_delivered: Optional[Callable[[Order], None]] = None,
    ) -> None:
        self._on_notification = on_notification
        self._on_order_delivered = on_order_delivered

    def on_notification(self, notification: Notification) -> None:
        if self._on_notification is not None:
            self._on_notification(notification)

    def on_order_delivered(self, order: Order) -> None:
        if self._on_order_delivered is not None:
            self._on_order_delivered(order)


class TransitionNotifier:
    """Fan-out of status-change and delivered notifications.

    Delivery is fire-and-forget: nothing is queued for observers that
    subscribe later, and a failing observer does not block the others.
    """

    def __init__(self) -> None:
        self._observers: list[OrderObserver] = []

    def subscribe(self, observer: OrderObserver) -> Callable[[], None]:
        if observer in self._observers:
            raise ValueError("Observer already subscribed")
        self._observers.append(observer)
        return lambda: self.unsubscribe(observer)

    def unsubscribe(self, observer: OrderObserver) -> None:
        with contextlib.suppress(ValueError):
            self._observers.remove(observer)

    def clear(self) -> None:
        self._observers.clear()

    def observe(self, update: StoreUpdate) -> None:
        previous = update.previous_status
        if previous is None:
            return

        order = update.order
        if previous == order.status:
            return

        LOGGER.info("Order %s: %s -> %s", order.id, previous, order.status)
        self.announce(
            Notification(
                title=f"Order Update: {order.toy_name}",
                body=f"Your order status changed to {order.status}",
                order=order,
            )
        )

        if order.status == STATUS_DELIVERED:
            for observer in list(self._observers):
                try:
                    observer.on_order_delivered(order)
                except Exception:
                    LOGGER.exception("Delivered observer failed for order %s", order.id)

    def announce(self, notification: Notification) -> None:
        for observer in list(self._observers):
            try:
                observer.on_notification(notification)
            except Exception:
                LOGGER.exception("Notification observer failed: %s", notification.title)
