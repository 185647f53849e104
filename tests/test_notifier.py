"""Tests for the transition notifier."""

from __future__ import annotations

import pytest

from scanlink.core.models import Order
from scanlink.orders.notifier import (
    CallbackObserver,
    Notification,
    TransitionNotifier,
)
from scanlink.orders.store import OrderStore


class _RecordingObserver:
    def __init__(self) -> None:
        self.notifications: list[Notification] = []
        self.delivered: list[Order] = []

    def on_notification(self, notification: Notification) -> None:
        self.notifications.append(notification)

    def on_order_delivered(self, order: Order) -> None:
        self.delivered.append(order)


def _order(order_id: int, status: str) -> Order:
    return Order(
        id=order_id,
        toy_id="toy-1",
        toy_name="Water Blaster",
        category="Toy Guns",
        rfid_uid="A9 6C 6A 05",
        assigned_person="John Marwin",
        department="Sales",
        total_amount=19.99,
        status=status,
    )


@pytest.fixture
def wired():
    store = OrderStore()
    notifier = TransitionNotifier()
    observer = _RecordingObserver()
    notifier.subscribe(observer)
    return store, notifier, observer


def test_pending_to_delivered_fires_general_and_delivered(wired) -> None:
    store, notifier, observer = wired
    store.replace_all([_order(7, "PENDING")])

    notifier.observe(store.apply_stream_event(_order(7, "DELIVERED")))

    assert len(store) == 1
    assert store.get(7).status == "DELIVERED"
    assert len(observer.notifications) == 1
    assert observer.notifications[0].title == "Order Update: Water Blaster"
    assert observer.notifications[0].body == "Your order status changed to DELIVERED"
    assert [order.id for order in observer.delivered] == [7]


def test_other_transition_fires_only_general(wired) -> None:
    store, notifier, observer = wired
    store.replace_all([_order(7, "PENDING")])

    notifier.observe(store.apply_stream_event(_order(7, "SHIPPED")))

    assert len(observer.notifications) == 1
    assert observer.delivered == []


def test_unchanged_status_fires_nothing(wired) -> None:
    store, notifier, observer = wired
    store.replace_all([_order(7, "DELIVERED")])

    notifier.observe(store.apply_stream_event(_order(7, "DELIVERED")))

    assert observer.notifications == []
    assert observer.delivered == []


def test_insert_fires_nothing_even_when_delivered(wired) -> None:
    store, notifier, observer = wired

    notifier.observe(store.apply_stream_event(_order(8, "DELIVERED")))

    assert observer.notifications == []
    assert observer.delivered == []


def test_repeated_delivered_event_fires_once(wired) -> None:
    store, notifier, observer = wired
    store.replace_all([_order(7, "SHIPPED")])

    notifier.observe(store.apply_stream_event(_order(7, "DELIVERED")))
    notifier.observe(store.apply_stream_event(_order(7, "DELIVERED")))

    assert len(observer.notifications) == 1
    assert len(observer.delivered) == 1


def test_multiple_subscribers_and_unsubscribe() -> None:
    store = OrderStore()
    notifier = TransitionNotifier()
    first, second = _RecordingObserver(), _RecordingObserver()
    notifier.subscribe(first)
    unsubscribe = notifier.subscribe(second)
    store.replace_all([_order(1, "PENDING")])

    notifier.observe(store.apply_stream_event(_order(1, "SHIPPED")))
    unsubscribe()
    notifier.observe(store.apply_stream_event(_order(1, "DELIVERED")))

    assert len(first.notifications) == 2
    assert len(first.delivered) == 1
    assert len(second.notifications) == 1
    assert second.delivered == []


def test_subscribe_twice_is_rejected() -> None:
    notifier = TransitionNotifier()
    observer = _RecordingObserver()
    notifier.subscribe(observer)

    with pytest.raises(ValueError):
        notifier.subscribe(observer)


def test_failing_observer_does_not_block_others() -> None:
    store = OrderStore()
    notifier = TransitionNotifier()

    def explode(_notification: Notification) -> None:
        raise RuntimeError("ui gone")

    recorder = _RecordingObserver()
    notifier.subscribe(CallbackObserver(on_notification=explode))
    notifier.subscribe(recorder)
    store.replace_all([_order(1, "PENDING")])

    notifier.observe(store.apply_stream_event(_order(1, "DELIVERED")))

    assert len(recorder.notifications) == 1
    assert len(recorder.delivered) == 1


def test_callback_observer_tolerates_missing_callbacks() -> None:
    delivered: list[Order] = []
    observer = CallbackObserver(on_order_delivered=delivered.append)

    observer.on_notification(Notification("t", "b"))
    observer.on_order_delivered(_order(1, "DELIVERED"))

    assert [order.id for order in delivered] == [1]
