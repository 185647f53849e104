"""Ordered, id-unique collection of orders mirrored from the backend."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Iterator, Optional, Protocol

from ..core.models import Order, OrderDraft, OrderId, OrderServiceError, Session

LOGGER = logging.getLogger(__name__)

Publisher = Callable[[dict[str, Any]], Awaitable[None]]


class OrderService(Protocol):
    async def fetch_orders(self, token: str) -> list[Order]:
        ...

    async def create_order(self, draft: OrderDraft, token: str) -> Order:
        ...


@dataclass(slots=True, frozen=True)
class StoreUpdate:
    """Result of applying one stream event.

    ``previous_status`` is None when the order was inserted rather than
    replaced.
    """

    order: Order
    previous_status: Optional[str]
    position: int

    @property
    def inserted(self) -> bool:
        return self.previous_status is None


class OrderStore:
    """Newest-first order list holding at most one record per id.

    All mutations go through this class. Ordering comes from insertion only;
    in-place replacements never move a record.
    """

    def __init__(
        self,
        service: Optional[OrderService] = None,
        *,
        publish: Optional[Publisher] = None,
    ) -> None:
        self._service = service
        self._publish = publish
        self._orders: list[Order] = []
        # bumped by clear(); results of calls started before it are discarded
        self._generation = 0

    @property
    def orders(self) -> tuple[Order, ...]:
        return tuple(self._orders)

    def __len__(self) -> int:
        return len(self._orders)

    def __iter__(self) -> Iterator[Order]:
        return iter(tuple(self._orders))

    def get(self, order_id: OrderId) -> Optional[Order]:
        index = self._position(order_id)
        return None if index is None else self._orders[index]

    def by_status(self, status: str) -> list[Order]:
        return [order for order in self._orders if order.status == status]

    def replace_all(self, orders: Iterable[Order]) -> None:
        seen: set[OrderId] = set()
        fresh: list[Order] = []
        for order in orders:
            if order.id in seen:
                LOGGER.warning("Dropping duplicate order %s from refresh", order.id)
                continue
            seen.add(order.id)
            fresh.append(order)
        self._orders = fresh

    def apply_stream_event(self, order: Order) -> StoreUpdate:
        index = self._position(order.id)
        if index is not None:
            previous = self._orders[index]
            self._orders[index] = order
            return StoreUpdate(order=order, previous_status=previous.status, position=index)

        self._orders.insert(0, order)
        return StoreUpdate(order=order, previous_status=None, position=0)

    def insert_front(self, order: Order) -> None:
        index = self._position(order.id)
        if index is not None:
            del self._orders[index]
        self._orders.insert(0, order)

    def clear(self) -> None:
        self._orders = []
        self._generation += 1

    async def load_all(self, session: Optional[Session]) -> bool:
        """Replace the collection with the server's list; unchanged on failure."""

        if session is None or self._service is None:
            return False

        generation = self._generation
        try:
            orders = await self._service.fetch_orders(session.token)
        except OrderServiceError as exc:
            LOGGER.warning("Order refresh failed: %s", exc)
            return False

        if generation != self._generation:
            LOGGER.debug("Discarding order refresh that finished after the store was cleared")
            return False

        self.replace_all(orders)
        LOGGER.info("Loaded %d orders", len(self._orders))
        return True

    async def create_order(
        self, draft: OrderDraft, session: Optional[Session]
    ) -> Optional[Order]:
        """Create an order remotely, publish it, and insert it at the front."""

        if session is None or self._service is None:
            return None

        generation = self._generation
        try:
            order = await self._service.create_order(draft, session.token)
        except OrderServiceError as exc:
            LOGGER.warning("Order creation failed: %s", exc)
            return None

        if generation != self._generation:
            LOGGER.info("Order %s created after the store was cleared; not inserting", order.id)
            return None

        if self._publish is not None:
            try:
                await self._publish(order.to_payload())
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                LOGGER.warning("Could not publish order %s to stream: %s", order.id, exc)

        if generation != self._generation:
            return None

        self.insert_front(order)
        return order

    def _position(self, order_id: OrderId) -> Optional[int]:
        for index, order in enumerate(self._orders):
            if order.id == order_id:
                return index
        return None
