"""Core primitives for scanlink."""

from .models import (
    ActionKind,
    ActionResponse,
    ActionResult,
    Category,
    ConnectionState,
    IdentityMapping,
    IdentityTable,
    Order,
    OrderId,
    OrderDraft,
    OrderPayloadError,
    OrderServiceError,
    ScanEvent,
    Session,
    User,
)
from .protocols import CardReader, ConnectivityMonitor, Display, OutputPins

__all__ = [
    "ActionKind",
    "ActionResponse",
    "ActionResult",
    "CardReader",
    "Category",
    "ConnectionState",
    "ConnectivityMonitor",
    "Display",
    "IdentityMapping",
    "IdentityTable",
    "Order",
    "OrderId",
    "OrderDraft",
    "OrderPayloadError",
    "OrderServiceError",
    "OutputPins",
    "ScanEvent",
    "Session",
    "User",
]
