"""Adapter modules for external integrations."""

from .backend import OrderServiceClient
from .order_stream import OrderStreamClient, build_ws_url
from .simulated import ConsoleCardReader, LoggingDisplay, LoggingOutputPins, TcpReachability

__all__ = [
    "ConsoleCardReader",
    "LoggingDisplay",
    "LoggingOutputPins",
    "OrderServiceClient",
    "OrderStreamClient",
    "TcpReachability",
    "build_ws_url",
]
