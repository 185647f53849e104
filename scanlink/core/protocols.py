"""Contracts for the hardware collaborators driven by the scan loop."""

from __future__ import annotations

from typing import Optional, Protocol


class CardReader(Protocol):
    """Minimal contract for a contactless card reader."""

    def is_card_present(self) -> bool:
        """Return True when a new card is in the field."""
        ...

    def read_uid(self) -> Optional[bytes]:
        """Read the card serial, or None when the read fails."""
        ...

    def halt(self) -> None:
        """Halt the card and stop the crypto session."""
        ...

    def reinitialize(self) -> None:
        """Reset the reader chip after a suspected lockup."""
        ...


class OutputPins(Protocol):
    def set_level(self, pin: int, high: bool) -> None:
        ...


class Display(Protocol):
    def clear(self) -> None:
        ...

    def write_line(self, row: int, text: str) -> None:
        ...


class ConnectivityMonitor(Protocol):
    def is_connected(self) -> bool:
        ...

    def reconnect(self) -> bool:
        """Attempt to restore connectivity, returning the new state."""
        ...
