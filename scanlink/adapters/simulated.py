"""Stand-ins for the device hardware when running on a development host.

Cards are "presented" by typing their serial on stdin, outputs and the
display are written to the log, and connectivity is a TCP reachability probe
of the backend.
"""

from __future__ import annotations

import logging
import queue
import socket
import sys
import threading
import time
from typing import IO, Optional

from ..device.identity import normalize_card_id

LOGGER = logging.getLogger(__name__)


class ConsoleCardReader:
    """Card reader fed by hex serials typed one per line."""

    def __init__(self, stream: Optional[IO[str]] = None) -> None:
        self._stream = stream or sys.stdin
        self._pending: "queue.Queue[bytes]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._pump, name="console-card-reader", daemon=True
        )
        self._thread.start()

    def feed(self, line: str) -> bool:
        card_id = normalize_card_id(line)
        if card_id is None:
            if line.strip():
                LOGGER.warning("Ignoring input that is not a card serial: %r", line.strip())
            return False
        self._pending.put(bytes.fromhex(card_id.replace(" ", "")))
        return True

    def is_card_present(self) -> bool:
        return not self._pending.empty()

    def read_uid(self) -> Optional[bytes]:
        try:
            return self._pending.get_nowait()
        except queue.Empty:
            return None

    def halt(self) -> None:
        LOGGER.debug("Card halted")

    def reinitialize(self) -> None:
        LOGGER.debug("Reader reinitialised")

    def _pump(self) -> None:
        for line in self._stream:
            self.feed(line)


class LoggingOutputPins:
    def __init__(self) -> None:
        self.levels: dict[int, bool] = {}

    def set_level(self, pin: int, high: bool) -> None:
        self.levels[pin] = high
        LOGGER.debug("Output %d -> %s", pin, "HIGH" if high else "LOW")


class LoggingDisplay:
    def __init__(self) -> None:
        self.lines: dict[int, str] = {}

    def clear(self) -> None:
        self.lines.clear()

    def write_line(self, row: int, text: str) -> None:
        self.lines[row] = text
        LOGGER.info("Display[%d]: %s", row, text)


class TcpReachability:
    """Treats the network as up when the backend port accepts connections.

    Probe results are cached for ``recheck_seconds`` so the scan loop does
    not open a socket on every tick.
    """

    def __init__(
        self,
        host: str,
        port: int,
        *,
        timeout: float = 1.0,
        recheck_seconds: float = 5.0,
    ) -> None:
        self._host = host
        self._port = port
        self._timeout = timeout
        self._recheck = recheck_seconds
        self._last_probe = float("-inf")
        self._reachable = False

    def is_connected(self) -> bool:
        if time.monotonic() - self._last_probe >= self._recheck:
            self._probe()
        return self._reachable

    def reconnect(self) -> bool:
        return self._probe()

    def _probe(self) -> bool:
        self._last_probe = time.monotonic()
        try:
            with socket.create_connection((self._host, self._port), timeout=self._timeout):
                reachable = True
        except OSError as exc:
            LOGGER.debug("Backend %s:%d unreachable: %s", self._host, self._port, exc)
            reachable = False
        if reachable != self._reachable:
            LOGGER.info(
                "Backend %s:%d %s",
                self._host,
                self._port,
                "reachable" if reachable else "unreachable",
            )
        self._reachable = reachable
        return reachable
