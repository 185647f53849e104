from __future__ import annotations

from typing import Optional

import pytest

from scanlink.config import DEFAULT_OUTPUT_PINS
from scanlink.core.models import ActionResult, IdentityTable
from scanlink.device.feedback import FeedbackDispatcher, OutputController


class FakeReader:
    def __init__(self) -> None:
        self.cards: list[Optional[bytes]] = []
        self.halt_calls = 0
        self.reinit_calls = 0
        self.fail_presence = False

    def present(self, raw: Optional[bytes]) -> None:
        self.cards.append(raw)

    def is_card_present(self) -> bool:
        if self.fail_presence:
            raise OSError("reader not responding")
        return bool(self.cards)

    def read_uid(self) -> Optional[bytes]:
        return self.cards.pop(0) if self.cards else None

    def halt(self) -> None:
        self.halt_calls += 1

    def reinitialize(self) -> None:
        self.reinit_calls += 1


class FakePins:
    def __init__(self) -> None:
        self.writes: list[tuple[int, bool]] = []

    def set_level(self, pin: int, high: bool) -> None:
        self.writes.append((pin, high))

    def rising_edges(self, pin: int) -> int:
        return sum(1 for written, high in self.writes if written == pin and high)


class FakeDisplay:
    def __init__(self) -> None:
        self.lines: dict[int, str] = {}
        self.clears = 0

    def clear(self) -> None:
        self.clears += 1
        self.lines.clear()

    def write_line(self, row: int, text: str) -> None:
        self.lines[row] = text


class FakeConnectivity:
    def __init__(self, connected: bool = True) -> None:
        self.connected = connected
        self.reconnect_result = False
        self.reconnect_calls = 0

    def is_connected(self) -> bool:
        return self.connected

    def reconnect(self) -> bool:
        self.reconnect_calls += 1
        if self.reconnect_result:
            self.connected = True
        return self.connected


class StubRequester:
    def __init__(self, result: Optional[ActionResult] = None) -> None:
        self.result = result or ActionResult.failure("not configured")
        self.calls: list[str] = []

    async def request_next(self, person_name: str) -> ActionResult:
        self.calls.append(person_name)
        return self.result

    async def aclose(self) -> None:
        return None


async def _no_sleep(_seconds: float) -> None:
    return None


@pytest.fixture
def reader() -> FakeReader:
    return FakeReader()


@pytest.fixture
def pins() -> FakePins:
    return FakePins()


@pytest.fixture
def display() -> FakeDisplay:
    return FakeDisplay()


@pytest.fixture
def connectivity() -> FakeConnectivity:
    return FakeConnectivity()


@pytest.fixture
def outputs(pins: FakePins) -> OutputController:
    return OutputController(pins, DEFAULT_OUTPUT_PINS, sleep=_no_sleep)


@pytest.fixture
def dispatcher(outputs: OutputController, display: FakeDisplay) -> FeedbackDispatcher:
    return FeedbackDispatcher(outputs, display, blink_count=3, blink_interval=0.0)


@pytest.fixture
def identities() -> IdentityTable:
    return IdentityTable.from_pairs([("A9 6C 6A 05", "John Marwin")])


@pytest.fixture
def make_requester():
    return StubRequester
