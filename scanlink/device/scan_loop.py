"""Polling state machine driving the scan to feedback cycle."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from enum import Enum
from typing import TYPE_CHECKING, Callable, Optional

from ..core.models import ActionResult, ScanEvent
from ..core.protocols import CardReader, ConnectivityMonitor
from .feedback import FeedbackDispatcher
from .identity import IdentityResolver
from .requester import ActionRequester

if TYPE_CHECKING:
    from ..health import HealthReporter

LOGGER = logging.getLogger(__name__)


class ScanState(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    DISPATCHING = "dispatching"
    FAULT_RECOVERY = "fault_recovery"


class ScanLoopController:
    """Single-threaded scan loop; one ``tick`` handles at most one card.

    ``tick`` takes the current monotonic time so debounce and idle timing can
    be driven without real delays. ``clock`` is read again once feedback has
    finished so the settle delay starts after it; ``run`` defaults it to the
    event loop clock.
    """

    def __init__(
        self,
        *,
        reader: CardReader,
        connectivity: ConnectivityMonitor,
        resolver: IdentityResolver,
        requester: ActionRequester,
        dispatcher: FeedbackDispatcher,
        settle_delay: float = 1.0,
        idle_reinit: float = 60.0,
        health: Optional[HealthReporter] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self._reader = reader
        self._connectivity = connectivity
        self._resolver = resolver
        self._requester = requester
        self._dispatcher = dispatcher
        self._settle_delay = settle_delay
        self._idle_reinit = idle_reinit
        self._health = health
        self._clock = clock

        self._state = ScanState.IDLE
        self._last_activity: Optional[float] = None
        self._settle_until = float("-inf")
        self._last_scan: Optional[ScanEvent] = None
        self._reinit_count = 0

    @property
    def state(self) -> ScanState:
        return self._state

    @property
    def last_scan(self) -> Optional[ScanEvent]:
        return self._last_scan

    @property
    def reinit_count(self) -> int:
        return self._reinit_count

    async def tick(self, now: float) -> ScanState:
        if self._last_activity is None:
            self._last_activity = now

        if not self._connectivity.is_connected():
            await self._recover_connectivity()
            return self._state

        if self._state is ScanState.FAULT_RECOVERY:
            LOGGER.info("Connectivity restored; resuming scans")
            await self._report("network", True)

        await self._transition(ScanState.IDLE)

        if now < self._settle_until:
            return self._state

        if now - self._last_activity >= self._idle_reinit:
            self._reinitialize_reader(now)

        if not self._card_present():
            return self._state

        await self._transition(ScanState.SCANNING)
        raw = self._read_uid()
        if raw is None:
            await self._transition(ScanState.IDLE)
            return self._state

        card_id, person = self._resolver.resolve(raw)
        event = ScanEvent(physical_id=card_id, timestamp=now)
        self._last_scan = event

        await self._transition(ScanState.DISPATCHING)
        try:
            await self._dispatch(event, person)
        finally:
            self._close_card_session()
            # debounce runs from the end of feedback, not from the read
            finished = self._clock() if self._clock is not None else now
            self._settle_until = finished + self._settle_delay
            self._last_activity = finished
            await self._transition(ScanState.IDLE)

        return self._state

    async def run(self, stop_event: asyncio.Event, *, poll_interval: float) -> None:
        """Tick until ``stop_event`` is set; tick failures are logged, not raised."""

        loop = asyncio.get_running_loop()
        if self._clock is None:
            self._clock = loop.time
        LOGGER.info("Scan loop started (%d known cards)", len(self._resolver.table))

        while not stop_event.is_set():
            try:
                await self.tick(self._clock())
            except asyncio.CancelledError:
                raise
            except Exception:
                LOGGER.exception("Scan loop tick failed")
                await self._transition(ScanState.IDLE)

            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(stop_event.wait(), timeout=poll_interval)

        LOGGER.info("Scan loop stopped")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    async def _dispatch(self, event: ScanEvent, person: Optional[str]) -> None:
        if person is None:
            LOGGER.info("Unknown card %s", event.physical_id)
            await self._dispatcher.dispatch(
                self._dispatcher.decide(None, None, card_id=event.physical_id)
            )
            return

        LOGGER.info("Card %s resolved to %s", event.physical_id, person)

        result: Optional[ActionResult] = None
        if self._connectivity.is_connected():
            result = await self._requester.request_next(person)
            await self._report("backend", result.ok, result.error)
        else:
            LOGGER.warning("Skipping action request for %s: offline", person)

        await self._dispatcher.dispatch(self._dispatcher.decide(person, result))

    async def _recover_connectivity(self) -> None:
        if self._state is not ScanState.FAULT_RECOVERY:
            LOGGER.warning("Connectivity lost; entering fault recovery")
            await self._report("network", False, "disconnected")
        await self._transition(ScanState.FAULT_RECOVERY)

        await self._dispatcher.signal_error("Network down", "Reconnecting")

        try:
            restored = self._connectivity.reconnect()
        except Exception as exc:
            LOGGER.warning("Reconnect attempt failed: %s", exc)
            restored = False

        if restored:
            LOGGER.info("Reconnect attempt succeeded")
        else:
            LOGGER.debug("Reconnect attempt did not restore connectivity")

    def _reinitialize_reader(self, now: float) -> None:
        LOGGER.debug(
            "No scan for %.0fs; reinitialising reader", now - (self._last_activity or now)
        )
        try:
            self._reader.reinitialize()
        except Exception as exc:
            LOGGER.warning("Reader reinitialisation failed: %s", exc)
        self._reinit_count += 1
        self._last_activity = now

    def _card_present(self) -> bool:
        try:
            return bool(self._reader.is_card_present())
        except Exception as exc:
            LOGGER.debug("Reader presence check failed: %s", exc)
            return False

    def _read_uid(self) -> Optional[bytes]:
        try:
            raw = self._reader.read_uid()
        except Exception as exc:
            LOGGER.debug("Reader serial read failed: %s", exc)
            return None
        if not raw:
            return None
        return bytes(raw)

    def _close_card_session(self) -> None:
        try:
            self._reader.halt()
        except Exception as exc:
            LOGGER.debug("Reader halt failed: %s", exc)

    async def _transition(self, state: ScanState) -> None:
        if state is self._state:
            return
        LOGGER.debug("Scan state %s -> %s", self._state.value, state.value)
        self._state = state
        if self._health is not None:
            await self._health.set_scan_state(
                state.value, healthy=state is not ScanState.FAULT_RECOVERY
            )

    async def _report(
        self, component: str, healthy: bool, detail: Optional[str] = None
    ) -> None:
        if self._health is not None:
            await self._health.update(component, healthy, detail)
