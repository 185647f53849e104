"""Device agent entry-point: wires hardware and backend into the scan loop."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from .adapters.simulated import (
    ConsoleCardReader,
    LoggingDisplay,
    LoggingOutputPins,
    TcpReachability,
)
from .config import ScanlinkConfig, load_config
from .core.protocols import CardReader, ConnectivityMonitor, Display, OutputPins
from .device.feedback import (
    FeedbackAction,
    FeedbackDispatcher,
    FeedbackKind,
    OutputController,
)
from .device.identity import IdentityResolver
from .device.requester import ActionRequester
from .device.scan_loop import ScanLoopController
from .health import HealthReporter, HealthServer
from .logging import configure_logging

LOGGER = logging.getLogger(__name__)


class DeviceAgent:
    """Coordinates startup and shutdown of the scan device.

    Hardware collaborators can be injected; when omitted the console-backed
    simulations are used so the agent runs on a development host.
    """

    def __init__(
        self,
        config: Optional[ScanlinkConfig] = None,
        *,
        reader: Optional[CardReader] = None,
        pins: Optional[OutputPins] = None,
        display: Optional[Display] = None,
        connectivity: Optional[ConnectivityMonitor] = None,
        requester: Optional[ActionRequester] = None,
    ) -> None:
        self._config = config or load_config()
        device = self._config.device

        self._reader = reader or ConsoleCardReader()
        self._connectivity = connectivity or TcpReachability(
            device.connectivity_host, device.connectivity_port
        )
        self._requester = requester or ActionRequester(
            self._config.backend.base_url,
            timeout=self._config.backend.request_timeout_seconds,
        )
        self.outputs = OutputController(
            pins or LoggingOutputPins(),
            self._config.outputs,
            pattern_interval=device.pattern_interval_seconds,
        )
        self.dispatcher = FeedbackDispatcher(
            self.outputs,
            display if display is not None else LoggingDisplay(),
            blink_count=device.blink_count,
            blink_interval=device.blink_interval_seconds,
        )
        self.health = HealthReporter()
        self.controller = ScanLoopController(
            reader=self._reader,
            connectivity=self._connectivity,
            resolver=IdentityResolver(self._config.identities),
            requester=self._requester,
            dispatcher=self.dispatcher,
            settle_delay=device.settle_delay_seconds,
            idle_reinit=device.idle_reinit_seconds,
            health=self.health,
        )
        self._health_server: Optional[HealthServer] = None
        self._stop_event: Optional[asyncio.Event] = None

    async def run(self) -> None:
        self._stop_event = asyncio.Event()
        resilience = self._config.resilience

        if resilience.health_enabled:
            self._health_server = HealthServer(
                self.health, resilience.health_host, resilience.health_port
            )
            await self._health_server.start()

        if isinstance(self._reader, ConsoleCardReader):
            self._reader.start()
            LOGGER.info("Type a card serial (e.g. A9 6C 6A 05) and press enter to scan")

        LOGGER.info("scanlink device starting with config: %s", self._config.path)
        self.outputs.set_all(False)
        await self.dispatcher.dispatch(
            FeedbackAction(FeedbackKind.READY, headline="System ready")
        )

        try:
            await self.controller.run(
                self._stop_event,
                poll_interval=self._config.device.poll_interval_seconds,
            )
        except asyncio.CancelledError:
            LOGGER.info("scanlink device received shutdown signal")
            raise
        finally:
            self.outputs.set_all(False)
            await self._requester.aclose()
            if self._health_server is not None:
                await self._health_server.stop()
                self._health_server = None

    def request_stop(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()

    @classmethod
    def start(cls, config: Optional[ScanlinkConfig] = None) -> None:
        instance = cls(config=config)
        configure_logging(
            instance._config.logging.level,
            log_path=instance._config.logging.path,
            log_network=instance._config.logging.log_network,
        )
        try:
            asyncio.run(instance.run())
        except KeyboardInterrupt:
            LOGGER.info("scanlink device received shutdown signal")
