"""Health reporting for the scan device."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional

from aiohttp import web

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ComponentHealth:
    name: str
    healthy: bool
    detail: Optional[str] = None
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def as_dict(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "healthy": self.healthy,
            "detail": self.detail,
            "updatedAt": self.updated_at.isoformat(timespec="seconds"),
        }


class HealthReporter:
    """Latest status per component plus the scan loop state."""

    def __init__(self) -> None:
        self._components: Dict[str, ComponentHealth] = {}
        self._scan_state: Optional[ComponentHealth] = None
        self._lock = asyncio.Lock()

    async def update(
        self, name: str, healthy: bool, detail: Optional[str] = None
    ) -> None:
        async with self._lock:
            self._components[name] = ComponentHealth(
                name=name, healthy=healthy, detail=detail
            )

    async def set_scan_state(
        self, state: str, *, healthy: bool, detail: Optional[str] = None
    ) -> None:
        async with self._lock:
            self._scan_state = ComponentHealth(
                name=state, healthy=healthy, detail=detail
            )

    async def snapshot(self) -> Dict[str, object]:
        async with self._lock:
            components = [status.as_dict() for status in self._components.values()]
            scan_state = self._scan_state

        healthy = all(item["healthy"] for item in components)
        if scan_state is not None and not scan_state.healthy:
            healthy = False

        payload: Dict[str, object] = {
            "status": "ok" if healthy else "degraded",
            "components": components,
        }
        if scan_state is not None:
            payload["scanState"] = {
                "state": scan_state.name,
                "healthy": scan_state.healthy,
                "updatedAt": scan_state.updated_at.isoformat(timespec="seconds"),
            }
        return payload


class HealthServer:
    """Serves the reporter snapshot on ``/healthz``; 503 while degraded.

    Port 0 binds an ephemeral port, available from ``port`` once started.
    """

    def __init__(self, reporter: HealthReporter, host: str, port: int) -> None:
        self._reporter = reporter
        self._host = host
        self._requested_port = port
        self._bound_port: Optional[int] = None
        self._runner: Optional[web.AppRunner] = None

    @property
    def port(self) -> Optional[int]:
        return self._bound_port

    async def start(self) -> None:
        app = web.Application()
        app.router.add_get("/healthz", self._serve_snapshot)

        runner = web.AppRunner(app, handle_signals=False)
        await runner.setup()
        site = web.TCPSite(runner, self._host, self._requested_port)
        await site.start()
        self._runner = runner

        addresses = runner.addresses
        self._bound_port = addresses[0][1] if addresses else self._requested_port
        LOGGER.info(
            "Device health at http://%s:%s/healthz", self._host, self._bound_port
        )

    async def stop(self) -> None:
        runner, self._runner = self._runner, None
        self._bound_port = None
        if runner is not None:
            await runner.cleanup()

    async def _serve_snapshot(self, request: web.Request) -> web.Response:
        snapshot = await self._reporter.snapshot()
        return web.json_response(
            snapshot,
            status=200 if snapshot["status"] == "ok" else 503,
            headers={"Cache-Control": "no-store"},
        )
