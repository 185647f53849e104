"""Live order stream over a websocket."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import random
from typing import Any, Awaitable, Callable, Mapping, Optional
from urllib.parse import urlparse, urlunparse

import aiohttp

from .. import constants
from ..core.models import ConnectionState, Order, OrderPayloadError

LOGGER = logging.getLogger(__name__)

OrderCallback = Callable[[Order], Awaitable[None] | None]
StateCallback = Callable[[ConnectionState], None]


class OrderStreamClient:
    """Duplex order channel with reconnect and jittered backoff.

    Inbound text frames carrying an order record are parsed and delivered to
    the registered callbacks in arrival order. Frames that are not orders are
    dropped.
    """

    def __init__(
        self,
        base_url: str,
        *,
        stream_path: str = constants.DEFAULT_STREAM_PATH,
        session: Optional[aiohttp.ClientSession] = None,
        reconnect_initial: float = 1.0,
        reconnect_max: float = 30.0,
        on_state: Optional[StateCallback] = None,
    ) -> None:
        self._url = build_ws_url(base_url, stream_path)
        self.reconnect_initial = reconnect_initial
        self.reconnect_max = reconnect_max
        self._on_state = on_state

        self._session: Optional[aiohttp.ClientSession] = session
        self._owns_session = session is None
        self._callbacks: list[OrderCallback] = []
        self._listener_task: Optional[asyncio.Task[None]] = None
        self._stop_event = asyncio.Event()
        self._active_ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._token: Optional[str] = None
        self._state = ConnectionState.DISCONNECTED

    def set_state_callback(self, callback: Optional[StateCallback]) -> None:
        self._on_state = callback

    @property
    def url(self) -> str:
        return self._url

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    def add_callback(self, callback: OrderCallback) -> None:
        if callback in self._callbacks:
            raise ValueError("Callback already registered")
        self._callbacks.append(callback)

    def remove_callback(self, callback: OrderCallback) -> None:
        with contextlib.suppress(ValueError):
            self._callbacks.remove(callback)

    async def start(self, token: str) -> None:
        """Connect with ``token`` and keep the connection alive until stopped."""

        self._token = token
        if self._listener_task is not None:
            return

        if self._owns_session and self._session is None:
            self._session = aiohttp.ClientSession()

        self._stop_event.clear()
        self._set_state(ConnectionState.CONNECTING)
        self._listener_task = asyncio.create_task(self._listen_loop())
        await asyncio.sleep(0)

    async def stop(self) -> None:
        self._stop_event.set()

        if self._listener_task is not None:
            self._listener_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._listener_task
            self._listener_task = None

        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

        self._token = None
        self._set_state(ConnectionState.DISCONNECTED)

    async def aclose(self) -> None:
        self._callbacks.clear()
        await self.stop()

    async def send(self, payload: Mapping[str, Any]) -> None:
        ws = self._active_ws
        if ws is None or ws.closed:
            raise RuntimeError("Order stream is not connected")
        await ws.send_json(dict(payload))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    async def _listen_loop(self) -> None:
        backoff = self.reconnect_initial

        while not self._stop_event.is_set():
            try:
                assert self._session is not None
                headers = {"Authorization": f"Bearer {self._token}"} if self._token else {}
                async with self._session.ws_connect(self._url, headers=headers) as ws:
                    LOGGER.info("Connected to order stream at %s", self._url)
                    backoff = self.reconnect_initial
                    self._active_ws = ws
                    self._set_state(ConnectionState.CONNECTED)
                    try:
                        async for message in ws:
                            if self._stop_event.is_set():
                                break
                            if message.type == aiohttp.WSMsgType.TEXT:
                                await self._dispatch(message.data)
                            elif message.type == aiohttp.WSMsgType.ERROR:
                                raise ws.exception() or RuntimeError("Websocket error")
                    finally:
                        self._active_ws = None
                if not self._stop_event.is_set():
                    LOGGER.info("Order stream closed by server; reconnecting")
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                if self._stop_event.is_set():
                    break
                LOGGER.warning("Order stream error: %s", exc)

            if self._stop_event.is_set():
                break
            self._set_state(ConnectionState.RECONNECTING)
            # full jitter: uniform in [0, backoff], then double up to the cap
            await asyncio.sleep(random.uniform(0, backoff))
            backoff = min(backoff * 2, self.reconnect_max)

    async def _dispatch(self, raw_data: str) -> None:
        try:
            payload = json.loads(raw_data)
        except json.JSONDecodeError:
            LOGGER.debug("Discarding non-JSON stream frame")
            return

        if isinstance(payload, Mapping) and isinstance(payload.get("order"), Mapping):
            payload = payload["order"]

        try:
            order = Order.from_payload(payload)
        except OrderPayloadError as exc:
            LOGGER.debug("Discarding stream frame that is not an order: %s", exc)
            return

        for callback in list(self._callbacks):
            try:
                result = callback(order)
                if asyncio.iscoroutine(result):
                    await result
            except Exception:
                LOGGER.exception("Order stream callback failed")

    def _set_state(self, state: ConnectionState) -> None:
        if state is self._state:
            return
        self._state = state
        if self._on_state is not None:
            self._on_state(state)


def build_ws_url(http_url: str, path: str) -> str:
    parsed = urlparse(http_url)
    scheme = "wss" if parsed.scheme == "https" else "ws"
    full_path = parsed.path.rstrip("/") + "/" + path.lstrip("/")
    return urlunparse((scheme, parsed.netloc, full_path, "", "", ""))
