"""Order client: session lifecycle around the order store and live stream."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Callable, Optional

from .adapters.backend import OrderServiceClient
from .adapters.order_stream import OrderStreamClient
from .config import ScanlinkConfig, load_config
from .core.models import (
    ConnectionState,
    Order,
    OrderDraft,
    OrderServiceError,
    Session,
    User,
)
from .orders.notifier import Notification, TransitionNotifier
from .orders.store import OrderStore

LOGGER = logging.getLogger(__name__)

Listener = Callable[[], None]

LOGIN_FAILED_MESSAGE = "Invalid username or password"
SIGNUP_FAILED_MESSAGE = "Signup failed. Please try again."


class SessionStore:
    """Persists the auth token between runs."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def load_token(self) -> Optional[str]:
        if not self._path.exists():
            return None
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            LOGGER.warning("Ignoring unreadable session file %s: %s", self._path, exc)
            return None
        token = payload.get("token") if isinstance(payload, dict) else None
        return token if isinstance(token, str) and token else None

    def save(self, user: User) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("w", encoding="utf-8") as stream:
            json.dump({"token": user.token, "username": user.username}, stream, indent=2)
        if hasattr(os, "chmod"):
            os.chmod(self._path, 0o600)

    def clear(self) -> None:
        self._path.unlink(missing_ok=True)


class OrderClient:
    """Keeps a logged-in user's orders in sync with the backend.

    Listeners registered with ``add_listener`` are called after every change
    to the orders, the session, or the loading flag.
    """

    def __init__(
        self,
        config: Optional[ScanlinkConfig] = None,
        *,
        service: Optional[OrderServiceClient] = None,
        stream: Optional[OrderStreamClient] = None,
        session_store: Optional[SessionStore] = None,
    ) -> None:
        self._config = config or load_config()
        backend = self._config.backend
        resilience = self._config.resilience

        self._service = service or OrderServiceClient(
            backend.base_url, timeout=backend.request_timeout_seconds
        )
        self._stream = stream or OrderStreamClient(
            backend.base_url,
            stream_path=self._config.client.stream_path,
            reconnect_initial=resilience.reconnect_initial_seconds,
            reconnect_max=resilience.reconnect_max_seconds,
        )
        self._session_store = session_store or SessionStore(
            self._config.client.session_path
        )

        self.store = OrderStore(self._service, publish=self._stream.send)
        self.notifier = TransitionNotifier()

        self._session: Optional[Session] = None
        self._loading = False
        self._error_message: Optional[str] = None
        self._listeners: list[Listener] = []

        self._stream.add_callback(self._handle_stream_order)
        self._stream.set_state_callback(self._handle_stream_state)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def current_user(self) -> Optional[User]:
        return self._session.user if self._session else None

    @property
    def orders(self) -> tuple[Order, ...]:
        return self.store.orders

    @property
    def is_loading(self) -> bool:
        return self._loading

    @property
    def error_message(self) -> Optional[str]:
        return self._error_message

    @property
    def is_logged_in(self) -> bool:
        return self._session is not None

    @property
    def is_connected(self) -> bool:
        return self._stream.is_connected

    def orders_by_status(self, status: str) -> list[Order]:
        return self.store.by_status(status)

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------
    async def init(self) -> bool:
        """Restore a persisted session, if any."""

        token = self._session_store.load_token()
        if token is None:
            return False

        try:
            user = await self._service.current_user(token)
        except OrderServiceError as exc:
            LOGGER.warning("Could not restore saved session: %s", exc)
            return False

        LOGGER.info("Restored session for %s", user.username)
        await self._open_session(user, token)
        await self.load_orders()
        return True

    async def login(self, username: str, password: str) -> bool:
        self._error_message = None
        self._set_loading(True)
        try:
            user = await self._service.login(username, password)
            if not user.token:
                raise OrderServiceError("Login response carried no token")
        except OrderServiceError as exc:
            LOGGER.warning("Login failed for %s: %s", username, exc)
            self._error_message = LOGIN_FAILED_MESSAGE
            return False
        finally:
            self._set_loading(False)

        self._session_store.save(user)
        await self._open_session(user, user.token)
        await self.load_orders()
        return True

    async def signup(
        self, username: str, email: str, password: str, department: str
    ) -> bool:
        self._error_message = None
        self._set_loading(True)
        try:
            user = await self._service.signup(username, email, password, department)
            if not user.token:
                raise OrderServiceError("Signup response carried no token")
        except OrderServiceError as exc:
            LOGGER.warning("Signup failed for %s: %s", username, exc)
            self._error_message = SIGNUP_FAILED_MESSAGE
            return False
        finally:
            self._set_loading(False)

        self._session_store.save(user)
        await self._open_session(user, user.token)
        return True

    async def logout(self) -> None:
        session = self._session
        if session is not None:
            try:
                await self._service.logout(session.token)
            except OrderServiceError as exc:
                LOGGER.debug("Server logout failed: %s", exc)

        self._session_store.clear()
        await self._stream.stop()

        # no awaits below: observers never see a half-cleared client
        self._session = None
        self.store.clear()
        self._error_message = None
        LOGGER.info("Logged out")
        self._notify_listeners()

    async def aclose(self) -> None:
        await self._stream.aclose()
        await self._service.aclose()
        self.notifier.clear()

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------
    async def load_orders(self) -> bool:
        if self._session is None:
            return False

        self._set_loading(True)
        try:
            return await self.store.load_all(self._session)
        finally:
            self._set_loading(False)

    async def create_order(
        self,
        *,
        toy_id: str,
        toy_name: str,
        category: str,
        rfid_uid: str,
        assigned_person: str,
        total_amount: float,
    ) -> bool:
        session = self._session
        if session is None:
            return False

        draft = OrderDraft(
            toy_id=toy_id,
            toy_name=toy_name,
            category=category,
            rfid_uid=rfid_uid,
            assigned_person=assigned_person,
            department=session.user.department,
            total_amount=total_amount,
        )

        self._set_loading(True)
        try:
            order = await self.store.create_order(draft, session)
        finally:
            self._set_loading(False)

        if order is None:
            return False

        self.notifier.announce(
            Notification(
                title="Order Placed!",
                body=f"Your order for {order.toy_name} has been confirmed.",
                order=order,
            )
        )
        self._notify_listeners()
        return True

    def update_email(self, new_email: str) -> None:
        self._update_user(email=new_email)

    def update_address(self, new_address: str) -> None:
        self._update_user(address=new_address)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    async def _open_session(self, user: User, token: str) -> None:
        self._session = Session(user=user, token=token)
        await self._stream.start(token)
        self._notify_listeners()

    def _handle_stream_order(self, order: Order) -> None:
        if self._session is None:
            return
        update = self.store.apply_stream_event(order)
        self.notifier.observe(update)
        self._notify_listeners()

    def _handle_stream_state(self, state: ConnectionState) -> None:
        if self._session is not None:
            self._session.connection_state = state
        self._notify_listeners()

    def _update_user(self, **changes: object) -> None:
        if self._session is None:
            return
        self._session.user = self._session.user.copy_with(**changes)
        self._notify_listeners()

    def _set_loading(self, value: bool) -> None:
        self._loading = value
        self._notify_listeners()

    def _notify_listeners(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                LOGGER.exception("Order client listener failed")
