"""REST client for authentication and order endpoints."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping, Optional

import aiohttp

from .. import constants
from ..core.models import (
    Order,
    OrderDraft,
    OrderPayloadError,
    OrderServiceError,
    User,
)

LOGGER = logging.getLogger(__name__)


class OrderServiceClient:
    """Non-blocking access to the order backend.

    Every failure surfaces as ``OrderServiceError``; callers decide whether
    to turn it into a user-facing message.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session
        self._owns_session = session is None

    @property
    def base_url(self) -> str:
        return self._base_url

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------
    async def login(self, username: str, password: str) -> User:
        payload = await self._request(
            "POST",
            constants.LOGIN_PATH,
            json={"username": username, "password": password},
        )
        return _user_from_auth(payload)

    async def signup(
        self, username: str, email: str, password: str, department: str
    ) -> User:
        payload = await self._request(
            "POST",
            constants.SIGNUP_PATH,
            json={
                "username": username,
                "email": email,
                "password": password,
                "department": department,
            },
        )
        return _user_from_auth(payload)

    async def current_user(self, token: str) -> User:
        payload = await self._request("GET", constants.CURRENT_USER_PATH, token=token)
        body = payload.get("user", payload) if isinstance(payload, Mapping) else payload
        try:
            return User.from_payload(body, token=token)
        except ValueError as exc:
            raise OrderServiceError(f"Malformed user payload: {exc}") from exc

    async def logout(self, token: str) -> None:
        await self._request("POST", constants.LOGOUT_PATH, token=token)

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------
    async def fetch_orders(self, token: str) -> list[Order]:
        payload = await self._request("GET", constants.ORDERS_PATH, token=token)
        if isinstance(payload, Mapping):
            payload = payload.get("orders")
        if not isinstance(payload, list):
            raise OrderServiceError("Order list response is not a list")

        try:
            return [Order.from_payload(item) for item in payload]
        except OrderPayloadError as exc:
            raise OrderServiceError(f"Malformed order in list: {exc}") from exc

    async def create_order(self, draft: OrderDraft, token: str) -> Order:
        payload = await self._request(
            "POST", constants.ORDERS_PATH, token=token, json=draft.to_payload()
        )
        if isinstance(payload, Mapping) and isinstance(payload.get("order"), Mapping):
            payload = payload["order"]
        try:
            return Order.from_payload(payload)
        except OrderPayloadError as exc:
            raise OrderServiceError(f"Malformed created order: {exc}") from exc

    async def aclose(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def _request(
        self,
        method: str,
        path: str,
        *,
        token: Optional[str] = None,
        json: Optional[dict[str, Any]] = None,
    ) -> Any:
        session = await self._ensure_session()
        url = f"{self._base_url}{path}"
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            async with asyncio.timeout(self._timeout):
                async with session.request(
                    method, url, json=json, headers=headers
                ) as response:
                    if response.status >= 400:
                        detail = await response.text()
                        raise OrderServiceError(
                            f"{method} {path} failed with status {response.status}: {detail.strip()[:200]}"
                        )
                    if response.status == 204:
                        return None
                    return await response.json(content_type=None)
        except asyncio.TimeoutError as exc:
            LOGGER.warning("%s %s timed out after %.1fs", method, path, self._timeout)
            raise OrderServiceError(f"{method} {path} timed out") from exc
        except aiohttp.ClientError as exc:
            LOGGER.warning("%s %s failed: %s", method, path, exc)
            raise OrderServiceError(f"{method} {path} failed: {exc}") from exc
        except ValueError as exc:
            raise OrderServiceError(f"{method} {path} returned invalid JSON") from exc


def _user_from_auth(payload: Any) -> User:
    if not isinstance(payload, Mapping):
        raise OrderServiceError("Auth response is not an object")

    token = payload.get("token") or payload.get("access_token")
    if not isinstance(token, str) or not token:
        raise OrderServiceError("Auth response missing token")

    body = payload.get("user", payload)
    try:
        return User.from_payload(body, token=token)
    except ValueError as exc:
        raise OrderServiceError(f"Malformed user payload: {exc}") from exc
