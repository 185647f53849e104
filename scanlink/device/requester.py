"""Client for the backend's next-action endpoint."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import aiohttp

from ..constants import PROCESS_NEXT_PATH
from ..core.models import ActionResponse, ActionResult

LOGGER = logging.getLogger(__name__)


class ActionRequester:
    """Asks the backend what to do for a resolved person.

    Every failure (transport error, timeout, non-2xx status, malformed body)
    is folded into a failed ``ActionResult``; nothing is raised to the caller.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 5.0,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self._url = base_url.rstrip("/") + PROCESS_NEXT_PATH
        self._timeout = timeout
        self._session = session
        self._owns_session = session is None

    async def request_next(self, person_name: str) -> ActionResult:
        session = await self._ensure_session()
        body = {"person_name": person_name}

        try:
            async with asyncio.timeout(self._timeout):
                async with session.post(self._url, json=body) as response:
                    if not 200 <= response.status < 300:
                        detail = await response.text()
                        LOGGER.warning(
                            "Action request for %s failed with status %d: %s",
                            person_name,
                            response.status,
                            detail.strip()[:200],
                        )
                        return ActionResult.failure(f"HTTP {response.status}")
                    payload = await response.json(content_type=None)
        except asyncio.TimeoutError:
            LOGGER.warning(
                "Action request for %s timed out after %.1fs", person_name, self._timeout
            )
            return ActionResult.failure("timeout")
        except aiohttp.ClientError as exc:
            LOGGER.warning("Action request for %s failed: %s", person_name, exc)
            return ActionResult.failure(f"transport: {exc}")
        except ValueError as exc:
            LOGGER.warning("Action response for %s is not JSON: %s", person_name, exc)
            return ActionResult.failure("malformed response")

        try:
            parsed = ActionResponse.from_payload(payload)
        except ValueError as exc:
            LOGGER.warning("Action response for %s rejected: %s", person_name, exc)
            return ActionResult.failure("malformed response")

        LOGGER.debug(
            "Action for %s: %s (category=%r)", person_name, parsed.action, parsed.category
        )
        return ActionResult(response=parsed)

    async def aclose(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session
