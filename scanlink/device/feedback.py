"""Physical feedback: output control and the outcome-to-feedback mapping."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Mapping, Optional

from ..core.models import ActionKind, ActionResult, Category
from ..core.protocols import Display, OutputPins

LOGGER = logging.getLogger(__name__)

NO_OUTPUT = -1

SleepFunc = Callable[[float], Awaitable[None]]


class FeedbackKind(str, Enum):
    BLINK = "blink"
    READY = "ready"
    ERROR = "error"


@dataclass(slots=True, frozen=True)
class FeedbackAction:
    kind: FeedbackKind
    output: int = NO_OUTPUT
    headline: str = ""
    detail: str = ""


class OutputController:
    """Owns the output levels; every pin write goes through here.

    Operations addressed to ``NO_OUTPUT`` are silently ignored.
    """

    def __init__(
        self,
        pins: OutputPins,
        outputs: Mapping[Category, int],
        *,
        pattern_interval: float = 0.15,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        self._pins = pins
        self._outputs = dict(outputs)
        self._pattern_interval = pattern_interval
        self._sleep = sleep
        self._levels: dict[int, bool] = {pin: False for pin in self._outputs.values()}

    @property
    def levels(self) -> dict[int, bool]:
        return dict(self._levels)

    def resolve(self, category: str) -> int:
        member = Category.parse(category)
        if member is None:
            return NO_OUTPUT
        return self._outputs.get(member, NO_OUTPUT)

    def set_level(self, output: int, high: bool) -> None:
        if output == NO_OUTPUT:
            return
        self._pins.set_level(output, high)
        self._levels[output] = high

    def set_all(self, high: bool) -> None:
        for output in self._outputs.values():
            self.set_level(output, high)

    async def pulse(self, output: int, count: int, interval: float) -> None:
        if output == NO_OUTPUT:
            return
        for _ in range(count):
            self.set_level(output, True)
            await self._sleep(interval)
            self.set_level(output, False)
            await self._sleep(interval)

    async def play_pattern(self, name: FeedbackKind) -> None:
        if name is FeedbackKind.READY:
            await self._chase()
        elif name is FeedbackKind.ERROR:
            await self._flash_all(times=3)
        else:
            raise ValueError(f"No pattern named {name!r}")

    async def _chase(self) -> None:
        # one output at a time, in category order
        self.set_all(False)
        for output in self._outputs.values():
            self.set_level(output, True)
            await self._sleep(self._pattern_interval)
            self.set_level(output, False)

    async def _flash_all(self, *, times: int) -> None:
        for _ in range(times):
            self.set_all(True)
            await self._sleep(self._pattern_interval)
            self.set_all(False)
            await self._sleep(self._pattern_interval)


class FeedbackDispatcher:
    """Maps a scan outcome to exactly one feedback action and performs it."""

    def __init__(
        self,
        outputs: OutputController,
        display: Optional[Display] = None,
        *,
        blink_count: int = 3,
        blink_interval: float = 0.3,
    ) -> None:
        self._outputs = outputs
        self._display = display
        self._blink_count = blink_count
        self._blink_interval = blink_interval

    def decide(
        self,
        person: Optional[str],
        result: Optional[ActionResult],
        *,
        card_id: str = "",
    ) -> FeedbackAction:
        """Pure mapping from (identity, request outcome) to feedback.

        ``person`` is None for a card missing from the identity table; in that
        case ``result`` is ignored since no request is made.
        """

        if person is None:
            return FeedbackAction(
                FeedbackKind.ERROR, headline="Unknown card", detail=card_id
            )

        if result is None or result.response is None:
            return FeedbackAction(
                FeedbackKind.ERROR, headline="Request failed", detail=person
            )

        response = result.response
        if response.kind is ActionKind.PROCESSING_SUCCESS:
            output = self._outputs.resolve(response.category)
            if output == NO_OUTPUT:
                return FeedbackAction(
                    FeedbackKind.ERROR,
                    headline="Unknown category",
                    detail=response.category,
                )
            return FeedbackAction(
                FeedbackKind.BLINK,
                output=output,
                headline=f"Processing: {person}",
                detail=response.category,
            )

        if response.kind is ActionKind.NO_PENDING_ORDERS:
            return FeedbackAction(
                FeedbackKind.READY, headline="No pending orders", detail=person
            )

        return FeedbackAction(
            FeedbackKind.ERROR, headline="Unexpected action", detail=response.action
        )

    async def dispatch(self, action: FeedbackAction) -> None:
        LOGGER.info(
            "Feedback %s: %s %s", action.kind.value, action.headline, action.detail
        )
        self._show(action.headline, action.detail)

        if action.kind is FeedbackKind.BLINK:
            await self._outputs.pulse(
                action.output, self._blink_count, self._blink_interval
            )
        else:
            await self._outputs.play_pattern(action.kind)

    async def signal_error(self, headline: str, detail: str = "") -> None:
        await self.dispatch(
            FeedbackAction(FeedbackKind.ERROR, headline=headline, detail=detail)
        )

    def _show(self, headline: str, detail: str) -> None:
        if self._display is None:
            return
        self._display.clear()
        self._display.write_line(0, headline)
        if detail:
            self._display.write_line(1, detail)
