import pytest

from scanlink.config import DEFAULT_OUTPUT_PINS
from scanlink.core.models import ActionKind, ActionResponse, ActionResult, Category
from scanlink.device.feedback import (
    NO_OUTPUT,
    FeedbackAction,
    FeedbackKind,
    OutputController,
)


def _result(action: str, led: str = "") -> ActionResult:
    return ActionResult(response=ActionResponse.from_payload({"action": action, "led": led}))


@pytest.mark.parametrize("category", list(Category))
def test_success_blinks_category_output(dispatcher, category: Category) -> None:
    action = dispatcher.decide("John Marwin", _result("processing_success", category.value))

    assert action.kind is FeedbackKind.BLINK
    assert action.output == DEFAULT_OUTPUT_PINS[category]


def test_success_with_unknown_category_is_error(dispatcher) -> None:
    action = dispatcher.decide("John Marwin", _result("processing_success", "Board Games"))

    assert action.kind is FeedbackKind.ERROR
    assert action.output == NO_OUTPUT


def test_no_pending_orders_plays_ready(dispatcher) -> None:
    action = dispatcher.decide("John Marwin", _result("no_pending_orders"))

    assert action.kind is FeedbackKind.READY


@pytest.mark.parametrize("action_name", ["processing_failed", "PROCESSING_SUCCESS", ""])
def test_other_actions_are_errors(dispatcher, action_name: str) -> None:
    action = dispatcher.decide("John Marwin", _result(action_name, "Toy Guns"))

    assert action.kind is FeedbackKind.ERROR


def test_request_failure_is_error(dispatcher) -> None:
    assert dispatcher.decide("John Marwin", ActionResult.failure("timeout")).kind is FeedbackKind.ERROR
    assert dispatcher.decide("John Marwin", None).kind is FeedbackKind.ERROR


def test_unknown_card_is_error_with_its_own_message(dispatcher) -> None:
    unknown = dispatcher.decide(None, None, card_id="01 02 03 04")
    failed = dispatcher.decide("John Marwin", ActionResult.failure("timeout"))

    assert unknown.kind is FeedbackKind.ERROR
    assert unknown.headline == "Unknown card"
    assert unknown.detail == "01 02 03 04"
    assert unknown.headline != failed.headline


def test_action_response_parsing() -> None:
    response = ActionResponse.from_payload({"action": "processing_success", "led": "Toy Guns"})
    assert response.kind is ActionKind.PROCESSING_SUCCESS
    assert response.category == "Toy Guns"

    assert ActionResponse.from_payload({"action": "x", "led": None}).category == ""

    for payload in ([], {"led": "Toy Guns"}, {"action": 3}, {"action": "x", "led": 5}):
        with pytest.raises(ValueError):
            ActionResponse.from_payload(payload)


@pytest.mark.asyncio
async def test_dispatch_blink_pulses_output_and_writes_display(dispatcher, pins, display) -> None:
    toy_guns = DEFAULT_OUTPUT_PINS[Category.TOY_GUNS]

    await dispatcher.dispatch(
        FeedbackAction(FeedbackKind.BLINK, output=toy_guns, headline="Processing: John", detail="Toy Guns")
    )

    assert pins.rising_edges(toy_guns) == 3
    assert all(pin == toy_guns for pin, _ in pins.writes)
    assert pins.writes[-1] == (toy_guns, False)
    assert display.lines == {0: "Processing: John", 1: "Toy Guns"}


@pytest.mark.asyncio
async def test_error_pattern_flashes_every_output(dispatcher, pins) -> None:
    await dispatcher.signal_error("Network down")

    for pin in DEFAULT_OUTPUT_PINS.values():
        assert pins.rising_edges(pin) == 3


@pytest.mark.asyncio
async def test_ready_pattern_lights_each_output_once(dispatcher, pins, outputs) -> None:
    await dispatcher.dispatch(FeedbackAction(FeedbackKind.READY, headline="No pending orders"))

    for pin in DEFAULT_OUTPUT_PINS.values():
        assert pins.rising_edges(pin) == 1
    assert not any(outputs.levels.values())


@pytest.mark.asyncio
async def test_no_output_sentinel_is_noop(pins) -> None:
    controller = OutputController(pins, DEFAULT_OUTPUT_PINS)

    controller.set_level(NO_OUTPUT, True)
    await controller.pulse(NO_OUTPUT, 3, 0.0)

    assert controller.resolve("Board Games") == NO_OUTPUT
    assert pins.writes == []


@pytest.mark.asyncio
async def test_play_pattern_rejects_blink(outputs) -> None:
    with pytest.raises(ValueError):
        await outputs.play_pattern(FeedbackKind.BLINK)
