from __future__ import annotations

import io
import json

import pytest

from needle_minigame.messages import (
    CLOSE_CHANNEL,
    DEFAULT_RESULT_CHANNEL,
    GaugeEventKind,
    JsonLinesSink,
    OutboundEvent,
    RecordingSink,
    StartCommand,
    parse_host_message,
    parse_start_command,
    with_defaults,
)


def test_start_message_without_fields_uses_defaults() -> None:
    cmd = parse_start_command({"action": "startMinigame"})
    assert cmd == StartCommand(
        target_size=45.0,
        tolerance_size=30.0,
        velocity=2.0,
        report_channel="minigameResult",
    )
    assert cmd.target_start is None


def test_start_message_fields_are_read() -> None:
    cmd = parse_start_command(
        {
            "action": "startMinigame",
            "greenZone": 20,
            "yellowZone": 12.5,
            "speed": 3.5,
            "callbackEvent": "drillResult",
        }
    )
    assert cmd.target_size == 20.0
    assert cmd.tolerance_size == 12.5
    assert cmd.velocity == 3.5
    assert cmd.report_channel == "drillResult"


@pytest.mark.parametrize(
    "bad",
    [None, 0, -5, "abc", "30", True, float("nan"), float("inf"), [45], 10**400, -(10**400)],
)
def test_invalid_zone_sizes_fall_back(bad: object) -> None:
    cmd = parse_start_command({"greenZone": bad, "yellowZone": bad})
    assert cmd.target_size == 45.0
    assert cmd.tolerance_size == 30.0


@pytest.mark.parametrize("bad", [None, 0, 0.0, "fast", False, float("nan")])
def test_invalid_speed_falls_back(bad: object) -> None:
    assert parse_start_command({"speed": bad}).velocity == 2.0


def test_negative_speed_is_kept() -> None:
    assert parse_start_command({"speed": -1.5}).velocity == -1.5


@pytest.mark.parametrize("bad", [None, "", "   ", 7, {"name": "x"}])
def test_invalid_callback_event_falls_back(bad: object) -> None:
    assert parse_start_command({"callbackEvent": bad}).report_channel == DEFAULT_RESULT_CHANNEL


def test_parse_host_message_dispatch() -> None:
    start = parse_host_message({"action": "startMinigame", "greenZone": 10})
    assert start is not None
    assert start.kind is GaugeEventKind.START
    assert start.command is not None
    assert start.command.target_size == 10.0

    cancel = parse_host_message({"action": "cancelMinigame"})
    assert cancel is not None
    assert cancel.kind is GaugeEventKind.CANCEL

    assert parse_host_message({"action": "openInventory"}) is None
    assert parse_host_message({}) is None
    assert parse_host_message("startMinigame") is None
    assert parse_host_message(None) is None


def test_recording_sink_keeps_order_and_filters_by_channel() -> None:
    sink = RecordingSink()
    sink.post("minigameResult", {"result": "green"})
    sink.post(CLOSE_CHANNEL, {})

    assert sink.events == [
        OutboundEvent(channel="minigameResult", payload={"result": "green"}),
        OutboundEvent(channel=CLOSE_CHANNEL, payload={}),
    ]
    assert sink.on(CLOSE_CHANNEL) == [{}]
    assert sink.on("minigameResult") == [{"result": "green"}]


def test_json_lines_sink_writes_one_object_per_line() -> None:
    stream = io.StringIO()
    sink = JsonLinesSink(stream)
    sink.post("minigameResult", {"result": "yellow"})
    sink.post(CLOSE_CHANNEL, {})

    lines = stream.getvalue().splitlines()
    assert [json.loads(line) for line in lines] == [
        {"channel": "minigameResult", "payload": {"result": "yellow"}},
        {"channel": "minigameClose", "payload": {}},
    ]


def test_oversized_json_integer_falls_back() -> None:
    message = json.loads('{"action": "startMinigame", "greenZone": 1' + "0" * 400 + ', "speed": 1' + "0" * 400 + "}")
    event = parse_host_message(message)
    assert event is not None
    assert event.command is not None
    assert event.command.target_size == 45.0
    assert event.command.velocity == 2.0


def test_with_defaults_repairs_a_hand_built_command() -> None:
    fixed = with_defaults(
        StartCommand(
            target_size=-5.0,
            tolerance_size=float("nan"),
            velocity=float("inf"),
            report_channel="",
            target_start=float("nan"),
        )
    )
    assert fixed == StartCommand()

    kept = StartCommand(target_size=10.0, tolerance_size=5.0, velocity=-3.0, report_channel="x", target_start=90.0)
    assert with_defaults(kept) == kept
