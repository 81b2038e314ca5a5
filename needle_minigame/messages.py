"""Message contract between the minigame core and its host.

Inbound host messages are plain mappings (decoded JSON). Outbound events are a
channel name plus a JSON-serializable payload handed to an ``EventSink``; the
transport behind the sink belongs to the host.
"""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Protocol, TextIO

log = logging.getLogger(__name__)

START_ACTION = "startMinigame"
CANCEL_ACTION = "cancelMinigame"

DEFAULT_TARGET_SIZE_DEG = 45.0
DEFAULT_TOLERANCE_SIZE_DEG = 30.0
DEFAULT_SPEED_DEG_PER_TICK = 2.0
DEFAULT_RESULT_CHANNEL = "minigameResult"
CLOSE_CHANNEL = "minigameClose"


class GaugeEventKind(StrEnum):
    START = "start"
    STOP = "stop"
    CANCEL = "cancel"


@dataclass(frozen=True, slots=True)
class StartCommand:
    target_size: float = DEFAULT_TARGET_SIZE_DEG
    tolerance_size: float = DEFAULT_TOLERANCE_SIZE_DEG
    velocity: float = DEFAULT_SPEED_DEG_PER_TICK
    report_channel: str = DEFAULT_RESULT_CHANNEL
    # Whole-degree placement of the target arc; None means pick at random.
    target_start: float | None = None


@dataclass(frozen=True, slots=True)
class GaugeEvent:
    kind: GaugeEventKind
    command: StartCommand | None = None

    @classmethod
    def start(cls, command: StartCommand | None = None) -> GaugeEvent:
        return cls(kind=GaugeEventKind.START, command=command or StartCommand())

    @classmethod
    def stop(cls) -> GaugeEvent:
        return cls(kind=GaugeEventKind.STOP)

    @classmethod
    def cancel(cls) -> GaugeEvent:
        return cls(kind=GaugeEventKind.CANCEL)


@dataclass(frozen=True, slots=True)
class OutboundEvent:
    channel: str
    payload: dict[str, Any]


class EventSink(Protocol):
    def post(self, channel: str, payload: dict[str, Any]) -> None: ...


class RecordingSink:
    """Keeps every posted event in memory, in order."""

    def __init__(self) -> None:
        self.events: list[OutboundEvent] = []

    def post(self, channel: str, payload: dict[str, Any]) -> None:
        self.events.append(OutboundEvent(channel=str(channel), payload=dict(payload)))

    def on(self, channel: str) -> list[dict[str, Any]]:
        return [e.payload for e in self.events if e.channel == channel]


class JsonLinesSink:
    """Writes one ``{"channel": ..., "payload": ...}`` JSON object per line."""

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream

    def post(self, channel: str, payload: dict[str, Any]) -> None:
        line = json.dumps({"channel": channel, "payload": payload}, sort_keys=True)
        self._stream.write(line + "\n")
        self._stream.flush()


def _as_number(value: object) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        f = float(value)
    except OverflowError:
        return None
    if not math.isfinite(f):
        return None
    return f


def _size_or_default(value: object, fallback: float) -> float:
    f = _as_number(value)
    if f is None or f <= 0.0:
        return fallback
    return f


def _speed_or_default(value: object, fallback: float) -> float:
    f = _as_number(value)
    if f is None or f == 0.0:
        return fallback
    return f


def _channel_or_default(value: object, fallback: str) -> str:
    if not isinstance(value, str) or value.strip() == "":
        return fallback
    return value


def with_defaults(command: StartCommand) -> StartCommand:
    """Return ``command`` with every bad field replaced by its default.

    A ``target_start`` that is not a finite number becomes None (random placement).
    """

    target_start = _as_number(command.target_start)
    return StartCommand(
        target_size=_size_or_default(command.target_size, DEFAULT_TARGET_SIZE_DEG),
        tolerance_size=_size_or_default(command.tolerance_size, DEFAULT_TOLERANCE_SIZE_DEG),
        velocity=_speed_or_default(command.velocity, DEFAULT_SPEED_DEG_PER_TICK),
        report_channel=_channel_or_default(command.report_channel, DEFAULT_RESULT_CHANNEL),
        target_start=target_start,
    )


def parse_start_command(message: Mapping[str, object]) -> StartCommand:
    """Build a StartCommand from a host message, defaulting bad or missing fields."""

    return StartCommand(
        target_size=_size_or_default(message.get("greenZone"), DEFAULT_TARGET_SIZE_DEG),
        tolerance_size=_size_or_default(message.get("yellowZone"), DEFAULT_TOLERANCE_SIZE_DEG),
        velocity=_speed_or_default(message.get("speed"), DEFAULT_SPEED_DEG_PER_TICK),
        report_channel=_channel_or_default(message.get("callbackEvent"), DEFAULT_RESULT_CHANNEL),
    )


def parse_host_message(message: object) -> GaugeEvent | None:
    """Translate a host message into a GaugeEvent, or None if it is not for us."""

    if not isinstance(message, Mapping):
        log.debug("ignoring non-mapping host message: %r", message)
        return None

    action = message.get("action")
    if action == START_ACTION:
        return GaugeEvent.start(parse_start_command(message))
    if action == CANCEL_ACTION:
        return GaugeEvent.cancel()

    log.debug("ignoring host message with action %r", action)
    return None
