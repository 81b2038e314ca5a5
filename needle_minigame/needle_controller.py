from __future__ import annotations

import logging
import math
import random
from collections.abc import Mapping
from dataclasses import dataclass, replace
from enum import StrEnum

from .clock import Clock
from .gauge import ZoneConfig, ZoneTier, classify, normalize_deg
from .messages import (
    CLOSE_CHANNEL,
    EventSink,
    GaugeEvent,
    GaugeEventKind,
    StartCommand,
    parse_host_message,
    with_defaults,
)
from .scheduler import Scheduler, TaskHandle

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MinigameConfig:
    # Velocities are expressed per tick, so the tick rate sets the on-screen speed.
    tick_hz: float = 60.0
    # Flash time between freezing the needle and reporting the result.
    feedback_delay_s: float = 0.600
    max_tick_lag_s: float = 0.50
    close_channel: str = CLOSE_CHANNEL


class ControllerState(StrEnum):
    IDLE = "idle"
    RUNNING = "running"
    RESOLVING = "resolving"


@dataclass(frozen=True, slots=True)
class NeedleState:
    angle: float
    velocity: float

    def advanced(self) -> NeedleState:
        return NeedleState(angle=normalize_deg(self.angle + self.velocity), velocity=self.velocity)


@dataclass(frozen=True, slots=True)
class ActivationSession:
    session_id: int
    zone: ZoneConfig
    needle: NeedleState
    active: bool
    report_channel: str
    ticks: int = 0
    tier: ZoneTier | None = None
    tick_task: TaskHandle | None = None
    resolve_task: TaskHandle | None = None


@dataclass(frozen=True, slots=True)
class GaugeSnapshot:
    """View model for the presentation layer (pure data)."""

    state: ControllerState
    visible: bool
    angle: float | None
    zone: ZoneConfig | None
    flash_tier: ZoneTier | None


class NeedleController:
    """Owns the single ActivationSession and runs the needle state machine.

    idle -> running on START; running -> resolving on STOP, which freezes and
    grades the needle and reports after ``feedback_delay_s``; running -> idle
    on CANCEL, which reports on the close channel at once. START at any time
    replaces the current session and cancels its scheduled work.
    """

    def __init__(
        self,
        *,
        clock: Clock,
        sink: EventSink,
        seed: int | None = None,
        config: MinigameConfig | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        cfg = config or MinigameConfig()
        if not math.isfinite(cfg.tick_hz) or cfg.tick_hz <= 0.0:
            raise ValueError("tick_hz must be finite and > 0")
        if not math.isfinite(cfg.feedback_delay_s) or cfg.feedback_delay_s < 0.0:
            raise ValueError("feedback_delay_s must be finite and >= 0")
        if cfg.close_channel.strip() == "":
            raise ValueError("close_channel must be non-empty")

        self._cfg = cfg
        self._sink = sink
        self._scheduler = scheduler or Scheduler(clock=clock, max_lag_s=cfg.max_tick_lag_s)
        self._rng = random.Random(seed)
        self._tick_interval_s = 1.0 / float(cfg.tick_hz)

        self._state = ControllerState.IDLE
        self._session: ActivationSession | None = None
        self._next_session_id = 1

    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def session(self) -> ActivationSession | None:
        return self._session

    @property
    def config(self) -> MinigameConfig:
        return self._cfg

    @property
    def scheduler(self) -> Scheduler:
        return self._scheduler

    def handle(self, event: GaugeEvent) -> None:
        if event.kind is GaugeEventKind.START:
            self.start(event.command or StartCommand())
        elif event.kind is GaugeEventKind.STOP:
            self.stop()
        elif event.kind is GaugeEventKind.CANCEL:
            self.cancel()

    def handle_message(self, message: Mapping[str, object]) -> bool:
        """Dispatch a host message. Returns True if it mapped to an event."""

        event = parse_host_message(message)
        if event is None:
            return False
        self.handle(event)
        return True

    def update(self) -> None:
        self._scheduler.run_due()

    def start(self, command: StartCommand) -> ActivationSession:
        command = with_defaults(command)
        if self._session is not None:
            log.info(
                "session %d replaced while %s",
                self._session.session_id,
                self._state.value,
            )
            self._release(self._session)

        if command.target_start is None:
            target_start = float(self._rng.randrange(360))
        else:
            target_start = normalize_deg(command.target_start)

        zone = ZoneConfig(
            target_start=target_start,
            target_size=float(command.target_size),
            tolerance_size=float(command.tolerance_size),
        )
        session_id = self._next_session_id
        self._next_session_id += 1

        tick_task = self._scheduler.call_every(
            self._tick_interval_s,
            lambda: self._on_tick(session_id),
            name=f"tick:{session_id}",
        )
        self._session = ActivationSession(
            session_id=session_id,
            zone=zone,
            needle=NeedleState(angle=normalize_deg(target_start + 180.0), velocity=float(command.velocity)),
            active=True,
            report_channel=command.report_channel,
            tick_task=tick_task,
        )
        self._state = ControllerState.RUNNING
        log.info(
            "session %d started: target=%.0f+%.0f tolerance=%.0f speed=%.2f channel=%s",
            session_id,
            zone.target_start,
            zone.target_size,
            zone.tolerance_size,
            command.velocity,
            command.report_channel,
        )
        return self._session

    def tick(self) -> bool:
        """Advance the needle one step. Returns False when no session is running."""

        s = self._session
        if s is None or not s.active:
            return False
        self._session = replace(s, needle=s.needle.advanced(), ticks=s.ticks + 1)
        return True

    def stop(self) -> ZoneTier | None:
        s = self._session
        if s is None or not s.active:
            return None

        self._scheduler.cancel(s.tick_task)
        tier = classify(s.needle.angle, s.zone)
        resolve_task = self._scheduler.call_later(
            self._cfg.feedback_delay_s,
            lambda: self._resolve(s.session_id),
            name=f"resolve:{s.session_id}",
        )
        self._session = replace(s, active=False, tier=tier, tick_task=None, resolve_task=resolve_task)
        self._state = ControllerState.RESOLVING
        log.info(
            "session %d stopped at %.2f deg after %d ticks: %s",
            s.session_id,
            s.needle.angle,
            s.ticks,
            tier.value,
        )
        return tier

    def cancel(self) -> bool:
        s = self._session
        if s is None or not s.active:
            return False

        self._release(s)
        self._session = None
        self._state = ControllerState.IDLE
        log.info("session %d cancelled", s.session_id)
        self._sink.post(self._cfg.close_channel, {})
        return True

    def snapshot(self) -> GaugeSnapshot:
        s = self._session
        if s is None:
            return GaugeSnapshot(
                state=self._state,
                visible=False,
                angle=None,
                zone=None,
                flash_tier=None,
            )
        return GaugeSnapshot(
            state=self._state,
            visible=True,
            angle=s.needle.angle,
            zone=s.zone,
            flash_tier=s.tier if self._state is ControllerState.RESOLVING else None,
        )

    def _on_tick(self, session_id: int) -> None:
        if self._session is None or self._session.session_id != session_id:
            return
        self.tick()

    def _resolve(self, session_id: int) -> None:
        s = self._session
        if s is None or s.session_id != session_id or self._state is not ControllerState.RESOLVING:
            return
        assert s.tier is not None

        self._session = None
        self._state = ControllerState.IDLE
        log.info("session %d reporting %s on %s", session_id, s.tier.color_name, s.report_channel)
        self._sink.post(s.report_channel, {"result": s.tier.color_name})

    def _release(self, session: ActivationSession) -> None:
        self._scheduler.cancel(session.tick_task)
        self._scheduler.cancel(session.resolve_task)
