"""Pygame host shell for the needle minigame.

Stands in for the enclosing application: Enter sends a start message, and the
gauge takes pointer/Space (stop) and Escape (cancel) while it is running.
Drawing is a projection of ``NeedleController.snapshot()``; outbound events are
written as JSON lines and listed in the side panel.
"""

from __future__ import annotations

import logging
import math
import os
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol, TextIO

import pygame

from .clock import RealClock
from .gauge import ZoneConfig, ZoneTier, zone_arcs
from .messages import START_ACTION, EventSink, JsonLinesSink, OutboundEvent, RecordingSink
from .needle_controller import ControllerState, GaugeSnapshot, NeedleController

log = logging.getLogger(__name__)

WINDOW_SIZE = (960, 540)
TARGET_FPS = 60

SEED_ENV = "NEEDLE_MINIGAME_SEED"
EVENTS_PATH_ENV = "NEEDLE_MINIGAME_EVENTS"

OUTER_RADIUS = 130
INNER_RADIUS = 90
NEEDLE_LENGTH = OUTER_RADIUS + 10

_TIER_FILL = {
    ZoneTier.TARGET: (50, 180, 70),
    ZoneTier.TOLERANCE: (200, 180, 50),
    ZoneTier.MISS: (180, 40, 40),
}
_TIER_FLASH = {
    ZoneTier.TARGET: (50, 220, 80, 100),
    ZoneTier.TOLERANCE: (220, 200, 50, 100),
    ZoneTier.MISS: (220, 50, 50, 100),
}


class Screen(Protocol):
    def handle_event(self, event: pygame.event.Event) -> None: ...
    def render(self, surface: pygame.Surface) -> None: ...


class _FanOutSink:
    def __init__(self, *sinks: EventSink) -> None:
        self._sinks = sinks

    def post(self, channel: str, payload: dict[str, Any]) -> None:
        for sink in self._sinks:
            sink.post(channel, payload)


def _gauge_point(cx: int, cy: int, radius: float, angle_deg: float) -> tuple[int, int]:
    # 0 degrees at the top, increasing clockwise.
    rad = math.radians(float(angle_deg))
    x = int(round(cx + math.sin(rad) * radius))
    y = int(round(cy - math.cos(rad) * radius))
    return x, y


def _draw_ring_segment(
    surface: pygame.Surface,
    color: tuple[int, ...],
    center: tuple[int, int],
    start_deg: float,
    size_deg: float,
) -> None:
    if size_deg <= 0.0:
        return
    size_deg = min(360.0, size_deg)
    cx, cy = center
    steps = max(2, int(math.ceil(size_deg / 3.0)))
    outer = [_gauge_point(cx, cy, OUTER_RADIUS, start_deg + size_deg * i / steps) for i in range(steps + 1)]
    inner = [_gauge_point(cx, cy, INNER_RADIUS, start_deg + size_deg * i / steps) for i in range(steps, -1, -1)]
    pygame.draw.polygon(surface, color, outer + inner)


class GaugeScreen:
    def __init__(self, controller: NeedleController, events: RecordingSink, *, on_quit: Callable[[], None]) -> None:
        self._controller = controller
        self._events = events
        self._on_quit = on_quit
        self._title_font = pygame.font.Font(None, 42)
        self._small_font = pygame.font.Font(None, 24)
        self._gauge_rect = pygame.Rect(0, 0, 0, 0)

    def handle_event(self, event: pygame.event.Event) -> None:
        state = self._controller.state

        if event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
            if state is ControllerState.RUNNING and self._gauge_rect.collidepoint(event.pos):
                self._controller.stop()
            return

        if event.type != pygame.KEYDOWN:
            return

        if state is ControllerState.RUNNING:
            if event.key == pygame.K_SPACE:
                self._controller.stop()
            elif event.key == pygame.K_ESCAPE:
                self._controller.cancel()
            return

        if state is ControllerState.IDLE:
            if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER):
                self._controller.handle_message({"action": START_ACTION})
            elif event.key == pygame.K_ESCAPE:
                self._on_quit()

    def render(self, surface: pygame.Surface) -> None:
        self._controller.update()
        snap = self._controller.snapshot()

        w, h = surface.get_size()
        surface.fill((10, 10, 14))

        title = self._title_font.render("Needle Gauge", True, (235, 235, 245))
        surface.blit(title, (40, 30))

        gauge_size = OUTER_RADIUS * 2 + 40
        self._gauge_rect = pygame.Rect(0, 0, gauge_size, gauge_size)
        self._gauge_rect.center = (w // 3, h // 2 + 10)

        if snap.visible and snap.zone is not None and snap.angle is not None:
            self._draw_gauge(surface, snap.zone)
            self._draw_needle(surface, snap.angle)
            if snap.flash_tier is not None:
                self._draw_flash(surface, snap)
        else:
            hint = self._small_font.render("Enter: start  |  Esc: quit", True, (180, 180, 190))
            surface.blit(hint, hint.get_rect(center=self._gauge_rect.center))

        self._draw_event_log(surface, self._events.events)

        if snap.state is ControllerState.RUNNING:
            footer = "Click/Space: stop  |  Esc: cancel"
            foot = self._small_font.render(footer, True, (150, 150, 165))
            surface.blit(foot, foot.get_rect(midbottom=(w // 2, h - 14)))

    def _draw_gauge(self, surface: pygame.Surface, zone: ZoneConfig) -> None:
        center = self._gauge_rect.center
        _draw_ring_segment(surface, _TIER_FILL[ZoneTier.MISS], center, 0.0, 360.0)
        for arc in zone_arcs(zone):
            _draw_ring_segment(surface, _TIER_FILL[arc.tier], center, arc.start_deg, arc.size_deg)

        pygame.draw.circle(surface, (20, 20, 25), center, INNER_RADIUS - 2)
        pygame.draw.circle(surface, (90, 90, 110), center, INNER_RADIUS, 2)
        pygame.draw.circle(surface, (90, 90, 110), center, OUTER_RADIUS, 2)

    def _draw_needle(self, surface: pygame.Surface, angle: float) -> None:
        cx, cy = self._gauge_rect.center
        tip = _gauge_point(cx, cy, NEEDLE_LENGTH, angle)
        pygame.draw.line(surface, (255, 255, 255), (cx, cy), tip, 3)
        pygame.draw.circle(surface, (255, 255, 255), tip, 5)
        pygame.draw.circle(surface, (204, 204, 204), (cx, cy), 6)

    def _draw_flash(self, surface: pygame.Surface, snap: GaugeSnapshot) -> None:
        assert snap.flash_tier is not None and snap.angle is not None
        overlay = pygame.Surface((OUTER_RADIUS * 2, OUTER_RADIUS * 2), pygame.SRCALPHA)
        pygame.draw.circle(overlay, _TIER_FLASH[snap.flash_tier], (OUTER_RADIUS, OUTER_RADIUS), OUTER_RADIUS)
        surface.blit(overlay, overlay.get_rect(center=self._gauge_rect.center))
        self._draw_needle(surface, snap.angle)

    def _draw_event_log(self, surface: pygame.Surface, events: list[OutboundEvent]) -> None:
        w, _ = surface.get_size()
        x = (w * 2) // 3 - 20
        y = 100
        header = self._small_font.render("Reported events", True, (186, 200, 224))
        surface.blit(header, (x, y))
        y += 30
        for ev in events[-12:]:
            text = f"{ev.channel}: {ev.payload}"
            surface.blit(self._small_font.render(text, True, (235, 235, 245)), (x, y))
            y += 24


class App:
    def __init__(self, surface: pygame.Surface) -> None:
        self._surface = surface
        self._screens: list[Screen] = []
        self._running = True

    @property
    def running(self) -> bool:
        return self._running

    def push(self, screen: Screen) -> None:
        self._screens.append(screen)

    def quit(self) -> None:
        self._running = False

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.QUIT:
            self.quit()
            return
        if not self._screens:
            return
        self._screens[-1].handle_event(event)

    def render(self) -> None:
        if not self._screens:
            return
        self._screens[-1].render(self._surface)


def _seed_from_env() -> int | None:
    raw = os.environ.get(SEED_ENV, "").strip()
    if raw == "":
        return None
    try:
        return int(raw)
    except ValueError:
        log.warning("ignoring non-integer %s=%r", SEED_ENV, raw)
        return None


def _open_event_stream() -> tuple[TextIO, bool]:
    path = os.environ.get(EVENTS_PATH_ENV, "").strip()
    if path == "":
        return sys.stdout, False
    return Path(path).open("a", encoding="utf-8"), True


def run(*, max_frames: int | None = None, event_injector: Callable[[int], None] | None = None) -> int:
    pygame.init()

    pygame.display.set_caption("Needle Minigame")
    surface = pygame.display.set_mode(WINDOW_SIZE, pygame.RESIZABLE)
    clock = pygame.time.Clock()

    stream, owns_stream = _open_event_stream()
    recorded = RecordingSink()
    controller = NeedleController(
        clock=RealClock(),
        sink=_FanOutSink(recorded, JsonLinesSink(stream)),
        seed=_seed_from_env(),
    )

    app = App(surface)
    app.push(GaugeScreen(controller, recorded, on_quit=app.quit))

    frame = 0
    try:
        while app.running:
            if event_injector is not None:
                event_injector(frame)

            for event in pygame.event.get():
                app.handle_event(event)

            app.render()

            pygame.display.flip()

            frame += 1
            if max_frames is not None and frame >= max_frames:
                break

            clock.tick(TARGET_FPS)
    finally:
        pygame.quit()
        if owns_stream:
            stream.close()

    return 0
