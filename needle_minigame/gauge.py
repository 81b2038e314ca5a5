from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class ZoneTier(StrEnum):
    TARGET = "target"
    TOLERANCE = "tolerance"
    MISS = "miss"

    @property
    def color_name(self) -> str:
        """External result vocabulary reported to the host."""

        return _COLOR_NAMES[self]


_COLOR_NAMES = {
    ZoneTier.TARGET: "green",
    ZoneTier.TOLERANCE: "yellow",
    ZoneTier.MISS: "red",
}


@dataclass(frozen=True, slots=True)
class ZoneConfig:
    target_start: float
    target_size: float
    tolerance_size: float

    @property
    def left_tolerance_start(self) -> float:
        return normalize_deg(self.target_start - self.tolerance_size)

    @property
    def right_tolerance_start(self) -> float:
        return normalize_deg(self.target_start + self.target_size)


@dataclass(frozen=True, slots=True)
class ZoneArc:
    start_deg: float
    size_deg: float
    tier: ZoneTier


def normalize_deg(angle: float) -> float:
    a = float(angle) % 360.0
    # -1e-18 % 360.0 == 360.0 in floating point.
    return 0.0 if a >= 360.0 else a


def in_arc(angle: float, start: float, size: float) -> bool:
    """Return True if ``angle`` lies in the half-open arc [start, start+size).

    Both ``angle`` and ``start`` are expected in [0, 360). Arcs that pass 360
    wrap around to 0.
    """

    if size <= 0.0:
        return False
    if size >= 360.0:
        return True

    end = (start + size) % 360.0
    if start < end:
        return start <= angle < end
    return angle >= start or angle < end


def classify(angle: float, zone: ZoneConfig) -> ZoneTier:
    """Grade a needle angle against the zone geometry.

    The target arc is checked first, then the left and right tolerance arcs,
    so overlapping arcs resolve to the better tier.
    """

    a = normalize_deg(angle)

    if in_arc(a, normalize_deg(zone.target_start), zone.target_size):
        return ZoneTier.TARGET
    if in_arc(a, zone.left_tolerance_start, zone.tolerance_size):
        return ZoneTier.TOLERANCE
    if in_arc(a, zone.right_tolerance_start, zone.tolerance_size):
        return ZoneTier.TOLERANCE
    return ZoneTier.MISS


def zone_arcs(zone: ZoneConfig) -> tuple[ZoneArc, ...]:
    """Scored arcs in draw order; the target goes last so it paints on top."""

    return (
        ZoneArc(start_deg=zone.left_tolerance_start, size_deg=zone.tolerance_size, tier=ZoneTier.TOLERANCE),
        ZoneArc(start_deg=zone.right_tolerance_start, size_deg=zone.tolerance_size, tier=ZoneTier.TOLERANCE),
        ZoneArc(start_deg=normalize_deg(zone.target_start), size_deg=zone.target_size, tier=ZoneTier.TARGET),
    )
