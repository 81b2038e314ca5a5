from __future__ import annotations

import pytest

from needle_minigame.gauge import ZoneConfig, ZoneTier, classify, in_arc, normalize_deg, zone_arcs


def test_in_arc_boundaries_and_wrap() -> None:
    assert in_arc(10.0, 0.0, 45.0) is True
    assert in_arc(0.0, 0.0, 45.0) is True
    assert in_arc(45.0, 0.0, 45.0) is False

    # [350, 10) wraps through 0.
    assert in_arc(355.0, 350.0, 20.0) is True
    assert in_arc(5.0, 350.0, 20.0) is True
    assert in_arc(10.0, 350.0, 20.0) is False
    assert in_arc(349.0, 350.0, 20.0) is False

    assert in_arc(123.0, 50.0, 0.0) is False
    assert in_arc(123.0, 50.0, -5.0) is False
    assert in_arc(123.0, 50.0, 360.0) is True
    assert in_arc(123.0, 50.0, 400.0) is True


def test_normalize_deg() -> None:
    assert normalize_deg(0.0) == 0.0
    assert normalize_deg(360.0) == 0.0
    assert normalize_deg(-10.0) == pytest.approx(350.0)
    assert normalize_deg(725.5) == pytest.approx(5.5)
    assert 0.0 <= normalize_deg(-1e-20) < 360.0


def test_target_arc_wraps_past_360() -> None:
    zone = ZoneConfig(target_start=350.0, target_size=20.0, tolerance_size=0.0)

    assert classify(355.0, zone) is ZoneTier.TARGET
    assert classify(5.0, zone) is ZoneTier.TARGET
    assert classify(349.0, zone) is not ZoneTier.TARGET
    assert classify(349.0, zone) is ZoneTier.MISS


def test_classify_default_sized_zone_at_zero() -> None:
    zone = ZoneConfig(target_start=0.0, target_size=45.0, tolerance_size=30.0)

    assert classify(10.0, zone) is ZoneTier.TARGET
    assert classify(0.0, zone) is ZoneTier.TARGET
    assert classify(360.0, zone) is ZoneTier.TARGET

    assert classify(50.0, zone) is ZoneTier.TOLERANCE
    assert classify(45.0, zone) is ZoneTier.TOLERANCE
    assert classify(330.0, zone) is ZoneTier.TOLERANCE
    assert classify(359.5, zone) is ZoneTier.TOLERANCE
    assert classify(-10.0, zone) is ZoneTier.TOLERANCE

    assert classify(75.0, zone) is ZoneTier.MISS
    assert classify(200.0, zone) is ZoneTier.MISS
    assert classify(329.0, zone) is ZoneTier.MISS


def test_overlapping_arcs_prefer_target() -> None:
    # Target [0, 300), left tolerance [260, 360) overlaps it on [260, 300).
    zone = ZoneConfig(target_start=0.0, target_size=300.0, tolerance_size=100.0)

    assert classify(270.0, zone) is ZoneTier.TARGET
    assert classify(299.0, zone) is ZoneTier.TARGET
    assert classify(300.0, zone) is ZoneTier.TOLERANCE
    assert classify(359.0, zone) is ZoneTier.TOLERANCE


def test_classify_is_total_and_deterministic() -> None:
    zones = [
        ZoneConfig(target_start=0.0, target_size=45.0, tolerance_size=30.0),
        ZoneConfig(target_start=123.0, target_size=10.0, tolerance_size=5.0),
        ZoneConfig(target_start=350.0, target_size=20.0, tolerance_size=15.0),
        ZoneConfig(target_start=200.0, target_size=0.0, tolerance_size=0.0),
        ZoneConfig(target_start=10.0, target_size=360.0, tolerance_size=30.0),
        ZoneConfig(target_start=90.0, target_size=250.0, tolerance_size=80.0),
    ]
    for zone in zones:
        for step in range(720):
            angle = step * 0.5
            first = classify(angle, zone)
            assert first in (ZoneTier.TARGET, ZoneTier.TOLERANCE, ZoneTier.MISS)
            assert classify(angle, zone) is first


def test_empty_zone_is_all_miss_and_full_zone_all_target() -> None:
    empty = ZoneConfig(target_start=200.0, target_size=0.0, tolerance_size=0.0)
    full = ZoneConfig(target_start=10.0, target_size=360.0, tolerance_size=30.0)

    assert {classify(float(a), empty) for a in range(360)} == {ZoneTier.MISS}
    assert {classify(float(a), full) for a in range(360)} == {ZoneTier.TARGET}


def test_external_color_names() -> None:
    assert ZoneTier.TARGET.color_name == "green"
    assert ZoneTier.TOLERANCE.color_name == "yellow"
    assert ZoneTier.MISS.color_name == "red"


def test_zone_arcs_draw_order_and_geometry() -> None:
    zone = ZoneConfig(target_start=10.0, target_size=45.0, tolerance_size=30.0)
    left, right, target = zone_arcs(zone)

    assert (left.start_deg, left.size_deg, left.tier) == (340.0, 30.0, ZoneTier.TOLERANCE)
    assert (right.start_deg, right.size_deg, right.tier) == (55.0, 30.0, ZoneTier.TOLERANCE)
    assert (target.start_deg, target.size_deg, target.tier) == (10.0, 45.0, ZoneTier.TARGET)
