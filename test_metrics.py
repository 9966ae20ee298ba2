#!/usr/bin/env python3
"""
Test script for stack and tournament metrics.
"""
import pytest

from stacktracker.core import metrics
from stacktracker.core.metrics import BBZone, MZone
from stacktracker.models import BlindLevel, SessionKind, SessionRecord, StackEntry


def test_bb_count():
    """Test big blind counts, including a zero big blind."""
    print("=== Testing BB Count ===")

    assert metrics.bb_count(30000, 1000) == 30.0
    assert metrics.bb_count(1500, 400) == pytest.approx(3.75)
    assert metrics.bb_count(1500, 0) == 0
    assert metrics.bb_count(0, 200) == 0


def test_m_ratio_and_orbit_cost():
    print("=== Testing M-Ratio ===")

    assert metrics.orbit_cost(100, 200, 25) == 100 + 200 + 9 * 25
    assert metrics.orbit_cost(100, 200, 25, seats=6) == 450
    assert metrics.m_ratio(10500, 100, 200, 25) == pytest.approx(20.0)
    assert metrics.m_ratio(5000, 0, 0, 0) == 0.0


@pytest.mark.parametrize("m, zone", [
    (20, MZone.GREEN),
    (19.999, MZone.YELLOW),
    (10, MZone.YELLOW),
    (9.999, MZone.ORANGE),
    (5, MZone.ORANGE),
    (4.999, MZone.RED),
    (0, MZone.RED),
])
def test_m_zone_boundaries(m, zone):
    assert metrics.zone_from_m_ratio(m) is zone


@pytest.mark.parametrize("bb, zone", [
    (30, BBZone.GREEN),
    (29.9, BBZone.YELLOW),
    (15, BBZone.YELLOW),
    (14.9, BBZone.ORANGE),
    (8, BBZone.ORANGE),
    (7.9, BBZone.RED),
])
def test_bb_zone_boundaries(bb, zone):
    assert metrics.zone_from_bb(bb) is zone


def test_zone_scales_are_distinct():
    """M zones and BB zones share labels but are different scales."""
    assert MZone.GREEN != BBZone.GREEN
    assert MZone.GREEN.value == BBZone.GREEN.value
    assert BBZone.RED.is_worse_than(BBZone.ORANGE)
    assert not BBZone.GREEN.is_worse_than(BBZone.YELLOW)
    assert "Push or fold" in BBZone.RED.coaching_tip


def test_field_metrics():
    print("=== Testing Field Metrics ===")

    assert metrics.average_stack(100, 40, 20000) == 50000
    assert metrics.average_stack(100, 0, 20000) == 0
    assert metrics.average_stack(0, 10, 20000) == 0
    assert metrics.total_chips_in_play(100, 20000) == 2_000_000
    assert metrics.prize_pool(100, 50) == 5000
    assert metrics.house_rake(20, 50) == 1000


def test_guarantee_metrics():
    assert metrics.overlay(10000, 100, 80) == 2000
    assert metrics.overlay(10000, 100, 120) == 0
    assert metrics.overlay(0, 100, 10) == 0
    assert metrics.players_needed_for_guarantee(10000, 100, 80) == 20
    assert metrics.players_needed_for_guarantee(10000, 100, 150) == 0
    assert metrics.players_needed_for_guarantee(10000, 0, 10) == 0


def test_estimated_bubble_distance():
    """Past the bubble the distance goes negative instead of clamping."""
    assert metrics.estimated_bubble_distance(100, 10, 15) == -5
    assert metrics.estimated_bubble_distance(100, 30, 15) == 15
    assert metrics.estimated_bubble_distance(101, 20, 15) == 20 - 16
    assert metrics.estimated_bubble_distance(0, 10, 15) == 0
    assert metrics.estimated_bubble_distance(100, 10, 0) == 0


def test_profit_and_hourly_rate():
    print("=== Testing Profit ===")

    assert metrics.total_investment(100, 20, 2) == 360
    assert metrics.tournament_profit(None, 100, 20) is None
    assert metrics.tournament_profit(500, 100, 20, rebuys_used=1,
                                     bounties_collected=2, bounty_amount=25) == 500 + 50 - 240
    assert metrics.cash_profit(None, 200) is None
    assert metrics.cash_profit(150, 200) == -50

    assert metrics.hourly_rate(100, 7200) == pytest.approx(50.0)
    assert metrics.hourly_rate(None, 7200) is None
    assert metrics.hourly_rate(100, None) is None
    assert metrics.hourly_rate(100, 0) is None


def test_tournament_stats():
    record = SessionRecord(
        kind=SessionKind.TOURNAMENT,
        buy_in=100,
        entry_fee=10,
        guarantee=20000,
        starting_chips=10000,
        field_size=150,
        players_remaining=50,
        blind_levels=[BlindLevel(level_number=1, small_blind=500, big_blind=1000, ante=100)],
    )
    record.append_stack_entry(StackEntry(chip_count=48000, current_sb=500,
                                         current_bb=1000, current_ante=100))

    stats = metrics.tournament_stats(record)
    assert stats.average_stack == 30000
    assert stats.average_stack_in_bb == 30.0
    assert stats.prize_pool == 15000
    assert stats.overlay == 5000
    assert stats.players_needed_for_guarantee == 50
    assert stats.estimated_bubble_distance == 50 - 23
    assert stats.bb_count == 48.0
    assert stats.m_ratio == pytest.approx(20.0)
    assert stats.m_zone is MZone.GREEN
    assert stats.bb_zone is BBZone.GREEN


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
