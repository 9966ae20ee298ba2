#!/usr/bin/env python3
"""
Test script for tournament scouting reports.
"""
import pytest

from stacktracker.core import scouting
from stacktracker.core.metrics import BBZone
from stacktracker.core.scouting import StructureSpeed
from stacktracker.models import (
    BlindLevel,
    BuiltinGameType,
    CustomGameType,
    SessionKind,
    SessionRecord,
)


def structure():
    return [
        BlindLevel(level_number=1, small_blind=100, big_blind=200),
        BlindLevel(level_number=2, small_blind=200, big_blind=400, ante=50),
        BlindLevel(level_number=3, is_break=True),
        BlindLevel(level_number=4, small_blind=500, big_blind=1000),
        BlindLevel(level_number=5, small_blind=1000, big_blind=2000),
        BlindLevel(level_number=6, small_blind=2000, big_blind=4000, ante=500),
    ]


def tournament(**kwargs):
    kwargs.setdefault('blind_levels', structure())
    return SessionRecord(kind=SessionKind.TOURNAMENT, starting_chips=20000, **kwargs)


def test_full_report():
    """Test a report for a deep PLO bounty event with an overlay."""
    print("=== Testing Scouting Report ===")

    record = tournament(buy_in=100, bounty_amount=50, guarantee=10000, field_size=80,
                        game_type=BuiltinGameType.PLO)
    report = scouting.generate(record)

    assert report.structure_speed is StructureSpeed.DEEP
    assert report.starting_bbs == 100.0
    assert report.antes_introduced_level == 2
    assert [(c.level_number, c.blinds_display, c.bb_count, c.zone) for c in report.critical_levels] == [
        (3, "500/1k", 20.0, BBZone.YELLOW),
        (4, "1k/2k", 10.0, BBZone.ORANGE),
        (5, "2k/4k ante 500", 5.0, BBZone.RED),
    ]
    assert report.overlay_amount == 2000
    assert report.players_needed == 20
    assert report.has_bounty
    assert report.bounty_percent_of_buy_in == 50.0
    assert report.estimated_itm_players == 12
    assert len(report.game_type_notes) == 3

    assert report.approach_bullets[0].startswith("Deep structure")
    assert report.approach_bullets[1].startswith("Antes start at Level 2")
    assert report.approach_bullets[2].startswith("Large bounty (50% of buy-in)")
    assert report.approach_bullets[3] == "$2,000 overlay expected, a great value spot."


def test_classify_speed():
    assert scouting.classify_speed(100) is StructureSpeed.DEEP
    assert scouting.classify_speed(99.9) is StructureSpeed.STANDARD
    assert scouting.classify_speed(40) is StructureSpeed.STANDARD
    assert scouting.classify_speed(39) is StructureSpeed.TURBO


def test_one_level_can_enter_several_zones():
    record = tournament(blind_levels=[
        BlindLevel(level_number=1, small_blind=1000, big_blind=2000),
    ])
    report = scouting.generate(record)

    assert report.structure_speed is StructureSpeed.TURBO
    assert [c.zone for c in report.critical_levels] == [BBZone.YELLOW, BBZone.ORANGE]
    assert {c.level_number for c in report.critical_levels} == {1}
    assert report.antes_introduced_level is None
    assert report.estimated_itm_players == 0
    assert not report.has_bounty
    assert report.approach_bullets == [
        "Turbo structure: be aggressive early, you can't wait for premiums."
    ]


def test_empty_schedule_and_custom_game_type():
    record = tournament(blind_levels=[],
                        game_type=CustomGameType(raw_value="BIGO", label="Big O"))
    report = scouting.generate(record)

    assert report.starting_bbs == 100.0
    assert report.critical_levels == []
    assert report.game_type_notes == []


def test_small_bounty_bullet():
    report = scouting.generate(tournament(buy_in=200, bounty_amount=40))
    assert report.bounty_percent_of_buy_in == 20.0
    assert "Bounty in play" in report.approach_bullets[-1]


def test_cash_sessions_have_no_report():
    with pytest.raises(ValueError):
        scouting.generate(SessionRecord(kind=SessionKind.CASH))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
