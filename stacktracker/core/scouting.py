"""
Pre-tournament scouting report.

Reads a tournament's blind structure before play starts: how deep the
starting stack is, when antes arrive, at which level a starting stack
that never grows drops into each big-blind zone, and what the field and
guarantee imply.
"""
import math
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from ..models.blinds import BlindLevel
from ..models.game_type import BuiltinGameType, GameType
from ..models.session import SessionRecord
from . import metrics

# Used when the schedule has no playable level yet
FALLBACK_BIG_BLIND = 200


class StructureSpeed(str, Enum):
    """How fast a blind structure plays, judged by starting big blinds."""
    TURBO = "Turbo"
    STANDARD = "Standard"
    DEEP = "Deep Stack"


class CriticalLevel(BaseModel):
    """First level at which the starting stack falls into a zone."""
    level_number: int
    blinds_display: str
    bb_count: float
    zone: metrics.BBZone


class ScoutingReport(BaseModel):
    structure_speed: StructureSpeed
    starting_bbs: float
    antes_introduced_level: Optional[int] = None
    critical_levels: List[CriticalLevel] = Field(default_factory=list)
    overlay_amount: int = 0
    players_needed: int = 0
    has_bounty: bool = False
    bounty_percent_of_buy_in: Optional[float] = None
    estimated_itm_players: int = 0
    game_type_notes: List[str] = Field(default_factory=list)
    approach_bullets: List[str] = Field(default_factory=list)


_GAME_TYPE_NOTES = {
    BuiltinGameType.NLH: [
        "Position is paramount, play tighter from early position",
        "3-bet bluff more as antes kick in to exploit dead money",
        "Identify short stacks at your table for re-steal targets",
    ],
    BuiltinGameType.PLO: [
        "Play position-dependent and avoid bloated multiway pots out of position",
        "Nut advantage matters more than in NLH, so draw to the nuts",
        "Bounty hunting is harder in PLO, focus on premium rundowns",
    ],
    BuiltinGameType.MIXED: [
        "Adjust aggression by game and be tighter in stud rounds",
        "Pay attention to antes in stud games, they add up fast",
        "Look for weak players in less common games",
    ],
}


def classify_speed(starting_bbs: float) -> StructureSpeed:
    if starting_bbs >= 100:
        return StructureSpeed.DEEP
    if starting_bbs >= 40:
        return StructureSpeed.STANDARD
    return StructureSpeed.TURBO


def find_antes_level(levels: List[BlindLevel],
                     display_map: Optional[Dict[int, int]] = None) -> Optional[int]:
    """Display number of the first playable level with an ante."""
    display_map = display_map or {}
    for level in levels:
        if not level.is_break and level.ante > 0:
            return display_map.get(level.level_number, level.level_number)
    return None


def find_critical_levels(levels: List[BlindLevel], starting_chips: int,
                         display_map: Optional[Dict[int, int]] = None) -> List[CriticalLevel]:
    """First level entering the yellow, orange and red big-blind zones.

    The starting stack is held constant, so this shows how long an
    untouched stack lasts. One level can enter several zones at once.
    """
    display_map = display_map or {}
    criticals: List[CriticalLevel] = []
    found = set()
    thresholds = [
        (metrics.BBZone.YELLOW, 30),
        (metrics.BBZone.ORANGE, 15),
        (metrics.BBZone.RED, 8),
    ]

    for level in levels:
        if level.is_break or level.big_blind <= 0:
            continue
        bb = metrics.bb_count(starting_chips, level.big_blind)
        for zone, limit in thresholds:
            if zone not in found and bb < limit:
                found.add(zone)
                criticals.append(CriticalLevel(
                    level_number=display_map.get(level.level_number, level.level_number),
                    blinds_display=level.blinds_display,
                    bb_count=bb,
                    zone=zone,
                ))
        if len(found) == len(thresholds):
            break

    return criticals


def game_type_notes(game_type: GameType) -> List[str]:
    """Strategy notes for a built-in variant; custom types have none."""
    if isinstance(game_type, BuiltinGameType):
        return list(_GAME_TYPE_NOTES[game_type])
    return []


def approach_bullets(speed: StructureSpeed, antes_level: Optional[int],
                     bounty_percent: Optional[float], overlay_amount: int) -> List[str]:
    bullets = {
        StructureSpeed.DEEP: ["Deep structure: play patient through early levels and accumulate."],
        StructureSpeed.STANDARD: ["Standard structure: balance patience with controlled aggression."],
        StructureSpeed.TURBO: ["Turbo structure: be aggressive early, you can't wait for premiums."],
    }[speed]

    if antes_level is not None:
        bullets.append(f"Antes start at Level {antes_level}. Widen your range and attack limpers.")

    if bounty_percent is not None:
        if bounty_percent >= 50:
            bullets.append(f"Large bounty ({int(bounty_percent)}% of buy-in). "
                           "Call wider against short stacks.")
        else:
            bullets.append("Bounty in play. Factor bounty equity into marginal all-in decisions.")

    if overlay_amount > 0:
        bullets.append(f"${overlay_amount:,} overlay expected, a great value spot.")

    return bullets


def generate(record: SessionRecord) -> ScoutingReport:
    """Build the scouting report for a tournament."""
    if not record.is_tournament:
        raise ValueError("Scouting reports are only available for tournaments")

    schedule = record.schedule
    display_map = schedule.display_level_numbers()
    levels = [level for level in schedule.sorted_levels() if not level.is_break]

    starting_bb = levels[0].big_blind if levels else FALLBACK_BIG_BLIND
    starting_bbs = metrics.bb_count(record.starting_chips, starting_bb)
    speed = classify_speed(starting_bbs)
    antes_level = find_antes_level(levels, display_map)

    overlay_amount = metrics.overlay(record.guarantee, record.buy_in, record.field_size)
    has_bounty = record.bounty_amount > 0
    bounty_percent = None
    if has_bounty and record.buy_in > 0:
        bounty_percent = record.bounty_amount / record.buy_in * 100

    itm_players = 0
    if record.field_size > 0:
        itm_players = math.ceil(record.field_size * record.payout_percent / 100.0)

    return ScoutingReport(
        structure_speed=speed,
        starting_bbs=starting_bbs,
        antes_introduced_level=antes_level,
        critical_levels=find_critical_levels(levels, record.starting_chips, display_map),
        overlay_amount=overlay_amount,
        players_needed=metrics.players_needed_for_guarantee(
            record.guarantee, record.buy_in, record.field_size),
        has_bounty=has_bounty,
        bounty_percent_of_buy_in=bounty_percent,
        estimated_itm_players=itm_players,
        game_type_notes=game_type_notes(record.game_type),
        approach_bullets=approach_bullets(speed, antes_level, bounty_percent, overlay_amount),
    )
