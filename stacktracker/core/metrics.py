"""
Stack and tournament metrics.

Pure functions only. Zero denominators resolve to 0 and unknown results
(profit before the session has a payout or cash-out) resolve to None,
since both are normal states while a session is still running.
"""
import math
from enum import Enum
from typing import TYPE_CHECKING, Optional
from pydantic import BaseModel

if TYPE_CHECKING:
    from ..models.session import SessionRecord


DEFAULT_SEATS = 9


class MZone(Enum):
    """Harrington M-ratio zones."""
    GREEN = "Green Zone"
    YELLOW = "Yellow Zone"
    ORANGE = "Orange Zone"
    RED = "Red Zone"

    @property
    def coaching_tip(self) -> str:
        return _COACHING_TIPS[self.name]


class BBZone(Enum):
    """Big-blind count zones. A separate scale from MZone."""
    GREEN = "Green Zone"
    YELLOW = "Yellow Zone"
    ORANGE = "Orange Zone"
    RED = "Red Zone"

    @property
    def coaching_tip(self) -> str:
        return _COACHING_TIPS[self.name]

    @property
    def severity(self) -> int:
        return list(BBZone).index(self)

    def is_worse_than(self, other: 'BBZone') -> bool:
        return self.severity > other.severity


_COACHING_TIPS = {
    "GREEN": "Comfortable stack. Play your A-game and look for spots to accumulate.",
    "YELLOW": "Getting shorter. Start widening your opening range and look for re-steal spots.",
    "ORANGE": "Push/fold territory approaching. Look to shove light from late position.",
    "RED": "Critical! Push or fold only. Any ace, pair, or two broadways is a shove.",
}


def bb_count(chip_count: int, big_blind: int) -> float:
    """Stack size in big blinds."""
    if big_blind <= 0:
        return 0.0
    return chip_count / big_blind


def orbit_cost(small_blind: int, big_blind: int, ante: int,
               seats: int = DEFAULT_SEATS) -> int:
    """Cost of one full orbit at a table with the given number of seats."""
    return small_blind + big_blind + seats * ante


def m_ratio(chip_count: int, small_blind: int, big_blind: int, ante: int,
            seats: int = DEFAULT_SEATS) -> float:
    """Stack divided by the cost of one orbit."""
    orbit = orbit_cost(small_blind, big_blind, ante, seats)
    if orbit <= 0:
        return 0.0
    return chip_count / orbit


def zone_from_m_ratio(m: float) -> MZone:
    if m >= 20:
        return MZone.GREEN
    if m >= 10:
        return MZone.YELLOW
    if m >= 5:
        return MZone.ORANGE
    return MZone.RED


def zone_from_bb(bb: float) -> BBZone:
    if bb >= 30:
        return BBZone.GREEN
    if bb >= 15:
        return BBZone.YELLOW
    if bb >= 8:
        return BBZone.ORANGE
    return BBZone.RED


# Tournament aggregates

def average_stack(field_size: int, players_remaining: int, starting_chips: int) -> int:
    if field_size <= 0 or players_remaining <= 0:
        return 0
    return (field_size * starting_chips) // players_remaining


def total_chips_in_play(field_size: int, starting_chips: int) -> int:
    return field_size * starting_chips


def prize_pool(buy_in: int, field_size: int) -> int:
    return buy_in * field_size


def house_rake(entry_fee: int, field_size: int) -> int:
    return entry_fee * field_size


def overlay(guarantee: int, buy_in: int, field_size: int) -> int:
    """Amount the house adds to reach the guarantee."""
    if guarantee <= 0:
        return 0
    return max(0, guarantee - prize_pool(buy_in, field_size))


def players_needed_for_guarantee(guarantee: int, buy_in: int, field_size: int) -> int:
    if guarantee <= 0 or buy_in <= 0:
        return 0
    return max(0, math.ceil(guarantee / buy_in) - field_size)


def estimated_bubble_distance(field_size: int, players_remaining: int,
                              payout_percent: float) -> int:
    """Players left before the money. Negative once past the bubble."""
    if field_size <= 0 or payout_percent <= 0:
        return 0
    in_the_money = math.ceil(field_size * payout_percent / 100.0)
    return players_remaining - in_the_money


# Results

def total_investment(buy_in: int, entry_fee: int, rebuys_used: int) -> int:
    return (buy_in + entry_fee) * (1 + rebuys_used)


def tournament_profit(payout: Optional[int], buy_in: int, entry_fee: int,
                      rebuys_used: int = 0, bounties_collected: int = 0,
                      bounty_amount: int = 0) -> Optional[int]:
    if payout is None:
        return None
    return (payout + bounties_collected * bounty_amount
            - total_investment(buy_in, entry_fee, rebuys_used))


def cash_profit(cash_out: Optional[int], buy_in_total: int) -> Optional[int]:
    if cash_out is None:
        return None
    return cash_out - buy_in_total


def hourly_rate(profit: Optional[int], duration_seconds: Optional[float]) -> Optional[float]:
    """Profit per hour, or None while either side is unknown."""
    if profit is None or duration_seconds is None or duration_seconds <= 0:
        return None
    return profit / (duration_seconds / 3600)


class TournamentStats(BaseModel):
    """Snapshot of a tournament's aggregate metrics."""
    average_stack: int = 0
    average_stack_in_bb: float = 0.0
    total_chips_in_play: int = 0
    prize_pool: int = 0
    house_rake: int = 0
    overlay: int = 0
    players_needed_for_guarantee: int = 0
    estimated_bubble_distance: int = 0
    m_ratio: float = 0.0
    bb_count: float = 0.0
    m_zone: MZone = MZone.RED
    bb_zone: BBZone = BBZone.RED


def tournament_stats(record: 'SessionRecord', seats: int = DEFAULT_SEATS) -> TournamentStats:
    """Collect the aggregate metrics for a tournament record."""
    avg = average_stack(record.field_size, record.players_remaining, record.starting_chips)
    blinds = record.current_blinds
    avg_in_bb = bb_count(avg, blinds.big_blind) if blinds and not blinds.is_break else 0.0

    latest = record.latest_stack
    stack_m = latest.m_ratio(seats) if latest else 0.0
    stack_bb = latest.bb_count if latest else 0.0

    return TournamentStats(
        average_stack=avg,
        average_stack_in_bb=avg_in_bb,
        total_chips_in_play=total_chips_in_play(record.field_size, record.starting_chips),
        prize_pool=prize_pool(record.buy_in, record.field_size),
        house_rake=house_rake(record.entry_fee, record.field_size),
        overlay=overlay(record.guarantee, record.buy_in, record.field_size),
        players_needed_for_guarantee=players_needed_for_guarantee(
            record.guarantee, record.buy_in, record.field_size),
        estimated_bubble_distance=estimated_bubble_distance(
            record.field_size, record.players_remaining, record.payout_percent),
        m_ratio=stack_m,
        bb_count=stack_bb,
        m_zone=zone_from_m_ratio(stack_m),
        bb_zone=zone_from_bb(stack_bb),
    )
