"""
Session models: tournaments, cash games and their child observations.
"""
import uuid
from datetime import datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, List, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..core import metrics
from .blinds import BlindLevel
from .game_type import BuiltinGameType, GameType

if TYPE_CHECKING:
    from ..core.blind_schedule import BlindSchedule


class SessionKind(str, Enum):
    """What kind of session a record tracks."""
    TOURNAMENT = "tournament"
    CASH = "cash"


class SessionStatus(str, Enum):
    """Session status states."""
    SETUP = "setup"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"

    @property
    def label(self) -> str:
        return self.value.title()


class StackSource(str, Enum):
    """Where a stack observation came from."""
    MANUAL = "manual"
    INITIAL = "initial"
    DERIVED_FROM_MESSAGE = "derived-from-message"


class StackEntry(BaseModel):
    """One chip (tournament) or dollar (cash) count at a point in time."""
    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=datetime.now)
    chip_count: int = Field(..., ge=0)
    blind_level_number: int = 0
    current_sb: int = Field(0, ge=0)
    current_bb: int = Field(0, ge=0)
    current_ante: int = Field(0, ge=0)
    source: StackSource = StackSource.MANUAL

    @property
    def bb_count(self) -> float:
        return metrics.bb_count(self.chip_count, self.current_bb)

    def m_ratio(self, seats: int = metrics.DEFAULT_SEATS) -> float:
        return metrics.m_ratio(self.chip_count, self.current_sb, self.current_bb,
                               self.current_ante, seats)

    def m_zone(self, seats: int = metrics.DEFAULT_SEATS) -> metrics.MZone:
        return metrics.zone_from_m_ratio(self.m_ratio(seats))

    @property
    def bb_zone(self) -> metrics.BBZone:
        return metrics.zone_from_bb(self.bb_count)


class HandNote(BaseModel):
    """A free-text note about a hand, with the stack context it was played at."""
    id: str = Field(default_factory=lambda: uuid.uuid4().hex, frozen=True)
    timestamp: datetime = Field(default_factory=datetime.now)
    description_text: str
    stack_before: Optional[int] = None
    stack_after: Optional[int] = None
    blind_level_number: int = 0
    blinds_display: str = ""


class BountyEvent(BaseModel):
    timestamp: datetime = Field(default_factory=datetime.now)
    amount: int = Field(0, ge=0)


class BreakEntry(BaseModel):
    """Where the player left their chips when a tournament break started."""
    id: str = Field(default_factory=lambda: uuid.uuid4().hex, frozen=True)
    timestamp: datetime = Field(default_factory=datetime.now)
    table_number: str = ""
    seat_number: str = ""
    chip_count: int = Field(0, ge=0)
    break_duration_seconds: int = Field(600, gt=0)
    blind_level_number: int = 0
    blinds_display: str = ""

    @property
    def ends_at(self) -> datetime:
        return self.timestamp + timedelta(seconds=self.break_duration_seconds)


class FieldSnapshot(BaseModel):
    timestamp: datetime = Field(default_factory=datetime.now)
    total_entries: int = Field(0, ge=0)
    players_remaining: int = Field(0, ge=0)
    avg_stack: Optional[int] = None


class SessionRecord(BaseModel):
    """One played session, either a tournament or a cash game.

    Money is kept in whole currency units. Tournament-only and cash-only
    fields share the record; the unused group simply keeps its defaults.
    """
    id: str = Field(default_factory=lambda: uuid.uuid4().hex, frozen=True)
    kind: SessionKind
    status: SessionStatus = SessionStatus.SETUP
    created_at: datetime = Field(default_factory=datetime.now)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    name: str = ""
    game_type: GameType = BuiltinGameType.NLH
    venue_name: Optional[str] = None
    notes: Optional[str] = None
    is_imported: bool = False

    # Tournament money
    buy_in: int = Field(0, ge=0)
    entry_fee: int = Field(0, ge=0)
    deductions: int = Field(0, ge=0)
    bounty_amount: int = Field(0, ge=0)
    guarantee: int = Field(0, ge=0)
    payout: Optional[int] = Field(None, ge=0)
    finish_position: Optional[int] = Field(None, ge=1)

    # Cash money
    stakes: str = ""
    buy_in_total: int = Field(0, ge=0)
    cash_out: Optional[int] = Field(None, ge=0)

    # Tournament progress
    starting_chips: int = Field(20000, gt=0)
    rebuys_used: int = Field(0, ge=0)
    bounties_collected: int = Field(0, ge=0)
    field_size: int = Field(0, ge=0)
    players_remaining: int = Field(0, ge=0)
    payout_percent: float = Field(15.0, ge=0.0, le=100.0)
    current_blind_level_number: int = 1

    # Owned children
    stack_entries: List[StackEntry] = Field(default_factory=list)
    hand_notes: List[HandNote] = Field(default_factory=list)
    blind_levels: List[BlindLevel] = Field(default_factory=list)
    bounty_events: List[BountyEvent] = Field(default_factory=list)
    field_snapshots: List[FieldSnapshot] = Field(default_factory=list)
    break_entries: List[BreakEntry] = Field(default_factory=list)

    @model_validator(mode='after')
    def validate_record(self) -> 'SessionRecord':
        """Check the field and blind schedule invariants."""
        if self.field_size > 0 and self.players_remaining > self.field_size:
            raise ValueError("players_remaining cannot exceed field_size")
        if self.kind == SessionKind.CASH and self.blind_levels:
            raise ValueError("Cash sessions do not have a blind schedule")
        if self.kind == SessionKind.CASH and self.break_entries:
            raise ValueError("Cash sessions do not have break entries")
        numbers = [level.level_number for level in self.blind_levels]
        if len(numbers) != len(set(numbers)):
            raise ValueError("Blind level numbers must be unique")
        return self

    @property
    def is_tournament(self) -> bool:
        return self.kind == SessionKind.TOURNAMENT

    @property
    def is_cash(self) -> bool:
        return self.kind == SessionKind.CASH

    @property
    def game_type_label(self) -> str:
        return self.game_type.label

    @property
    def display_name(self) -> str:
        if self.is_cash:
            return f"{self.stakes} {self.game_type_label}".strip()
        return self.name or self.game_type_label

    # Children

    @property
    def sorted_stack_entries(self) -> List[StackEntry]:
        # sorted() is stable, so equal timestamps keep insertion order
        return sorted(self.stack_entries, key=lambda entry: entry.timestamp)

    @property
    def sorted_hand_notes(self) -> List[HandNote]:
        return sorted(self.hand_notes, key=lambda note: note.timestamp)

    @property
    def latest_stack(self) -> Optional[StackEntry]:
        entries = self.sorted_stack_entries
        return entries[-1] if entries else None

    def append_stack_entry(self, entry: StackEntry) -> None:
        """Append an observation, keeping timestamps non-decreasing."""
        latest = self.latest_stack
        if latest is not None and entry.timestamp < latest.timestamp:
            raise ValueError(
                f"Stack entry at {entry.timestamp} is older than the latest entry at {latest.timestamp}"
            )
        self.stack_entries.append(entry)

    @property
    def schedule(self) -> 'BlindSchedule':
        """Blind schedule view over this record's levels."""
        from ..core.blind_schedule import BlindSchedule
        return BlindSchedule(self.blind_levels)

    @property
    def current_blinds(self) -> Optional[BlindLevel]:
        return self.schedule.current_level(self.current_blind_level_number)

    @property
    def current_display_level(self) -> Optional[int]:
        return self.schedule.display_number(self.current_blind_level_number)

    # Results

    @property
    def total_investment(self) -> int:
        if self.is_cash:
            return self.buy_in_total
        return metrics.total_investment(self.buy_in, self.entry_fee, self.rebuys_used)

    @property
    def profit(self) -> Optional[int]:
        """Net result, or None until the payout / cash-out is known."""
        if self.is_cash:
            return metrics.cash_profit(self.cash_out, self.buy_in_total)
        return metrics.tournament_profit(
            self.payout, self.buy_in, self.entry_fee,
            self.rebuys_used, self.bounties_collected, self.bounty_amount,
        )

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.start_time is None or self.end_time is None:
            return None
        return (self.end_time - self.start_time).total_seconds()

    @property
    def hourly_rate(self) -> Optional[float]:
        return metrics.hourly_rate(self.profit, self.duration_seconds)

    def get_duration_minutes(self, now: Optional[datetime] = None) -> int:
        """Elapsed minutes, counting to now while the session is running."""
        if self.start_time is None:
            return 0
        end = self.end_time or now or datetime.now()
        return int((end - self.start_time).total_seconds() / 60)

    def current_m_ratio(self, seats: int = metrics.DEFAULT_SEATS) -> float:
        latest = self.latest_stack
        return latest.m_ratio(seats) if latest else 0.0

    @property
    def current_bb_count(self) -> float:
        latest = self.latest_stack
        return latest.bb_count if latest else 0.0

    def session_filename(self) -> str:
        """File name used by the JSON session store."""
        date_str = self.created_at.strftime("%Y-%m-%d_%H-%M-%S")
        return f"{date_str}_{self.kind.value}_{self.id}.json"
