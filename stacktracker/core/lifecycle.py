"""
Session lifecycle management.

The manager owns the state machine of the session currently being played
(setup -> active <-> paused -> completed) and records observations against
it. Every operation mutates the in-memory record first and then asks the
store to save; a failing save propagates to the caller and the mutation
stays applied.
"""
import functools
import logging
import threading
from datetime import datetime
from typing import Callable, List, Optional

from pydantic import ValidationError

from ..config.settings import TrackerSettings
from ..models.blinds import BlindLevel
from ..models.game_type import GameType
from ..models.session import (
    BountyEvent,
    BreakEntry,
    FieldSnapshot,
    HandNote,
    SessionKind,
    SessionRecord,
    SessionStatus,
    StackEntry,
    StackSource,
)
from . import metrics
from .exceptions import InvalidOperation, InvalidStateTransition, NoActiveSession
from .persistence import PersistencePort

logger = logging.getLogger(__name__)

_IN_PROGRESS = (SessionStatus.ACTIVE, SessionStatus.PAUSED)


def _serialized(method):
    """Run the method while holding the manager's lock."""
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)
    return wrapper


class SessionLifecycleManager:
    """Drives the session being played and persists every change."""

    def __init__(self, store: PersistencePort,
                 settings: Optional[TrackerSettings] = None,
                 clock: Callable[[], datetime] = datetime.now):
        self.store = store
        self.settings = settings or TrackerSettings()
        self._clock = clock
        self._current: Optional[SessionRecord] = None
        self._pending_recap: Optional[SessionRecord] = None
        self._break_end: Optional[datetime] = None
        self._lock = threading.RLock()

    @property
    def current_session(self) -> Optional[SessionRecord]:
        """The session being played, if any."""
        return self._current

    @property
    def current_active_id(self) -> Optional[str]:
        return self._current.id if self._current else None

    def has_active_session(self) -> bool:
        return self._current is not None

    @property
    def pending_recap(self) -> Optional[SessionRecord]:
        """The last completed session, until take_recap() is called."""
        return self._pending_recap

    @_serialized
    def take_recap(self) -> Optional[SessionRecord]:
        """Return the last completed session once and forget it."""
        recap, self._pending_recap = self._pending_recap, None
        return recap

    # Setup

    @_serialized
    def new_tournament(self, name: str = "", buy_in: int = 0, entry_fee: int = 0,
                       bounty_amount: int = 0, guarantee: int = 0,
                       starting_chips: Optional[int] = None,
                       payout_percent: Optional[float] = None,
                       game_type: Optional[GameType] = None,
                       blind_levels: Optional[List[BlindLevel]] = None,
                       venue_name: Optional[str] = None) -> SessionRecord:
        """Create a tournament in setup state, filling gaps from settings."""
        record = SessionRecord(
            kind=SessionKind.TOURNAMENT,
            created_at=self._clock(),
            name=name,
            buy_in=buy_in,
            entry_fee=entry_fee,
            bounty_amount=bounty_amount,
            guarantee=guarantee,
            starting_chips=starting_chips or self.settings.default_starting_chips,
            payout_percent=(payout_percent if payout_percent is not None
                            else self.settings.default_payout_percent),
            game_type=game_type or self.settings.resolve_default_game_type(),
            blind_levels=list(blind_levels or []),
            venue_name=venue_name,
        )
        self._snap_blind_pointer(record)
        self.store.insert(record)
        self.store.save()
        return record

    @_serialized
    def new_cash_session(self, stakes: Optional[str] = None, buy_in_total: int = 0,
                         game_type: Optional[GameType] = None,
                         venue_name: Optional[str] = None) -> SessionRecord:
        """Create a cash session in setup state, filling gaps from settings."""
        record = SessionRecord(
            kind=SessionKind.CASH,
            created_at=self._clock(),
            stakes=stakes if stakes is not None else self.settings.default_stakes,
            buy_in_total=buy_in_total,
            game_type=game_type or self.settings.resolve_default_game_type(),
            venue_name=venue_name,
        )
        self.store.insert(record)
        self.store.save()
        return record

    # State machine

    @_serialized
    def start(self, record: SessionRecord) -> SessionRecord:
        """Start a session in setup state and make it the current session."""
        if record.status != SessionStatus.SETUP:
            raise InvalidStateTransition("start", record.status, record.id)

        if self._current is not None and self._current.id != record.id:
            logger.info("Detaching session %s to start %s", self._current.id, record.id)
        self._current = None
        self._break_end = None

        now = self._clock()
        record.status = SessionStatus.ACTIVE
        record.start_time = now

        if record.is_tournament:
            self._snap_blind_pointer(record)
            initial = self._stack_entry(record, record.starting_chips, StackSource.INITIAL, now)
        else:
            initial = StackEntry(timestamp=now, chip_count=record.buy_in_total,
                                 source=StackSource.INITIAL)
        record.append_stack_entry(initial)
        self._current = record

        logger.info("Started %s session %s", record.kind.value, record.id)
        self.store.insert(record)
        self.store.save()
        return record

    @_serialized
    def attach(self, record: SessionRecord) -> SessionRecord:
        """Make an already running session current again, e.g. after a restart."""
        if record.status not in _IN_PROGRESS:
            raise InvalidStateTransition("attach", record.status, record.id)
        if self._current is not record:
            self._break_end = None
        self._current = record
        logger.info("Attached %s session %s", record.status.value, record.id)
        return record

    @_serialized
    def pause(self) -> SessionRecord:
        record = self._require_current("pause")
        self._require_status(record, "pause", SessionStatus.ACTIVE)
        record.status = SessionStatus.PAUSED
        logger.info("Paused session %s", record.id)
        self.store.save()
        return record

    @_serialized
    def resume(self) -> SessionRecord:
        record = self._require_current("resume")
        self._require_status(record, "resume", SessionStatus.PAUSED)
        record.status = SessionStatus.ACTIVE
        logger.info("Resumed session %s", record.id)
        self.store.save()
        return record

    @_serialized
    def complete(self, final_amount: int, finish_position: Optional[int] = None) -> SessionRecord:
        """Finish the current session with its payout (tournament) or cash-out.

        The session stops being current and becomes the pending recap.
        """
        record = self._require_current("complete")
        self._require_status(record, "complete", *_IN_PROGRESS)
        if final_amount < 0:
            raise InvalidOperation(f"Final amount cannot be negative: {final_amount}")
        if finish_position is not None and finish_position < 1:
            raise InvalidOperation(f"Finish position must be at least 1: {finish_position}")

        record.status = SessionStatus.COMPLETED
        record.end_time = self._clock()
        if record.is_tournament:
            record.payout = final_amount
            record.finish_position = finish_position
        else:
            record.cash_out = final_amount

        self._current = None
        self._break_end = None
        self._pending_recap = record
        logger.info("Completed session %s with profit %s", record.id, record.profit)
        self.store.save()
        return record

    @_serialized
    def delete(self, record: SessionRecord) -> None:
        """Remove a session and everything it owns from the store."""
        if self._current is not None and self._current.id == record.id:
            self._current = None
            self._break_end = None
        if self._pending_recap is not None and self._pending_recap.id == record.id:
            self._pending_recap = None
        self.store.delete(record)
        self.store.save()

    # Observations

    @_serialized
    def record_observation(self, amount: int,
                           source: StackSource = StackSource.MANUAL) -> StackEntry:
        """Append a chip count (tournament) or dollar amount (cash)."""
        record = self._require_current("record a stack")
        self._require_status(record, "record a stack for", *_IN_PROGRESS)
        if amount < 0:
            raise InvalidOperation(f"Stack cannot be negative: {amount}")
        if source == StackSource.INITIAL:
            raise InvalidOperation("Initial stack entries are only created when a session starts")

        entry = self._stack_entry(record, amount, source, self._timestamp_for(record))
        record.append_stack_entry(entry)
        self.store.save()
        return entry

    @_serialized
    def add_on(self, amount: int) -> SessionRecord:
        """Add money to a cash session's buy-in total."""
        record = self._require_current("add on")
        self._require_status(record, "add on to", *_IN_PROGRESS)
        self._require_kind(record, SessionKind.CASH, "add on")
        if amount <= 0:
            raise InvalidOperation(f"Add-on amount must be positive: {amount}")

        record.buy_in_total += amount
        self.store.save()
        return record

    @_serialized
    def record_hand_note(self, text: str, stack_before: Optional[int] = None) -> HandNote:
        record = self._require_current("record a hand note")
        self._require_status(record, "record a hand note for", *_IN_PROGRESS)
        text = text.strip()
        if not text:
            raise InvalidOperation("Hand note text cannot be empty")

        if stack_before is None and record.latest_stack is not None:
            stack_before = record.latest_stack.chip_count

        if record.is_tournament:
            blinds = record.current_blinds
            level_number = record.current_blind_level_number
            blinds_display = blinds.blinds_display if blinds else ""
        else:
            level_number = 0
            blinds_display = record.stakes

        note = HandNote(
            timestamp=self._clock(),
            description_text=text,
            stack_before=stack_before,
            blind_level_number=level_number,
            blinds_display=blinds_display,
        )
        record.hand_notes.append(note)
        self.store.save()
        return note

    # Tournament progress

    @_serialized
    def advance_blind_level(self) -> Optional[BlindLevel]:
        """Move to the next level in the schedule.

        Returns the new level, or None when the current level is the last
        one (or no schedule exists); the pointer is left unchanged then.
        """
        record = self._require_tournament("advance the blind level")
        next_level = record.schedule.next_level(record.current_blind_level_number)
        if next_level is None:
            logger.info("No further blind levels after %s", record.current_blind_level_number)
            return None

        record.current_blind_level_number = next_level.level_number
        self.store.save()
        return next_level

    @_serialized
    def set_current_level(self, level_number: int, is_display_level: bool = False) -> BlindLevel:
        """Jump to a level, skipping forward over breaks."""
        record = self._require_tournament("set the blind level")
        schedule = record.schedule
        if is_display_level:
            level_number = schedule.internal_level_numbers().get(level_number, level_number)

        resolved = schedule.skip_breaks(level_number)
        level = schedule.current_level(resolved)
        if level is None:
            raise InvalidOperation(f"Blind level {level_number} is not in the schedule")

        record.current_blind_level_number = resolved
        self.store.save()
        return level

    @_serialized
    def update_blinds(self, level_number: Optional[int] = None,
                      small_blind: Optional[int] = None, big_blind: Optional[int] = None,
                      ante: Optional[int] = None,
                      is_display_level: bool = False) -> Optional[BlindLevel]:
        """Apply reported blinds to the schedule and move the level pointer.

        With a level number the matching level becomes current (overriding
        its blinds with any values given), or is created when blinds are
        given for an unknown level. With blinds only, the first level
        matching them becomes current, or a new level is appended.
        """
        record = self._require_tournament("update blinds")
        self._check_blinds(small_blind, big_blind, ante)
        schedule = record.schedule

        if level_number is not None:
            if is_display_level:
                level_number = schedule.internal_level_numbers().get(level_number, level_number)
            resolved = schedule.skip_breaks(level_number)
            existing = schedule.current_level(resolved)

            if existing is not None:
                self._override_level(record, existing, small_blind, big_blind, ante)
                record.current_blind_level_number = resolved
            elif small_blind is not None and big_blind is not None:
                schedule.add(BlindLevel(level_number=level_number, small_blind=small_blind,
                                        big_blind=big_blind, ante=ante or 0))
                record.current_blind_level_number = level_number
            elif not schedule:
                record.current_blind_level_number = level_number
            else:
                logger.info("Ignoring unknown blind level %s without blinds", level_number)

        elif small_blind is not None and big_blind is not None:
            matching = schedule.find_by_blinds(small_blind, big_blind)
            if matching is not None:
                record.current_blind_level_number = matching.level_number
                if ante is not None:
                    self._override_level(record, matching, None, None, ante)
            else:
                next_number = schedule.next_level_number()
                schedule.add(BlindLevel(level_number=next_number, small_blind=small_blind,
                                        big_blind=big_blind, ante=ante or 0))
                record.current_blind_level_number = next_number

        self.store.save()
        return record.current_blinds

    @_serialized
    def add_blind_level(self, small_blind: int = 0, big_blind: int = 0, ante: int = 0,
                        duration_minutes: int = 30, is_break: bool = False,
                        break_label: Optional[str] = None) -> BlindLevel:
        """Append a level (or break) to the end of the schedule."""
        record = self._require_tournament("add a blind level")
        schedule = record.schedule
        level = BlindLevel(
            level_number=schedule.next_level_number(),
            small_blind=small_blind,
            big_blind=big_blind,
            ante=ante,
            duration_minutes=duration_minutes,
            is_break=is_break,
            break_label=break_label,
        )
        schedule.add(level)
        self._snap_blind_pointer(record)
        self.store.save()
        return level

    @_serialized
    def remove_blind_level(self, level_number: int) -> Optional[BlindLevel]:
        """Remove a level, keeping the pointer on a level that still exists."""
        record = self._require_tournament("remove a blind level")
        schedule = record.schedule
        following = schedule.next_level(level_number)
        removed = schedule.remove(level_number)
        if removed is None:
            return None

        if record.current_blind_level_number == level_number and schedule:
            if following is not None:
                record.current_blind_level_number = following.level_number
            else:
                record.current_blind_level_number = schedule.sorted_levels()[-1].level_number

        self.store.save()
        return removed

    @_serialized
    def update_field(self, total_entries: Optional[int] = None,
                     players_remaining: Optional[int] = None) -> FieldSnapshot:
        record = self._require_tournament("update the field")
        field_size = total_entries if total_entries is not None else record.field_size
        remaining = players_remaining if players_remaining is not None else record.players_remaining
        if field_size < 0 or remaining < 0:
            raise InvalidOperation("Field counts cannot be negative")
        if field_size > 0 and remaining > field_size:
            raise InvalidOperation(
                f"Players remaining ({remaining}) cannot exceed the field size ({field_size})"
            )

        record.field_size = field_size
        record.players_remaining = remaining
        avg = metrics.average_stack(field_size, remaining, record.starting_chips)
        snapshot = FieldSnapshot(
            timestamp=self._clock(),
            total_entries=field_size,
            players_remaining=remaining,
            avg_stack=avg if avg > 0 else None,
        )
        record.field_snapshots.append(snapshot)
        self.store.save()
        return snapshot

    @_serialized
    def record_bounty(self) -> BountyEvent:
        record = self._require_tournament("record a bounty")
        record.bounties_collected += 1
        event = BountyEvent(timestamp=self._clock(), amount=record.bounty_amount)
        record.bounty_events.append(event)
        self.store.save()
        return event

    @_serialized
    def record_rebuy(self) -> StackEntry:
        """Count a rebuy and reset the stack to the starting chips."""
        record = self._require_tournament("record a rebuy")
        record.rebuys_used += 1
        entry = self._stack_entry(record, record.starting_chips, StackSource.MANUAL,
                                  self._timestamp_for(record))
        record.append_stack_entry(entry)
        self.store.save()
        return entry

    # Breaks

    @property
    def is_on_break(self) -> bool:
        return self._break_end is not None

    @property
    def break_end_time(self) -> Optional[datetime]:
        return self._break_end

    def break_seconds_remaining(self) -> int:
        """Whole seconds until the break ends, 0 when not on a break."""
        if self._break_end is None:
            return 0
        return max(0, int((self._break_end - self._clock()).total_seconds()))

    @_serialized
    def start_break(self, table_number: str, seat_number: str, chip_count: int,
                    duration_seconds: int = 600) -> BreakEntry:
        """Note where the chips were bagged and start the break countdown."""
        record = self._require_tournament("start a break")
        if self._break_end is not None:
            raise InvalidOperation("A break is already running")
        if chip_count < 0:
            raise InvalidOperation(f"Chip count cannot be negative: {chip_count}")
        if duration_seconds <= 0:
            raise InvalidOperation(f"Break duration must be positive: {duration_seconds}")

        blinds = record.current_blinds
        entry = BreakEntry(
            timestamp=self._clock(),
            table_number=table_number.strip(),
            seat_number=seat_number.strip(),
            chip_count=chip_count,
            break_duration_seconds=duration_seconds,
            blind_level_number=record.current_blind_level_number,
            blinds_display=blinds.blinds_display if blinds else "",
        )
        record.break_entries.append(entry)
        self._break_end = entry.ends_at
        logger.info("Break started for session %s, table %s seat %s",
                    record.id, entry.table_number, entry.seat_number)
        self.store.save()
        return entry

    @_serialized
    def end_break(self) -> SessionRecord:
        record = self._require_tournament("end a break")
        if self._break_end is None:
            raise InvalidOperation("No break is running")
        self._break_end = None
        logger.info("Break ended for session %s", record.id)
        self.store.save()
        return record

    @_serialized
    def delete_break_entry(self, entry_id: str) -> Optional[BreakEntry]:
        """Remove a break entry from the current tournament by id."""
        record = self._require_tournament("delete a break entry")
        for entry in record.break_entries:
            if entry.id == entry_id:
                record.break_entries.remove(entry)
                self.store.save()
                return entry
        return None

    def stats(self) -> metrics.TournamentStats:
        """Aggregate metrics for the current tournament."""
        record = self._require_tournament("compute tournament stats")
        return metrics.tournament_stats(record, self.settings.seats_per_table)

    def current_m_zone(self) -> Optional[metrics.MZone]:
        """M-zone of the latest observation, or None without a tournament."""
        record = self._current
        if record is None or not record.is_tournament or record.latest_stack is None:
            return None
        return record.latest_stack.m_zone(self.settings.seats_per_table)

    # Helpers

    def _require_current(self, operation: str) -> SessionRecord:
        if self._current is None:
            raise NoActiveSession(operation)
        return self._current

    @staticmethod
    def _require_status(record: SessionRecord, operation: str, *allowed: SessionStatus) -> None:
        if record.status not in allowed:
            raise InvalidStateTransition(operation, record.status, record.id)

    @staticmethod
    def _require_kind(record: SessionRecord, kind: SessionKind, operation: str) -> None:
        if record.kind != kind:
            raise InvalidOperation(f"Cannot {operation} in a {record.kind.value} session")

    def _require_tournament(self, operation: str) -> SessionRecord:
        record = self._require_current(operation)
        self._require_status(record, operation + " for", *_IN_PROGRESS)
        self._require_kind(record, SessionKind.TOURNAMENT, operation)
        return record

    def _timestamp_for(self, record: SessionRecord) -> datetime:
        """Now, but never earlier than the latest stack entry."""
        now = self._clock()
        latest = record.latest_stack
        if latest is not None and now < latest.timestamp:
            return latest.timestamp
        return now

    @staticmethod
    def _stack_entry(record: SessionRecord, amount: int, source: StackSource,
                     timestamp: datetime) -> StackEntry:
        if not record.is_tournament:
            return StackEntry(timestamp=timestamp, chip_count=amount, source=source)
        blinds = record.current_blinds
        return StackEntry(
            timestamp=timestamp,
            chip_count=amount,
            blind_level_number=record.current_blind_level_number,
            current_sb=blinds.small_blind if blinds else 0,
            current_bb=blinds.big_blind if blinds else 0,
            current_ante=blinds.ante if blinds else 0,
            source=source,
        )

    @staticmethod
    def _snap_blind_pointer(record: SessionRecord) -> None:
        """Point at the first playable level if the pointer is off the schedule."""
        schedule = record.schedule
        if not schedule or schedule.current_level(record.current_blind_level_number) is not None:
            return
        first = schedule.first_playable_level() or schedule.sorted_levels()[0]
        record.current_blind_level_number = first.level_number

    @staticmethod
    def _check_blinds(small_blind: Optional[int], big_blind: Optional[int],
                      ante: Optional[int]) -> None:
        if small_blind is not None and small_blind <= 0:
            raise InvalidOperation(f"Small blind must be positive: {small_blind}")
        if big_blind is not None and big_blind <= 0:
            raise InvalidOperation(f"Big blind must be positive: {big_blind}")
        if small_blind is not None and big_blind is not None and big_blind < small_blind:
            raise InvalidOperation(
                f"Big blind ({big_blind}) cannot be smaller than the small blind ({small_blind})"
            )
        if ante is not None and ante < 0:
            raise InvalidOperation(f"Ante cannot be negative: {ante}")

    @staticmethod
    def _override_level(record: SessionRecord, level: BlindLevel, small_blind: Optional[int],
                        big_blind: Optional[int], ante: Optional[int]) -> None:
        updates = {
            key: value for key, value in
            (('small_blind', small_blind), ('big_blind', big_blind), ('ante', ante))
            if value is not None
        }
        if not updates:
            return
        # Rebuild so the level is validated with its new blinds
        try:
            replacement = BlindLevel(**{**level.model_dump(), **updates})
        except ValidationError as e:
            raise InvalidOperation(
                f"Invalid blinds for level {level.level_number}: {e.errors()[0]['msg']}"
            ) from e
        index = record.blind_levels.index(level)
        record.blind_levels[index] = replacement
