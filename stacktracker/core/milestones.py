"""
Tournament milestones celebrated once per player.
"""
import json
import logging
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional, Set

from ..models.session import SessionRecord, SessionStatus

logger = logging.getLogger(__name__)

FINAL_TABLE_SEATS = 9
FINAL_TABLE_MIN_FIELD = 20


class MilestoneType(str, Enum):
    FIRST_CASH = "first_cash"
    FIRST_PLACE = "first_place"
    NEW_PB_CASH = "new_pb_cash"
    FINAL_TABLE = "final_table"

    @property
    def title(self) -> str:
        return {
            MilestoneType.FIRST_CASH: "FIRST CASH!",
            MilestoneType.FIRST_PLACE: "FIRST PLACE!",
            MilestoneType.NEW_PB_CASH: "NEW PERSONAL BEST!",
            MilestoneType.FINAL_TABLE: "FINAL TABLE!",
        }[self]

    @property
    def subtitle(self) -> str:
        return {
            MilestoneType.FIRST_CASH: "You cashed in a tournament for the first time",
            MilestoneType.FIRST_PLACE: "You took down the whole thing",
            MilestoneType.NEW_PB_CASH: "Your biggest cash ever",
            MilestoneType.FINAL_TABLE: "You made the final table",
        }[self]


def _made_final_table(record: SessionRecord) -> bool:
    return (record.finish_position is not None
            and record.finish_position <= FINAL_TABLE_SEATS
            and record.field_size >= FINAL_TABLE_MIN_FIELD)


class MilestoneTracker:
    """Detects milestones in a completed tournament.

    Milestones already shown are remembered (in a JSON file when one is
    given) and never reported again.
    """

    def __init__(self, state_file: Optional[Path] = None):
        self.state_file = state_file
        self._shown: Set[str] = self._load()

    @property
    def shown(self) -> Set[str]:
        return set(self._shown)

    def check_for_new_milestones(self, completed: SessionRecord,
                                 history: Iterable[SessionRecord]) -> List[MilestoneType]:
        """Milestones reached by `completed` that have not been shown yet."""
        if not completed.is_tournament:
            return []

        previous = [
            r for r in history
            if r.id != completed.id and r.is_tournament and r.status == SessionStatus.COMPLETED
        ]
        payout = completed.payout or 0
        found = []

        if (MilestoneType.FIRST_CASH.value not in self._shown and payout > 0
                and not any((r.payout or 0) > 0 for r in previous)):
            found.append(MilestoneType.FIRST_CASH)

        if (MilestoneType.FIRST_PLACE.value not in self._shown and completed.finish_position == 1
                and not any(r.finish_position == 1 for r in previous)):
            found.append(MilestoneType.FIRST_PLACE)

        if MilestoneType.NEW_PB_CASH.value not in self._shown and payout > 0:
            previous_max = max((r.payout for r in previous if r.payout is not None), default=0)
            if previous_max > 0 and payout > previous_max:
                found.append(MilestoneType.NEW_PB_CASH)

        if (MilestoneType.FINAL_TABLE.value not in self._shown and _made_final_table(completed)
                and not any(_made_final_table(r) for r in previous)):
            found.append(MilestoneType.FINAL_TABLE)

        return found

    def mark_shown(self, milestones: Iterable[MilestoneType]) -> None:
        for milestone in milestones:
            self._shown.add(milestone.value)
        self._save()

    def _load(self) -> Set[str]:
        if self.state_file is None or not self.state_file.exists():
            return set()
        try:
            with open(self.state_file, 'r', encoding='utf-8') as f:
                return set(json.load(f))
        except (OSError, ValueError, TypeError) as e:
            logger.warning("Error loading milestones from %s: %s", self.state_file, e)
            return set()

    def _save(self) -> None:
        if self.state_file is None:
            return
        self.state_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.state_file, 'w', encoding='utf-8') as f:
            json.dump(sorted(self._shown), f, indent=2)
