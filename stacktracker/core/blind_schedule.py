"""
Blind schedule ordering and display numbering.
"""
from typing import Dict, List, Optional

from ..models.blinds import BlindLevel
from .metrics import DEFAULT_SEATS, orbit_cost as _orbit_cost


class BlindSchedule:
    """View over a tournament's blind levels.

    The schedule wraps the session's own level list and derives everything
    on demand, so adding or removing a level is reflected immediately.
    """

    def __init__(self, levels: Optional[List[BlindLevel]] = None):
        self.levels = levels if levels is not None else []

    def __len__(self) -> int:
        return len(self.levels)

    def __bool__(self) -> bool:
        return bool(self.levels)

    def sorted_levels(self) -> List[BlindLevel]:
        """All levels ordered by level number."""
        return sorted(self.levels, key=lambda level: level.level_number)

    def display_level_numbers(self) -> Dict[int, int]:
        """Map internal level number to the 1-based number players see.

        Breaks are not counted and have no entry in the map.
        """
        mapping = {}
        display_number = 1
        for level in self.sorted_levels():
            if level.is_break:
                continue
            mapping[level.level_number] = display_number
            display_number += 1
        return mapping

    def internal_level_numbers(self) -> Dict[int, int]:
        """Reverse of display_level_numbers."""
        return {display: internal for internal, display in self.display_level_numbers().items()}

    def display_number(self, level_number: int) -> Optional[int]:
        return self.display_level_numbers().get(level_number)

    def current_level(self, level_number: int) -> Optional[BlindLevel]:
        for level in self.levels:
            if level.level_number == level_number:
                return level
        return None

    def next_level(self, level_number: int) -> Optional[BlindLevel]:
        """The level following level_number in schedule order, breaks included."""
        for level in self.sorted_levels():
            if level.level_number > level_number:
                return level
        return None

    def first_playable_level(self) -> Optional[BlindLevel]:
        for level in self.sorted_levels():
            if not level.is_break:
                return level
        return None

    def skip_breaks(self, level_number: int) -> int:
        """If level_number is a break, walk forward to the next playable level.

        Returns level_number unchanged when it is not a break, is unknown,
        or only breaks follow it.
        """
        ordered = self.sorted_levels()
        for index, level in enumerate(ordered):
            if level.level_number != level_number:
                continue
            if not level.is_break:
                return level_number
            for following in ordered[index + 1:]:
                if not following.is_break:
                    return following.level_number
            return level_number
        return level_number

    def next_level_number(self) -> int:
        """Level number for a level appended to the end of the schedule."""
        if not self.levels:
            return 1
        return max(level.level_number for level in self.levels) + 1

    def find_by_blinds(self, small_blind: int, big_blind: int) -> Optional[BlindLevel]:
        for level in self.sorted_levels():
            if not level.is_break and level.small_blind == small_blind and level.big_blind == big_blind:
                return level
        return None

    def add(self, level: BlindLevel) -> None:
        if self.current_level(level.level_number) is not None:
            raise ValueError(f"Blind level {level.level_number} already exists")
        self.levels.append(level)

    def remove(self, level_number: int) -> Optional[BlindLevel]:
        level = self.current_level(level_number)
        if level is not None:
            self.levels.remove(level)
        return level

    @staticmethod
    def orbit_cost(level: BlindLevel, seats: int = DEFAULT_SEATS) -> int:
        return _orbit_cost(level.small_blind, level.big_blind, level.ante, seats)
