"""
Poker game type models.

Game types are either one of the built-in variants or a user-defined
custom entry registered by raw value.
"""
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union
from pydantic import BaseModel, Field


class BuiltinGameType(str, Enum):
    """Built-in poker variants."""
    NLH = "NLH"
    PLO = "PLO"
    MIXED = "Mixed"

    @property
    def label(self) -> str:
        """Human readable variant name."""
        return {
            BuiltinGameType.NLH: "No Limit Hold'em",
            BuiltinGameType.PLO: "Pot Limit Omaha",
            BuiltinGameType.MIXED: "Mixed Game",
        }[self]

    @property
    def raw_value(self) -> str:
        return self.value


class CustomGameType(BaseModel):
    """A user-defined game type such as "Big O" or "Stud 8"."""
    raw_value: str = Field(..., min_length=1)
    label: str = Field(..., min_length=1)


GameType = Union[BuiltinGameType, CustomGameType]


def game_type_label(game_type: GameType) -> str:
    """Display label for any game type."""
    return game_type.label


class GameTypeRegistry:
    """Lookup table for custom game types.

    Built-in variants always win: a custom entry can never reuse a
    built-in raw value, and adding an existing raw value is a no-op.
    """

    def __init__(self, custom_types: Optional[List[CustomGameType]] = None):
        self._custom: Dict[str, CustomGameType] = {}
        for custom in custom_types or []:
            self.add(custom.raw_value, custom.label)

    @property
    def custom_types(self) -> List[CustomGameType]:
        return list(self._custom.values())

    def add(self, raw_value: str, label: str) -> Optional[CustomGameType]:
        """Register a custom type; returns None if it would conflict."""
        if self._builtin(raw_value) is not None or raw_value in self._custom:
            return None
        custom = CustomGameType(raw_value=raw_value, label=label)
        self._custom[raw_value] = custom
        return custom

    def remove(self, raw_value: str) -> bool:
        return self._custom.pop(raw_value, None) is not None

    def label_for(self, raw_value: str) -> str:
        """Label for a raw value, falling back to the raw value itself."""
        game_type = self.lookup(raw_value)
        return game_type.label if game_type is not None else raw_value

    def lookup(self, raw_value: str) -> Optional[GameType]:
        builtin = self._builtin(raw_value)
        if builtin is not None:
            return builtin
        return self._custom.get(raw_value)

    def resolve(self, raw_value: str,
                default: BuiltinGameType = BuiltinGameType.NLH) -> GameType:
        """Resolve a raw value to a game type, or the default if unknown."""
        game_type = self.lookup(raw_value)
        return game_type if game_type is not None else default

    def all_options(self) -> List[Tuple[str, str]]:
        """(raw value, label) pairs: built-ins first, then custom entries."""
        options = [(g.value, g.label) for g in BuiltinGameType]
        options.extend((c.raw_value, c.label) for c in self._custom.values())
        return options

    @staticmethod
    def _builtin(raw_value: str) -> Optional[BuiltinGameType]:
        try:
            return BuiltinGameType(raw_value)
        except ValueError:
            return None
