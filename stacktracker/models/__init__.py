"""
Models package for Stack Tracker.

Contains the session, blind level and game type models.
"""

from .game_type import BuiltinGameType, CustomGameType, GameType, GameTypeRegistry
from .blinds import BlindLevel
from .session import (
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

__all__ = [
    'BuiltinGameType',
    'CustomGameType',
    'GameType',
    'GameTypeRegistry',
    'BlindLevel',
    'BountyEvent',
    'BreakEntry',
    'FieldSnapshot',
    'HandNote',
    'SessionKind',
    'SessionRecord',
    'SessionStatus',
    'StackEntry',
    'StackSource',
]
