"""
Stack Tracker - poker session tracking core.

Tracks live tournament and cash-game sessions, derives stack urgency
metrics, advances blind schedules and imports historical sessions from CSV.
"""

__version__ = "1.0.0"
