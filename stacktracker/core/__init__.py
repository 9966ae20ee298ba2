"""
Core package for Stack Tracker.

Session lifecycle, metrics, blind schedules and persistence. Import the
submodules directly, e.g. ``from stacktracker.core.lifecycle import
SessionLifecycleManager``.
"""
