"""CronoFocus: local time-blocking planner store and statistics."""

__version__ = "0.1.0"
