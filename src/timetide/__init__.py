"""Timetide: scoring, leveling and achievement engine for focus sessions."""

__version__ = "0.1.0"
