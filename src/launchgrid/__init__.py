"""Launcher grid layout engine: paging, scanning, change tracking and persistence."""

__version__ = "0.1.0"
