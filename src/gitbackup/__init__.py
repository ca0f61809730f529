"""Incremental, idempotent Git repository backups."""

__version__ = "0.1.0"
