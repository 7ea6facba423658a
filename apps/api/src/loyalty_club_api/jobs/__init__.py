"""Recurring job entrypoints for account maintenance."""

__all__ = ["maintenance"]
