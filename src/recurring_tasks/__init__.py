"""Recurring tasks: due-date recurrence, status classification and throttled reminders."""

__version__ = "0.1.0"
