"""Reminder sweep package."""

from khata.reminders.scheduler import Notifier, ReminderScheduler, due_reminders

__all__ = ["Notifier", "ReminderScheduler", "due_reminders"]
