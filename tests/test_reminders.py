"""Tests for the reminder sweep."""

import asyncio
from datetime import date, datetime

import pytest

from khata.models import AuditEventType, Reminder, SoundKind
from khata.reminders import ReminderScheduler, due_reminders


DUE = datetime(2024, 5, 15, 9, 30, 5)
SOUND = "data:audio/mpeg;base64,AAAA"


class RecordingNotifier:
    def __init__(self, error=None):
        self.calls = []
        self.error = error

    def __call__(self, reminder, sound):
        self.calls.append((reminder.task, sound))
        if self.error is not None:
            raise self.error


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def scheduler(profile_store, notifier, audit_logger):
    return ReminderScheduler(profile_store, notifier, interval=0.01, audit_logger=audit_logger)


class TestDueReminders:
    def test_exact_minute_only(self):
        reminders = [
            Reminder(profile_id="p1", task="due", date=date(2024, 5, 15), remind_time="09:30"),
            Reminder(profile_id="p1", task="later", date=date(2024, 5, 15), remind_time="09:31"),
            Reminder(profile_id="p1", task="tomorrow", date=date(2024, 5, 16), remind_time="09:30"),
            Reminder(profile_id="p1", task="untimed", date=date(2024, 5, 15)),
            Reminder(profile_id="p1", task="done", date=date(2024, 5, 15),
                     remind_time="09:30", is_completed=True),
        ]
        assert [r.task for r in due_reminders(reminders, DUE)] == ["due"]


class TestCheck:
    def test_fires_once_per_minute(self, profile_store, scheduler, notifier, audit_storage):
        reminder = profile_store.add_reminder("ডিপিএস জমা", DUE.date(), "09:30")

        assert scheduler.check(DUE) == [profile_store.state.reminders[0]]
        assert scheduler.check(DUE.replace(second=55)) == []
        assert scheduler.check(DUE.replace(minute=31)) == []
        assert notifier.calls == [("ডিপিএস জমা", None)]

        # Firing is not completing
        assert profile_store.state.reminders[0].is_completed is False

        fired = [e for e in audit_storage.get_recent_events()
                 if e.event_type == AuditEventType.REMINDER_FIRED]
        assert [e.entity_id for e in fired] == [reminder.id]

    def test_custom_sound_is_passed(self, profile_store, scheduler, notifier):
        profile_store.set_notification_sound(SoundKind.REMINDER, SOUND)
        profile_store.add_reminder("বিল দাও", DUE.date(), "09:30")
        scheduler.check(DUE)
        assert notifier.calls == [("বিল দাও", SOUND)]

    def test_completed_not_fired(self, profile_store, scheduler, notifier):
        reminder = profile_store.add_reminder("বিল দাও", DUE.date(), "09:30")
        profile_store.toggle_reminder(reminder.id)
        assert scheduler.check(DUE) == []
        assert notifier.calls == []

    def test_only_active_profile(self, profile_store, scheduler, notifier):
        profile_store.add_reminder("রহিমের কাজ", DUE.date(), "09:30")
        profile_store.add_profile("করিম")
        assert scheduler.check(DUE) == []
        assert notifier.calls == []

    def test_disabled_in_settings(self, profile_store, scheduler, notifier):
        profile_store.add_reminder("বিল দাও", DUE.date(), "09:30")
        profile_store.set_notification_settings(enableReminders=False)
        assert scheduler.check(DUE) == []
        assert notifier.calls == []

    def test_no_active_profile(self, store, notifier, audit_logger):
        scheduler = ReminderScheduler(store, notifier, interval=1, audit_logger=audit_logger)
        assert scheduler.check(DUE) == []

    def test_notifier_error_is_contained(self, profile_store, audit_logger):
        notifier = RecordingNotifier(error=RuntimeError("speaker unplugged"))
        scheduler = ReminderScheduler(profile_store, notifier, interval=1, audit_logger=audit_logger)
        profile_store.add_reminder("বিল দাও", DUE.date(), "09:30")

        assert scheduler.check(DUE) == []
        assert scheduler.check(DUE) == []
        assert len(notifier.calls) == 1

    def test_same_reminder_next_day_is_a_new_key(self, profile_store, scheduler, notifier):
        reminder = profile_store.add_reminder("বিল দাও", DUE.date(), "09:30")
        scheduler.check(DUE)
        # Rescheduled for tomorrow by editing the date
        profile_store.delete_reminder(reminder.id)
        profile_store.add_reminder("বিল দাও", date(2024, 5, 16), "09:30")
        scheduler.check(DUE.replace(day=16))
        assert len(notifier.calls) == 2


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_and_stop(self, profile_store, notifier, audit_logger):
        profile_store.add_reminder("বিল দাও", DUE.date(), "09:30")
        scheduler = ReminderScheduler(
            profile_store, notifier, interval=0.01,
            audit_logger=audit_logger, clock=lambda: DUE,
        )

        scheduler.start()
        scheduler.start()
        assert scheduler.is_running

        await asyncio.sleep(0.1)
        await scheduler.stop()

        assert not scheduler.is_running
        assert notifier.calls == [("বিল দাও", None)]

    @pytest.mark.asyncio
    async def test_stop_when_not_started(self, scheduler):
        await scheduler.stop()
        assert not scheduler.is_running

    def test_start_needs_a_loop(self, scheduler):
        with pytest.raises(RuntimeError):
            scheduler.start()
