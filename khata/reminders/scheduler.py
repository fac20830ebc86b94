"""
Reminder Sweep

DESIGN DECISION: Reminders fire by polling. Once per interval the
scheduler compares every incomplete reminder of the active profile with
the current minute. A reminder fires only in its exact minute.

Guarantee: at most one notification per reminder per matching minute.
A tick landing twice in the same minute does not fire twice; a reminder
whose minute has passed never fires later. Firing never marks the
reminder completed; that stays a user action.

The sweep is an asyncio task with explicit start/stop, meant to run only
while someone is logged in.
"""

import asyncio
import contextlib
from datetime import date, datetime
from typing import Callable, Iterable, Optional

import structlog

from khata.audit import AuditLogger
from khata.config import get_settings
from khata.models.audit import AuditEventType
from khata.models.state import Reminder
from khata.store import StateStore


logger = structlog.get_logger(__name__)

# Called with the due reminder and the custom reminder sound (data URL) if any
Notifier = Callable[[Reminder, Optional[str]], None]


def due_reminders(reminders: Iterable[Reminder], now: datetime) -> list[Reminder]:
    """Incomplete reminders scheduled for exactly this minute."""
    minute = now.strftime("%H:%M")
    today = now.date()
    return [
        r for r in reminders
        if not r.is_completed
        and r.remind_time is not None
        and r.date == today
        and r.remind_time == minute
    ]


class ReminderScheduler:
    """Periodic reminder check bound to one store."""

    def __init__(
        self,
        store: StateStore,
        notifier: Notifier,
        interval: Optional[float] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._store = store
        self._notifier = notifier
        self._interval = interval or get_settings().app.reminder_poll_seconds
        self._audit = audit_logger or AuditLogger()
        self._clock = clock
        self._fired: set[tuple[str, date, str]] = set()
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def check(self, now: Optional[datetime] = None) -> list[Reminder]:
        """
        One sweep. Returns the reminders that fired.

        Only the active profile's reminders are considered, and nothing
        fires while reminders are switched off in the settings.
        """
        now = now or self._clock()
        state = self._store.state
        settings = state.notification_settings
        if not settings.enable_reminders or not state.active_profile_id:
            return []

        # Keys from earlier days can never match again
        today = now.date()
        self._fired = {key for key in self._fired if key[1] >= today}

        fired = []
        minute = now.strftime("%H:%M")
        for reminder in due_reminders(
            state.profile_reminders(state.active_profile_id), now,
        ):
            key = (reminder.id, reminder.date, minute)
            if key in self._fired:
                continue
            self._fired.add(key)

            try:
                self._notifier(reminder, settings.sounds.reminder)
            except Exception as e:
                # A broken notifier must not stop the sweep
                logger.error("reminder_notify_failed", reminder_id=reminder.id, error=str(e))
                continue

            self._audit.log_change(
                AuditEventType.REMINDER_FIRED, "reminder", reminder.id,
                {"minute": minute},
            )
            fired.append(reminder)
        return fired

    async def _run(self) -> None:
        while True:
            self.check()
            await asyncio.sleep(self._interval)

    def start(self) -> None:
        """Start sweeping. Needs a running event loop. No-op if running."""
        if self.is_running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info("reminder_scheduler_started", interval=self._interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("reminder_scheduler_stopped")
