"""Scheduled action runner on top of APScheduler."""

from __future__ import annotations

import inspect
from collections.abc import Sequence
from datetime import tzinfo

import structlog
from apscheduler.job import Job
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.base import BaseTrigger
from apscheduler.triggers.calendarinterval import CalendarIntervalTrigger
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from tzlocal import get_localzone

from ..interfaces.services import RealTimeSender
from .registry import RegisteredScheduledAction
from .schedule import IntervalUnit, ScheduleDefinition

log = structlog.get_logger()


def build_trigger(definition: ScheduleDefinition, zone: tzinfo | None = None) -> BaseTrigger:
    """
    Translate a schedule definition into an APScheduler trigger.

    A weekday schedule fires every week on that day at ``at_time`` (midnight
    when unset). Day and week intervals with ``at_time`` fire at that wall-clock
    time of day, starting today. ``zone`` None means the system local zone.

    Raises:
        ScheduleError: If the definition is invalid
    """
    definition.validate()
    at = definition.at_hour_minute()
    tz = zone or get_localzone()

    if definition.weekday:
        hour, minute = at or (0, 0)
        return CronTrigger(
            day_of_week=definition.weekday[:3].lower(),
            hour=hour,
            minute=minute,
            second=0,
            timezone=tz,
        )

    unit = IntervalUnit(definition.unit)
    interval = {str(unit): definition.interval}
    if at is None:
        return IntervalTrigger(**interval, timezone=tz)

    # Calendar arithmetic keeps the time of day fixed across DST changes
    hour, minute = at
    return CalendarIntervalTrigger(**interval, hour=hour, minute=minute, timezone=tz)


class ActionScheduler:
    """Runs plugins' scheduled actions.

    Every firing calls the action with the real-time sender. Exceptions
    raised by an action are logged and never reach the scheduler.

    Example:
        scheduler = ActionScheduler(registry.scheduled_actions(), sender, zone)
        scheduler.start()
        ...
        scheduler.shutdown()
    """

    def __init__(
        self,
        actions: Sequence[RegisteredScheduledAction],
        sender: RealTimeSender,
        zone: tzinfo | None = None,
        scheduler: AsyncIOScheduler | None = None,
    ) -> None:
        self._actions = list(actions)
        self._sender = sender
        self._zone = zone
        self._scheduler = scheduler or AsyncIOScheduler(timezone=zone or get_localzone())
        self._jobs: list[Job] = []

    @property
    def jobs(self) -> list[Job]:
        return list(self._jobs)

    @property
    def running(self) -> bool:
        return bool(self._scheduler.running)

    def start(self) -> None:
        """
        Register every scheduled action and start the scheduler.

        Must be called from within the running event loop.

        Raises:
            ScheduleError: If a schedule definition is invalid
        """
        for entry in self._actions:
            trigger = build_trigger(entry.action.schedule, self._zone)
            job = self._scheduler.add_job(
                self.run_action,
                trigger,
                args=[entry],
                id=f"{entry.plugin.name}.scheduled[{entry.index}]",
                name=f"{entry.plugin.name}: {entry.action.schedule}",
                coalesce=True,
                max_instances=1,
            )
            self._jobs.append(job)
            log.info(
                "scheduled_action_registered",
                plugin=entry.plugin.name,
                schedule=str(entry.action.schedule),
                description=entry.action.description,
            )

        if self._jobs:
            self._scheduler.start()

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)

    async def run_action(self, entry: RegisteredScheduledAction) -> None:
        """Run one scheduled action, logging any failure."""
        try:
            result = entry.action.action(self._sender)
            if inspect.isawaitable(result):
                await result
        except Exception:
            log.exception(
                "scheduled_action_failed",
                plugin=entry.plugin.name,
                schedule=str(entry.action.schedule),
            )
