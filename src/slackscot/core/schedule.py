"""Schedule definitions of scheduled actions."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum

from ..errors import ScheduleError

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

AT_TIME_PATTERN = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")


class IntervalUnit(StrEnum):
    """Valid schedule interval units."""

    SECONDS = "seconds"
    MINUTES = "minutes"
    HOURS = "hours"
    DAYS = "days"
    WEEKS = "weeks"


@dataclass(frozen=True)
class ScheduleDefinition:
    """When a scheduled action runs.

    Setting ``weekday`` implies every 1 week, whatever ``interval`` and ``unit``
    say. ``at_time`` ("HH:MM") only applies to day and week units.

    Examples:
        ScheduleDefinition(weekday="Monday", at_time="10:00")
        ScheduleDefinition(interval=2, unit=IntervalUnit.HOURS)
    """

    interval: int = 1
    unit: IntervalUnit = IntervalUnit.WEEKS
    weekday: str | None = None
    at_time: str | None = None

    def __str__(self) -> str:
        if self.weekday:
            text = f"Every {self.weekday}"
        elif self.interval == 1:
            text = f"Every {str(self.unit).removesuffix('s')}"
        else:
            text = f"Every {self.interval} {self.unit}"

        if self.at_time:
            text += f" at {self.at_time}"
        return text

    @property
    def effective_unit(self) -> IntervalUnit:
        return IntervalUnit.WEEKS if self.weekday else IntervalUnit(self.unit)

    def at_hour_minute(self) -> tuple[int, int] | None:
        """Parse ``at_time`` into (hour, minute), or None when unset."""
        if not self.at_time:
            return None
        match = AT_TIME_PATTERN.match(self.at_time)
        if match is None:
            raise ScheduleError(f"Invalid time of day [{self.at_time}] in schedule [{self}]")
        return int(match.group(1)), int(match.group(2))

    def validate(self) -> None:
        """
        Check the definition can be scheduled.

        Raises:
            ScheduleError: If the interval, unit, weekday or time is invalid
        """
        if self.weekday is not None and self.weekday not in WEEKDAYS:
            raise ScheduleError(f"Invalid weekday [{self.weekday}] in schedule [{self}]")
        if self.weekday is None:
            try:
                IntervalUnit(self.unit)
            except ValueError as e:
                raise ScheduleError(f"Invalid interval unit [{self.unit}]") from e
            if self.interval < 1:
                raise ScheduleError(f"Interval must be at least 1 but was [{self.interval}]")

        if self.at_hour_minute() is not None and self.effective_unit not in (
            IntervalUnit.DAYS,
            IntervalUnit.WEEKS,
        ):
            raise ScheduleError(
                f"A time of day can only be set on a schedule in days or weeks: [{self}]"
            )
