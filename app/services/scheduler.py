"""Deferred task scheduling for a conversation.

The manager owns the schedule table; firing is delegated to a ``Timer``
capability and the fired work to a dispatcher supplied by the owner
(the conversation actor).
"""

import asyncio
import functools
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta
from typing import Any, Protocol

from cuid2 import cuid_wrapper

from app.models.schedule import Schedule, ScheduleResult, ScheduleWhen
from app.utils.errors import InvalidCronExpressionError
from app.utils.logging import get_logger

logger = get_logger(__name__)

cuid = cuid_wrapper()

Dispatcher = Callable[[str, str, Schedule], Awaitable[None]]

CRON_MACROS = {
    "@yearly": "0 0 1 1 *",
    "@annually": "0 0 1 1 *",
    "@monthly": "0 0 1 * *",
    "@weekly": "0 0 * * 0",
    "@daily": "0 0 * * *",
    "@hourly": "0 * * * *",
}

# (min, max) for minute, hour, day of month, month, day of week
CRON_FIELD_RANGES = [(0, 59), (0, 23), (1, 31), (1, 12), (0, 7)]


def _parse_cron_field(field_value: str, min_val: int, max_val: int) -> set[int]:
    """Expand one cron field (supports *, lists, ranges, steps) to its values."""
    values: set[int] = set()

    for part in field_value.split(","):
        base, has_step, step_text = part.partition("/")
        step = 1
        if has_step:
            try:
                step = int(step_text)
            except ValueError as e:
                raise InvalidCronExpressionError(f"Invalid step in cron field '{field_value}'") from e
            if step < 1:
                raise InvalidCronExpressionError(f"Step must be positive in cron field '{field_value}'")

        try:
            if base == "*":
                start, end = min_val, max_val
            elif "-" in base:
                start_text, end_text = base.split("-", 1)
                start, end = int(start_text), int(end_text)
            else:
                start = int(base)
                end = max_val if has_step else start
        except ValueError as e:
            raise InvalidCronExpressionError(f"Invalid cron field '{field_value}'") from e

        if not min_val <= start <= end <= max_val:
            raise InvalidCronExpressionError(
                f"Cron field '{field_value}' is outside the allowed range {min_val}-{max_val}"
            )

        values.update(range(start, end + 1, step))

    return values


class CronExpression:
    """A parsed five-field cron expression evaluated in UTC."""

    def __init__(self, expression: str):
        self.expression = expression.strip()
        resolved = CRON_MACROS.get(self.expression.lower(), self.expression)

        fields = resolved.split()
        if len(fields) != 5:
            raise InvalidCronExpressionError(
                f"Cron expression must have exactly 5 fields (minute hour day month weekday), got {len(fields)}"
            )

        parsed = [
            _parse_cron_field(value, min_val, max_val)
            for value, (min_val, max_val) in zip(fields, CRON_FIELD_RANGES, strict=True)
        ]
        self.minutes, self.hours, self.days, self.months, weekdays = parsed
        # 0 and 7 are both Sunday
        self.weekdays = {day % 7 for day in weekdays}
        self._days_restricted = fields[2] != "*"
        self._weekdays_restricted = fields[4] != "*"

    def _day_matches(self, moment: datetime) -> bool:
        day_ok = moment.day in self.days
        weekday_ok = (moment.weekday() + 1) % 7 in self.weekdays
        # Classic cron: when both day fields are restricted either may match
        if self._days_restricted and self._weekdays_restricted:
            return day_ok or weekday_ok
        return day_ok and weekday_ok

    def next_after(self, after: datetime) -> datetime:
        """First matching minute strictly after ``after``.

        Raises:
            InvalidCronExpressionError: If nothing matches within a year
        """
        candidate = after.astimezone(UTC).replace(second=0, microsecond=0) + timedelta(minutes=1)
        limit = candidate + timedelta(days=366)

        while candidate <= limit:
            if candidate.month not in self.months:
                candidate = (candidate.replace(day=1, hour=0, minute=0) + timedelta(days=32)).replace(day=1)
            elif not self._day_matches(candidate):
                candidate = candidate.replace(hour=0, minute=0) + timedelta(days=1)
            elif candidate.hour not in self.hours:
                candidate = candidate.replace(minute=0) + timedelta(hours=1)
            elif candidate.minute not in self.minutes:
                candidate += timedelta(minutes=1)
            else:
                return candidate

        raise InvalidCronExpressionError(f"Cron expression '{self.expression}' never fires")


class Timer(Protocol):
    """Capability that invokes a callback at a point in time."""

    def call_at(self, when: datetime, callback: Callable[[], Awaitable[None]]) -> Any:
        """Arrange for ``callback`` to run at ``when``; returns a cancellable handle."""
        ...

    def cancel(self, handle: Any) -> None:
        """Cancel a handle returned by ``call_at``."""
        ...


class AsyncioTimer:
    """Timer backed by tasks on the running event loop."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()

    def call_at(self, when: datetime, callback: Callable[[], Awaitable[None]]) -> asyncio.Task:
        async def _run() -> None:
            delay = (when - datetime.now(UTC)).total_seconds()
            if delay > 0:
                await asyncio.sleep(delay)
            try:
                await callback()
            except Exception as e:
                logger.error(f"Timer callback failed: {e}", exc_info=True)

        task = asyncio.get_running_loop().create_task(_run())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def cancel(self, handle: asyncio.Task) -> None:
        handle.cancel()

    def shutdown(self) -> None:
        """Cancel every pending timer."""
        for task in list(self._tasks):
            task.cancel()


class ScheduleManager:
    """Schedule table of one conversation."""

    def __init__(
        self,
        timer: Timer,
        dispatch: Dispatcher,
        clock: Callable[[], datetime] | None = None,
    ):
        """Initialize the manager.

        Args:
            timer: Capability used to arm and cancel firings
            dispatch: Called as ``dispatch(callback, payload, schedule)`` when an entry fires
            clock: Source of the current time, defaults to UTC wall clock
        """
        self._timer = timer
        self._dispatch = dispatch
        self._clock = clock or (lambda: datetime.now(UTC))
        self._schedules: dict[str, Schedule] = {}
        self._handles: dict[str, Any] = {}

    def schedule(self, when: ScheduleWhen, callback: str, description: str) -> ScheduleResult:
        """Register a deferred invocation.

        Invalid requests produce an unsuccessful result instead of raising.
        """
        now = self._clock()

        if when.type == "no-schedule":
            return ScheduleResult(success=False, message="Not a valid schedule input")

        if when.type == "scheduled":
            if when.date is None:
                return ScheduleResult(success=False, message="A 'scheduled' task needs a date")
            fire_at = when.date if when.date.tzinfo else when.date.replace(tzinfo=UTC)
            if fire_at <= now:
                return ScheduleResult(success=False, message=f"Scheduled time {fire_at.isoformat()} is in the past")
            schedule = Schedule(id=cuid(), type="scheduled", time=fire_at, callback=callback, payload=description)
            shown = fire_at.isoformat()

        elif when.type == "delayed":
            if when.delay_in_seconds is None or when.delay_in_seconds <= 0:
                return ScheduleResult(success=False, message="A 'delayed' task needs a positive delayInSeconds")
            schedule = Schedule(
                id=cuid(),
                type="delayed",
                time=now + timedelta(seconds=when.delay_in_seconds),
                callback=callback,
                payload=description,
                delay_in_seconds=when.delay_in_seconds,
            )
            shown = str(when.delay_in_seconds)

        else:
            if not when.cron:
                return ScheduleResult(success=False, message="A 'cron' task needs a cron expression")
            try:
                expression = CronExpression(when.cron)
                fire_at = expression.next_after(now)
            except InvalidCronExpressionError as e:
                return ScheduleResult(success=False, message=f"Invalid cron expression: {e}")
            schedule = Schedule(
                id=cuid(), type="cron", time=fire_at, callback=callback, payload=description, cron=when.cron
            )
            shown = when.cron

        self._schedules[schedule.id] = schedule
        self._arm(schedule)
        logger.info(f"Scheduled {schedule.type} task {schedule.id} for {schedule.time.isoformat()}")

        return ScheduleResult(
            success=True,
            message=f'Task scheduled for type "{schedule.type}" : {shown}',
            schedule=schedule,
        )

    def get_schedules(self) -> list[Schedule]:
        """All live entries in creation order."""
        return list(self._schedules.values())

    def get(self, schedule_id: str) -> Schedule | None:
        return self._schedules.get(schedule_id)

    def cancel(self, schedule_id: str) -> bool:
        """Cancel an entry. Returns False if the id is unknown."""
        schedule = self._schedules.pop(schedule_id, None)
        if schedule is None:
            return False

        handle = self._handles.pop(schedule_id, None)
        if handle is not None:
            self._timer.cancel(handle)

        logger.info(f"Cancelled scheduled task {schedule_id}")
        return True

    def cancel_all(self) -> None:
        for schedule_id in list(self._schedules):
            self.cancel(schedule_id)

    def _arm(self, schedule: Schedule) -> None:
        self._handles[schedule.id] = self._timer.call_at(schedule.time, functools.partial(self._fire, schedule.id))

    async def _fire(self, schedule_id: str) -> None:
        schedule = self._schedules.get(schedule_id)
        if schedule is None:
            return

        if schedule.cron:
            schedule.time = CronExpression(schedule.cron).next_after(max(self._clock(), schedule.time))
            self._arm(schedule)
        else:
            self._schedules.pop(schedule_id, None)
            self._handles.pop(schedule_id, None)

        logger.info(f"Firing scheduled task {schedule_id} ({schedule.callback})")
        try:
            await self._dispatch(schedule.callback, schedule.payload, schedule)
        except Exception as e:
            logger.error(f"Scheduled task {schedule_id} failed: {e}", exc_info=True)
