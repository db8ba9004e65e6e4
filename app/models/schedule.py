"""Scheduling data models."""

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

ScheduleType = Literal["scheduled", "delayed", "cron", "no-schedule"]


class ScheduleWhen(BaseModel):
    """When a task should run, as produced by the model."""

    model_config = ConfigDict(populate_by_name=True)

    type: ScheduleType = Field(
        ...,
        description=(
            "'scheduled' for a specific date and time, 'delayed' for a number of seconds from now, "
            "'cron' for a recurring schedule, 'no-schedule' if the request does not describe a schedule"
        ),
    )
    date: datetime | None = Field(None, description="Date and time to run at (type 'scheduled')")
    delay_in_seconds: int | None = Field(
        None, alias="delayInSeconds", description="Seconds to wait before running (type 'delayed')"
    )
    cron: str | None = Field(None, description="Five-field cron expression (type 'cron')", examples=["0 9 * * 1-5"])


class Schedule(BaseModel):
    """A registered deferred invocation."""

    id: str
    type: Literal["scheduled", "delayed", "cron"]
    time: datetime
    callback: str
    payload: str
    delay_in_seconds: int | None = None
    cron: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ScheduleResult(BaseModel):
    """Outcome of a scheduling request.

    Invalid requests are reported here rather than raised, so the model can
    relay the problem to the user.
    """

    success: bool
    message: str
    schedule: Schedule | None = None
