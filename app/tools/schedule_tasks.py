"""Task scheduling tools: schedule, list and cancel deferred tasks."""

from pydantic import BaseModel, Field

from app.models.schedule import ScheduleWhen
from app.tools.base import ToolContext, ToolDefinition
from app.utils.logging import get_logger

logger = get_logger(__name__)

# Name of the conversation callback that runs when a scheduled task fires
SCHEDULED_TASK_CALLBACK = "execute_task"

SCHEDULING_UNAVAILABLE = "Error: scheduling is not available in this conversation"


class ScheduleTaskInput(BaseModel):
    """Input schema for the schedule tool."""

    description: str = Field(..., min_length=1, description="What should happen, without timing information")
    when: ScheduleWhen


class ListScheduledTasksInput(BaseModel):
    """The list tool takes no parameters."""


class CancelScheduledTaskInput(BaseModel):
    """Input schema for the cancel tool."""

    task_id: str = Field(..., alias="taskId", description="The ID of the task to cancel")


def create_schedule_task_tool() -> ToolDefinition:
    async def schedule_task_handler(params: ScheduleTaskInput, context: ToolContext) -> str:
        if context.schedules is None:
            return SCHEDULING_UNAVAILABLE

        result = context.schedules.schedule(params.when, SCHEDULED_TASK_CALLBACK, params.description)
        if not result.success:
            logger.info(f"Rejected schedule request in {context.conversation_id}: {result.message}")
        return result.message

    return ToolDefinition(
        name="scheduleTask",
        description="A tool to schedule a task to be executed at a later time",
        input_schema_class=ScheduleTaskInput,
        handler=schedule_task_handler,
    )


def create_get_scheduled_tasks_tool() -> ToolDefinition:
    async def get_scheduled_tasks_handler(params: ListScheduledTasksInput, context: ToolContext) -> str | list:
        if context.schedules is None:
            return SCHEDULING_UNAVAILABLE

        schedules = context.schedules.get_schedules()
        if not schedules:
            return "No scheduled tasks found."
        return [schedule.model_dump(mode="json") for schedule in schedules]

    return ToolDefinition(
        name="getScheduledTasks",
        description="List all tasks that have been scheduled",
        input_schema_class=ListScheduledTasksInput,
        handler=get_scheduled_tasks_handler,
    )


def create_cancel_scheduled_task_tool() -> ToolDefinition:
    async def cancel_scheduled_task_handler(params: CancelScheduledTaskInput, context: ToolContext) -> str:
        if context.schedules is None:
            return SCHEDULING_UNAVAILABLE

        if context.schedules.cancel(params.task_id):
            return f"Task {params.task_id} has been successfully canceled."
        return f"Error canceling task {params.task_id}: no scheduled task with that ID"

    return ToolDefinition(
        name="cancelScheduledTask",
        description="Cancel a scheduled task using its ID",
        input_schema_class=CancelScheduledTaskInput,
        handler=cancel_scheduled_task_handler,
    )
