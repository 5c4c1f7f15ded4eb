# src/share_reminder/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from datetime import datetime
from typing import cast

from ..core.state import AppState
from ..errors import SchedulingError, TaskStoreError
from ..tasks import task_api
from ..tasks.job_runner import run_due_jobs_once
from ..tasks.task_models import JobStatus, ReminderInterval, Task

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)

# Short forms accepted by /remind, next to the enum values themselves.
INTERVAL_ALIASES: dict[str, ReminderInterval] = {
    "at": ReminderInterval.AT_TIME,
    "0": ReminderInterval.AT_TIME,
    "1h": ReminderInterval.ONE_HOUR,
    "6h": ReminderInterval.SIX_HOURS,
    "12h": ReminderInterval.TWELVE_HOURS,
    "1d": ReminderInterval.ONE_DAY,
    "24h": ReminderInterval.ONE_DAY,
}


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /tasks, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return h3(state, args, emit)

        h2 = cast(CommandHandler2, handler)
        return h2(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _parse_task_id(args: list[str]) -> int | None:
    if not args:
        return None
    raw = args[0].lstrip("#")
    try:
        return int(raw)
    except ValueError:
        return None


def parse_intervals(tokens: list[str]) -> set[ReminderInterval] | None:
    """Parse /remind arguments. Returns None on an unknown token; "off"/"none" -> empty set."""
    out: set[ReminderInterval] = set()
    for tok in tokens:
        t = tok.strip().lower().rstrip(",")
        if t in ("off", "none"):
            return set()
        interval = INTERVAL_ALIASES.get(t) or ReminderInterval.from_db(t)
        if interval is None:
            return None
        out.add(interval)
    return out


def format_task(task: Task) -> str:
    if task.due_datetime is not None:
        due = task.due_datetime.strftime("%Y-%m-%d %H:%M")
    elif task.due_date is not None:
        due = task.due_date.isoformat()
    else:
        due = "no date"
    mark = "x" if task.is_completed else " "
    reminders = ",".join(sorted(i.value for i in task.reminder_intervals)) or "-"
    return f"[{mark}] #{task.id} {task.title} ({due}; {task.category_id}; reminders: {reminders})"


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    settings = state.settings
    open_tasks = len(task_api.list_open_tasks(state, limit=10_000))
    pending = state.job_store.count_jobs(JobStatus.SCHEDULED)
    failed = state.job_store.count_jobs(JobStatus.FAILED)
    return (
        "Status:\n"
        f"  Open tasks: {open_tasks}\n"
        f"  Pending reminders: {pending} (failed: {failed})\n"
        f"  Dedup window: {getattr(settings, 'dedup_window_seconds', '?')}s\n"
        f"  Notifier: {type(state.notifier).__name__}"
    )


def cmd_tasks(state: AppState, args: list[str]) -> str:
    """
    /tasks      -> open tasks
    /tasks all  -> include completed
    """
    include_completed = bool(args) and args[0].lower() == "all"
    tasks = state.task_store.list_tasks(include_completed=include_completed, limit=50)
    if not tasks:
        return "No tasks."
    return "\n".join(format_task(t) for t in tasks)


def cmd_done(state: AppState, args: list[str]) -> str:
    task_id = _parse_task_id(args)
    if task_id is None:
        return "Usage: /done <task_id>"
    if not task_api.complete_task(state, task_id):
        return f"Task #{task_id} not found."
    return f"Task #{task_id} completed. Reminders cancelled."


def cmd_delete(state: AppState, args: list[str]) -> str:
    task_id = _parse_task_id(args)
    if task_id is None:
        return "Usage: /delete <task_id>"
    if not task_api.delete_task(state, task_id):
        return f"Task #{task_id} not found."
    return f"Task #{task_id} deleted."


def cmd_snooze(state: AppState, args: list[str]) -> str:
    """
    /snooze <id>            -> remind again in settings.snooze_minutes
    /snooze <id> <minutes>  -> remind again in <minutes>
    """
    task_id = _parse_task_id(args)
    if task_id is None:
        return "Usage: /snooze <task_id> [minutes]"
    minutes: int | None = None
    if len(args) > 1:
        try:
            minutes = max(1, int(args[1]))
        except ValueError:
            return "Minutes must be a number."

    job = task_api.snooze_task(state, task_id, minutes)
    if job is None:
        return f"Task #{task_id} not found or already completed."
    return f"Task #{task_id} snoozed until {job.trigger_at.strftime('%H:%M')}."


def cmd_remind(state: AppState, args: list[str]) -> str:
    """
    /remind <id> 1d 1h   -> remind 1 day and 1 hour before
    /remind <id> off     -> no reminders
    """
    task_id = _parse_task_id(args)
    if task_id is None or len(args) < 2:
        return "Usage: /remind <task_id> <at|1h|6h|12h|1d ...|off>"

    intervals = parse_intervals(args[1:])
    if intervals is None:
        return "Unknown interval. Use: at, 1h, 6h, 12h, 1d (or off)."

    result = task_api.update_reminders(state, task_id, intervals)
    if result is None:
        return f"Task #{task_id} not found."
    task, jobs = result
    if not task.has_reminder:
        return f"Task #{task_id}: reminders off."
    when = ", ".join(sorted(j.trigger_at.strftime("%Y-%m-%d %H:%M") for j in jobs)) or "none in the future"
    return f"Task #{task_id}: {len(jobs)} reminder(s) scheduled ({when})."


def cmd_run(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """Fire every due reminder right now instead of waiting for the runner."""
    settings = state.settings
    stats = run_due_jobs_once(
        state.job_store,
        state.worker,
        retry_delay_seconds=float(getattr(settings, "retry_delay_seconds", 60.0)),
        max_attempts=int(getattr(settings, "max_delivery_attempts", 5)),
    )
    if not stats.processed:
        return "No reminders due."
    return (
        f"Processed {stats.processed} reminder(s): "
        f"{stats.delivered} done, {stats.retried} retrying, {stats.failed} failed."
    )


def _guarded(handler: CommandHandler2) -> CommandHandler2:
    """Store/scheduler errors become a reply instead of crashing the connector."""

    def wrapper(state: AppState, args: list[str]) -> str:
        try:
            return handler(state, args)
        except (TaskStoreError, SchedulingError) as exc:
            logger.error("/%s failed: %s", handler.__name__.removeprefix("cmd_"), exc)
            return f"Error: {exc}"

    wrapper.__name__ = handler.__name__
    wrapper.__doc__ = handler.__doc__
    return wrapper


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", _guarded(cmd_status), help_text="Show open tasks and pending reminders.")
registry.register("tasks", _guarded(cmd_tasks), help_text="List tasks: /tasks | /tasks all.", aliases=["ls"])
registry.register("done", _guarded(cmd_done), help_text="Complete a task: /done <id>.")
registry.register("delete", _guarded(cmd_delete), help_text="Delete a task: /delete <id>.", aliases=["rm"])
registry.register(
    "snooze", _guarded(cmd_snooze), help_text="Remind again later: /snooze <id> [minutes]."
)
registry.register(
    "remind", _guarded(cmd_remind), help_text="Set reminders: /remind <id> at|1h|6h|12h|1d|off."
)
registry.register("run", cmd_run, help_text="Fire due reminders now.")
