# src/worktimer/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable

from ..core.errors import ApiResult
from ..core.state import AppState
from ..timing.models import TimeEntry
from ..timing.state_machine import state_of
from ..timing.timeutils import format_time

CommandHandler = Callable[[AppState, list[str]], "str | Awaitable[str]"]

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /start, ...)."""

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

    async def handle(self, state: AppState, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        Handlers may be plain functions or coroutines.
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

        reply = handler(state, args)
        if inspect.isawaitable(reply):
            reply = await reply
        return reply

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _describe(entry: TimeEntry, seconds: int | None = None) -> str:
    label = entry.task_title or entry.task_id
    shown = format_time(seconds if seconds is not None else (entry.duration or entry.accumulated_duration))
    return f"{entry.id}  task={label}  {state_of(entry).value:<7}  {shown}"


def _outcome(result: ApiResult, done: str) -> str:
    if result.success:
        return done
    return f"Error: {result.message}"


def _first_arg(args: list[str]) -> str | None:
    if not args:
        return None
    return args[0]


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    active = state.store.active_entries()
    if not active:
        return "No active timers."
    lines = [f"Active timers ({len(active)}):"]
    for entry in active:
        lines.append("  " + _describe(entry, state.elapsed.get(entry.id, 0)))
    if state.store.last_error:
        lines.append(f"Last error: {state.store.last_error}")
    return "\n".join(lines)


def cmd_list(state: AppState, args: list[str]) -> str:
    entries = state.store.entries()
    if not entries:
        return "No time entries."
    out = [f"Time entries ({len(entries)}):"]
    for entry in entries:
        seconds = state.elapsed.get(entry.id, 0) if entry.is_active else None
        out.append("  " + _describe(entry, seconds))
    return "\n".join(out)


async def cmd_start(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /start <taskId>"
    result = await state.service.start_tracking(args[0])
    if result.success and isinstance(result.data, TimeEntry):
        return f"Started timer {result.data.id} for task {args[0]}."
    return _outcome(result, f"Started timer for task {args[0]}.")


async def cmd_pause(state: AppState, args: list[str]) -> str:
    entry_id = _first_arg(args)
    if entry_id is None:
        return "Usage: /pause <entryId>"
    return _outcome(await state.service.pause_tracking(entry_id), f"Paused {entry_id}.")


async def cmd_resume(state: AppState, args: list[str]) -> str:
    entry_id = _first_arg(args)
    if entry_id is None:
        return "Usage: /resume <entryId>"
    return _outcome(await state.service.resume_tracking(entry_id), f"Resumed {entry_id}.")


async def cmd_toggle(state: AppState, args: list[str]) -> str:
    entry_id = _first_arg(args)
    if entry_id is None:
        return "Usage: /toggle <entryId>"
    return _outcome(await state.service.toggle_tracking(entry_id), f"Toggled {entry_id}.")


async def cmd_stop(state: AppState, args: list[str]) -> str:
    entry_id = _first_arg(args)
    if entry_id is None:
        return "Usage: /stop <entryId>"
    result = await state.service.stop_tracking(entry_id)
    if result.success and isinstance(result.data, TimeEntry):
        return f"Stopped {entry_id} after {format_time(result.data.duration or 0)}."
    return _outcome(result, f"Stopped {entry_id}.")


async def cmd_remove(state: AppState, args: list[str]) -> str:
    entry_id = _first_arg(args)
    if entry_id is None:
        return "Usage: /remove <entryId>  (paused timers only)"
    return _outcome(await state.service.remove_entry(entry_id), f"Removed {entry_id}.")


async def cmd_refresh(state: AppState, args: list[str]) -> str:
    result = await state.service.fetch_all()
    if result.success:
        return f"Loaded {len(state.store)} time entries."
    return f"Error: {result.message}"


registry.register("help", cmd_help, "Show available commands", aliases=["h", "?"])
registry.register("status", cmd_status, "Show active timers with elapsed time")
registry.register("list", cmd_list, "List all known time entries", aliases=["ls"])
registry.register("start", cmd_start, "Start a timer for a task: /start <taskId>")
registry.register("pause", cmd_pause, "Pause a running timer: /pause <entryId>")
registry.register("resume", cmd_resume, "Resume a paused timer: /resume <entryId>")
registry.register("toggle", cmd_toggle, "Pause or resume a timer: /toggle <entryId>")
registry.register("stop", cmd_stop, "Stop a timer for good: /stop <entryId>")
registry.register("remove", cmd_remove, "Discard a paused timer: /remove <entryId>")
registry.register("refresh", cmd_refresh, "Reload time entries from the backend")
