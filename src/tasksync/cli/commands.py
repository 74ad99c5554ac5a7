# src/tasksync/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import cast

from ..core.state import AppState
from ..tasks.task_models import Task

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], Awaitable[str]]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], Awaitable[str]]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /list, ...)."""

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

    async def handle(
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
            return await h3(state, args, emit)

        h2 = cast(CommandHandler2, handler)
        return await h2(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def format_task(task: Task) -> str:
    origin = "server" if task.synced else "local, pending"
    line = f"#{task.id} {task.title} [{origin}]"
    if task.description:
        line += f" - {task.description}"
    if task.location is not None:
        line += f" @ {task.location.latitude:.4f}, {task.location.longitude:.4f}"
    if task.photo_name:
        line += f" (photo: {task.photo_name})"
    return line


def format_tasks(tasks: list[Task]) -> str:
    if not tasks:
        return "No tasks yet."
    return "\n".join(f"  {format_task(t)}" for t in tasks)


async def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


async def cmd_status(state: AppState, args: list[str]) -> str:
    facade = state.facade
    server = "in-process demo backend" if state.demo_backend is not None else state.remote.base_url
    return (
        "Status:\n"
        f"  Connectivity: {'ONLINE' if facade.is_online else 'OFFLINE'}\n"
        f"  Server: {server}\n"
        f"  Tasks in view: {len(facade.tasks)}\n"
        f"  Pending sync: {facade.pending_count()}"
    )


async def cmd_list(state: AppState, args: list[str]) -> str:
    outcome = await state.facade.load()
    if not outcome.ok:
        return outcome.message or "Could not load tasks."
    return format_tasks(outcome.tasks)


async def cmd_add(state: AppState, args: list[str]) -> str:
    """
    /add <title>                 -> create a task
    /add <title> | <description> -> with a description
    """
    raw = " ".join(args)
    title, _, description = raw.partition("|")
    outcome = await state.facade.create(title.strip(), description.strip())
    if not outcome.ok or outcome.task is None:
        return outcome.message or "Could not create the task."
    return f"{outcome.message}: {format_task(outcome.task)}"


async def cmd_delete(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /del <id>"
    try:
        task_id = int(args[0].lstrip("#"))
    except ValueError:
        return f"Not a task id: {args[0]}"
    outcome = await state.facade.delete(task_id)
    return outcome.message or ("Task deleted" if outcome.ok else "Delete failed")


async def cmd_find(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /find <text>"
    outcome = state.facade.search(" ".join(args))
    if not outcome.ok:
        return outcome.message or "Search failed."
    return format_tasks(outcome.tasks)


async def cmd_stats(state: AppState, args: list[str]) -> str:
    s = state.facade.stats()
    return (
        "Local tasks:\n"
        f"  Total: {s.total}\n"
        f"  With location: {s.with_location}\n"
        f"  With description: {s.with_description}\n"
        f"  With photo: {s.with_photo}\n"
        f"  Pending sync: {s.pending}"
    )


async def cmd_online(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if state.monitor.is_online():
        return "Already online."
    if emit:
        emit("Going online... syncing pending tasks.")
    if state.demo_backend is not None:
        state.demo_backend.reachable = True
    await state.monitor.set_online(True)
    return f"Online. {len(state.facade.tasks)} tasks in view."


async def cmd_offline(state: AppState, args: list[str]) -> str:
    if not state.monitor.is_online():
        return "Already offline."
    if state.demo_backend is not None:
        state.demo_backend.reachable = False
    await state.monitor.set_online(False)
    return "Offline. New tasks are kept locally until you go online."


async def cmd_sync(state: AppState, args: list[str]) -> str:
    outcome = await state.facade.sync()
    return outcome.message or ("Synced." if outcome.ok else "Sync failed.")


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show connectivity, server and pending count.")
registry.register("list", cmd_list, help_text="Reload and list tasks.", aliases=["ls"])
registry.register("add", cmd_add, help_text="Create a task: /add <title> | <description>.")
registry.register("del", cmd_delete, help_text="Delete a task: /del <id>.", aliases=["rm"])
registry.register("find", cmd_find, help_text="Search local tasks: /find <text>.")
registry.register("stats", cmd_stats, help_text="Local task statistics.")
registry.register("online", cmd_online, help_text="Simulate reconnect (syncs pending tasks).")
registry.register("offline", cmd_offline, help_text="Simulate losing connectivity.")
registry.register("sync", cmd_sync, help_text="Push pending tasks now.")
