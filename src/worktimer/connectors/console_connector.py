# src/worktimer/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.state import AppState

logger = logging.getLogger(__name__)

OBSERVER_ID = "console"


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


class ConsoleNotifier:
    """Notifier port for the terminal: one timestamped line per notification."""

    def notify(self, level: str, message: str) -> None:
        tag = {"error": "ERROR", "success": "OK"}.get(level, level.upper())
        _print_ts(f"[{tag}] {message}")


async def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started.")
    _print_ts("[CONSOLE] Type /help for commands. Use /exit to quit.\n")

    def on_elapsed(times: dict[str, int]) -> None:
        state.elapsed = times

    # The console is one observer among possibly many; the coordinator keeps
    # the shared tick running only while one of our timers is running.
    unregister = state.coordinator.register(OBSERVER_ID, state.store.active_entries, on_elapsed)
    unsubscribe = state.store.subscribe(state.coordinator.entries_changed)

    try:
        result = await state.service.fetch_all()
        if not result.success:
            _print_ts(f"[CONSOLE] Could not load time entries: {result.message}")

        while True:
            try:
                user_input = (await asyncio.to_thread(input, ">>> ")).strip()
            except EOFError:
                logger.info("Console EOF received, exiting.")
                break
            except KeyboardInterrupt:
                logger.info("Console KeyboardInterrupt, exiting.")
                print()
                break

            if not user_input:
                continue

            if user_input.lower() in ("/exit", "/quit"):
                logger.info("Console exit command received.")
                break

            try:
                reply = await command_registry.handle(state, user_input)
            except Exception:
                logger.exception("Command handler crashed.")
                reply = "Internal error while handling a command."

            if reply is None:
                reply = "Not a command. Use /help to list available commands."
            _print_ts(reply)
    finally:
        unsubscribe()
        unregister()
        logger.info("Console connector finished.")
