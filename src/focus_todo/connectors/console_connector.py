# src/focus_todo/connectors/console_connector.py

from __future__ import annotations

import logging
import sys
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.state import AppState

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


class ConsoleNotifier:
    """Notifier port that prints fired reminders to the terminal."""

    async def send_notification(self, *, title: str, body: str) -> None:
        text = body.replace("\n", " | ")
        # The prompt line may be half-typed; start on a fresh line.
        sys.stdout.write("\n")
        _print_ts(f"[REMINDER] {title}: {text}")


def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started.")
    _print_ts("[CONSOLE] Manage tasks with slash commands. Use /help for commands. Use /exit to quit.\n")

    unsubscribe = state.task_store.subscribe(
        lambda tasks: logger.debug("Task list changed (%d tasks).", len(tasks))
    )

    try:
        while True:
            try:
                user_input = input(">>> ").strip()
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

            if not user_input.startswith("/"):
                user_input = "/add " + user_input

            try:
                with state.lock:
                    response = command_registry.handle(state, user_input)
            except Exception:
                logger.exception("Command handler crashed.")
                response = "Internal error while handling a command."

            if response is not None:
                _print_ts(response)
    finally:
        unsubscribe()

    logger.info("Console connector finished.")
