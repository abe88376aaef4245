# src/focus_todo/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then starts:
- the notification delivery loop in a background thread,
- the console REPL in the main thread (optional).
"""

from __future__ import annotations

import logging
import signal
import threading

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import ConsoleNotifier, run_console_loop
from ..logging_setup import setup_logging
from ..notifications.local_gateway import start_notifications_in_background

logger = logging.getLogger(__name__)


def _wait_for_signal() -> None:
    # Use an Event so main can wait without a busy while-loop.
    stop_main = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    try:
        signal.signal(signal.SIGINT, _handle_signal)
        signal.signal(signal.SIGTERM, _handle_signal)
    except (ValueError, OSError):
        # Not in the main thread, or the platform lacks the signal.
        logger.debug("Signal handlers not installed.", exc_info=True)

    stop_main.wait()


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)

    state = create_initial_state(settings=settings)

    runner = start_notifications_in_background(
        state.gateway,
        ConsoleNotifier(),
        state.clock,
        interval_seconds=settings.notify_interval_seconds,
    )

    try:
        if settings.console_enabled:
            # Ctrl+C reaches input() as KeyboardInterrupt; the REPL handles it.
            run_console_loop(state)
        else:
            logger.info("Console disabled. Delivering reminders only. Press Ctrl+C to stop.")
            _wait_for_signal()
    finally:
        if runner is not None:
            runner.stop()
            runner.join(timeout=5.0)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
