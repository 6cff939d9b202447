# src/tasknote/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then starts:
- the background runtime (reminders, session sweep, Matrix if enabled),
- the console REPL in the main thread (optional).
"""

from __future__ import annotations

import logging
import signal
import threading

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import ConsoleMessenger, run_console_loop
from ..connectors.runtime import start_background_runtime
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()
    setup_logging(log_dir=settings.data_dir, console_level=settings.log_level)

    logger.info("Starting %s...", settings.app_name)

    state = create_initial_state(settings=settings)

    runtime = start_background_runtime(state, ConsoleMessenger())
    if runtime is None:
        raise SystemExit(1)

    # Use an Event so main can wait without a busy while-loop.
    stop_main = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    if settings.console_enabled:
        # input() blocks; turn SIGTERM into KeyboardInterrupt so the REPL exits like on Ctrl+C.
        signal.signal(signal.SIGTERM, signal.default_int_handler)
    else:
        signal.signal(signal.SIGINT, _handle_signal)
        signal.signal(signal.SIGTERM, _handle_signal)

    try:
        if settings.console_enabled:
            run_console_loop(state, runtime.loop)
        else:
            logger.info("Console disabled. Running background services only. Press Ctrl+C to stop.")
            stop_main.wait()
    finally:
        runtime.stop()
        runtime.join(timeout=10.0)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
