# src/share_reminder/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then starts:
- the job runner in a background thread (fires due reminders),
- the console connector in the main thread (optional).
"""

from __future__ import annotations

import contextlib
import logging
import signal
import threading

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging
from ..tasks.job_runner import start_job_runner_in_background

logger = logging.getLogger(__name__)


def _shutdown(state) -> None:
    """Best-effort shutdown (stores use short-lived sqlite connections per call)."""
    notifier = getattr(state, "notifier", None)
    close = getattr(notifier, "close", None)
    if callable(close):
        try:
            close()
        except Exception:
            logger.debug("Notifier close failed.", exc_info=True)


def main() -> None:
    settings = get_settings()

    # choose console log level from settings.log_level
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    log_dir = getattr(settings, "data_dir", ".local/share_reminder")
    setup_logging(log_dir=log_dir, console_level=console_level)

    logger.info("Starting %s...", getattr(settings, "app_name", "share-reminder"))

    # reuse same settings object
    state = create_initial_state(settings=settings)

    # A previous run may have died mid-delivery.
    state.job_store.release_stale()

    runner = start_job_runner_in_background(
        state.job_store,
        state.worker,
        interval_seconds=settings.runner_interval_seconds,
        retry_delay_seconds=settings.retry_delay_seconds,
        max_attempts=settings.max_delivery_attempts,
    )

    # Use an Event so main can wait without a busy while-loop.
    stop_main = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    # Some platforms do not support SIGTERM.
    with contextlib.suppress(ValueError, OSError, AttributeError):
        signal.signal(signal.SIGTERM, _handle_signal)
        if not settings.console_enabled:
            signal.signal(signal.SIGINT, _handle_signal)

    try:
        if settings.console_enabled:
            run_console_loop(state)
            stop_main.set()
        else:
            logger.info("Console disabled. Running the job runner only. Press Ctrl+C to stop.")
            stop_main.wait()

    finally:
        if runner is not None:
            runner.stop()
            runner.join(timeout=10.0)

        _shutdown(state)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
