# src/share_reminder/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

APP_LOGGER = "share_reminder"

# Loggers whose records describe what happened to a reminder after it fired.
DELIVERY_LOGGERS: tuple[str, ...] = (
    "share_reminder.tasks.delivery_worker",
    "share_reminder.tasks.job_runner",
    "share_reminder.notify",
)

# Per-message or per-poll chatter: console shows it only from WARNING up.
_QUIET_ON_CONSOLE: tuple[str, ...] = (
    "share_reminder.tasks.job_runner",
    "share_reminder.extraction",
)

_HTTP_LOGGERS: tuple[str, ...] = ("httpx", "httpcore")


def _under(name: str, prefixes: tuple[str, ...]) -> bool:
    return any(name == p or name.startswith(p + ".") for p in prefixes)


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keeps the console prompt readable while reminders fire in the background.

    App records pass, except the runner's polling and per-message extraction logs,
    which need WARNING. Webhook traffic from httpx/httpcore needs WARNING as well.
    Everything else (other libraries, captured py.warnings) needs ERROR.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if _under(name, (APP_LOGGER,)):
            if _under(name, _QUIET_ON_CONSOLE):
                return record.levelno >= logging.WARNING
            return True
        if _under(name, _HTTP_LOGGERS):
            return record.levelno >= logging.WARNING
        return record.levelno >= logging.ERROR


class _DeliveryFilter(logging.Filter):
    """Only records about fired reminders: delivered, suppressed, retried, given up."""

    def filter(self, record: logging.LogRecord) -> bool:
        return _under(record.name, DELIVERY_LOGGERS)


def setup_logging(
    *,
    log_dir: str | Path = ".local/share_reminder",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Configure logging for the CLI. Call once, before the first log line.

    - stderr: filtered for interactive use
    - <log_dir>/share_reminder.log: everything at file_level
    - <log_dir>/deliveries.log: INFO+ from the delivery path only

    Returns the directory the log files were written to.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(console_level)
    ch.setFormatter(fmt)
    ch.addFilter(_ConsoleNoiseFilter())
    root.addHandler(ch)

    fh = logging.FileHandler(str(log_dir / "share_reminder.log"), encoding="utf-8")
    fh.setLevel(file_level)
    fh.setFormatter(fmt)
    root.addHandler(fh)

    dh = logging.FileHandler(str(log_dir / "deliveries.log"), encoding="utf-8")
    dh.setLevel(logging.INFO)
    dh.setFormatter(fmt)
    dh.addFilter(_DeliveryFilter())
    root.addHandler(dh)

    # httpcore DEBUG is one line per socket event.
    logging.getLogger("httpcore").setLevel(logging.INFO)

    logging.captureWarnings(True)
    return log_dir
