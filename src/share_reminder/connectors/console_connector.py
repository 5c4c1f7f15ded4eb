# src/share_reminder/connectors/console_connector.py

from __future__ import annotations

import logging
import sys
from datetime import datetime

from ..cli.commands import format_task
from ..cli.commands import registry as command_registry
from ..core.share_flow import ShareOutcome, process_inbox
from ..core.state import AppState
from ..errors import InvalidSharePayload
from ..share.envelope import SharedContentEnvelope

logger = logging.getLogger(__name__)

CONSOLE_APP_NAME = "console"


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _rewrite_prev_line(line: str) -> None:
    """
    Replace the last terminal line with `line`.
    Best-effort: if not a TTY, just print a new line.
    """
    if sys.stdout.isatty():
        sys.stdout.write("\033[1A\033[2K\r")
        sys.stdout.write(line + "\n")
        sys.stdout.flush()
    else:
        print(line)


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


def describe_outcome(outcome: ShareOutcome) -> str:
    cand = outcome.candidate
    if outcome.task is None:
        return f"Not a task (confidence {cand.confidence:.2f}): {cand.title!r}"

    head = "Task created" if outcome.created else "Already saved"
    lines = [f"{head}: {format_task(outcome.task)}"]
    if outcome.created:
        lines.append(f"  confidence {cand.confidence:.2f}, {len(outcome.jobs)} reminder(s)")
        for job in sorted(outcome.jobs, key=lambda j: j.trigger_at):
            lines.append(f"  - {job.key.slot} at {job.trigger_at.strftime('%Y-%m-%d %H:%M')}")
    if cand.is_ambiguous:
        lines.append("  (ambiguous: check the title/date with /remind or /delete)")
    return "\n".join(lines)


def receive_line(state: AppState, text: str, *, sender: str | None = None) -> list[ShareOutcome]:
    """Treat one console line as a message shared from another app."""
    try:
        envelope = SharedContentEnvelope.from_payload(
            {"text": text, "appName": CONSOLE_APP_NAME, "senderInfo": sender}
        )
    except InvalidSharePayload:
        return []
    state.inbox.put(envelope)
    with state.lock:
        return process_inbox(state)


def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started.")
    _print_ts(
        "[CONSOLE] Paste a message to turn it into a reminder. "
        "Use /help for commands. Use /exit to quit.\n"
    )

    def emit(text: str) -> None:
        print(f"[{_ts_local()}] {text}", flush=True)

    while True:
        try:
            user_input = input(">>> Share: ").strip()
            _rewrite_prev_line(f"[{_ts_local()}] >>> Share: {user_input}")
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

        # Commands (/help, /tasks, ...)
        try:
            with state.lock:
                cmd_response = command_registry.handle(state, user_input, emit=emit)
        except Exception:
            logger.exception("Command handler crashed.")
            cmd_response = "Internal error while handling a command."

        if cmd_response is not None:
            _print_ts(cmd_response)
            continue

        try:
            outcomes = receive_line(state, user_input)
        except Exception:
            logger.exception("Console share handler crashed.")
            _print_ts("Internal error while saving the task.")
            continue

        if not outcomes:
            _print_ts("Nothing saved (see log for details).")
        for outcome in outcomes:
            _print_ts(describe_outcome(outcome))

    logger.info("Console connector finished.")
