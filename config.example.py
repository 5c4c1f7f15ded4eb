# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file),
see src/share_reminder/config.py. Every variable below is optional.
"""

ENV_VARS = {
    # App / logging
    "SHARE_REMINDER_APP_NAME": "App display name (default: share-reminder).",
    "SHARE_REMINDER_LOG_LEVEL": "Console logging level (default: INFO).",
    # Connectors
    "SHARE_REMINDER_CONSOLE_ENABLED": "Enable the console share connector (true/false).",
    # Paths (gitignored)
    "SHARE_REMINDER_DATA_DIR": "Local data directory (default: .local/share_reminder).",
    "SHARE_REMINDER_TASKS_DB_PATH": "TaskStore SQLite path (default: <data_dir>/tasks.sqlite3).",
    "SHARE_REMINDER_JOBS_DB_PATH": "JobStore SQLite path (default: <data_dir>/jobs.sqlite3).",
    # Materialization
    "SHARE_REMINDER_DEDUP_WINDOW_SECONDS": "Replay window for the same share event (default: 300).",
    "SHARE_REMINDER_DEFAULT_CATEGORY_ID": "Category used when none is suggested (default: general).",
    "SHARE_REMINDER_MIN_CONFIDENCE": "Shares scoring below this are not saved (default: 0.0).",
    # Reminders
    "SHARE_REMINDER_DEFAULT_REMINDER_HOUR": "Hour used to anchor date-only tasks (default: 9).",
    "SHARE_REMINDER_SNOOZE_MINUTES": "Default /snooze delay (default: 10).",
    # Job runner
    "SHARE_REMINDER_RUNNER_INTERVAL_SECONDS": "Polling interval of the job runner (default: 15).",
    "SHARE_REMINDER_RETRY_DELAY_SECONDS": "Base retry delay, doubled per attempt (default: 60).",
    "SHARE_REMINDER_MAX_DELIVERY_ATTEMPTS": "Attempts before a job is parked as failed (default: 5).",
    # Notifications
    "SHARE_REMINDER_NOTIFY_WEBHOOK_URL": "POST reminders to this URL instead of printing them.",
    "SHARE_REMINDER_NOTIFY_TIMEOUT_SECONDS": "Webhook request timeout (default: 10).",
    "SHARE_REMINDER_NOTIFICATIONS_ENABLED": "Deliver reminders at all (true/false, default: true).",
    "SHARE_REMINDER_QUIET_HOURS_START": "Start of daily quiet hours, HH:MM local time (e.g. 22:00).",
    "SHARE_REMINDER_QUIET_HOURS_END": "End of daily quiet hours, HH:MM (e.g. 07:00). Both must be set.",
}
