"""share_reminder: turn shared chat messages into scheduled reminders."""

__version__ = "0.1.0"
