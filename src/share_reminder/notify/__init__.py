"""
Notification channels (Notifier port implementations).

- console.py: ConsoleNotifier (terminal output)
- webhook.py: WebhookNotifier (JSON POST via httpx)
- policy.py: NotificationPolicy (on/off switch and quiet hours)
"""
