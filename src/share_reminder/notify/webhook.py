# src/share_reminder/notify/webhook.py

from __future__ import annotations

import logging

import httpx

from ..errors import NotificationError

logger = logging.getLogger(__name__)


class WebhookNotifier:
    """
    POSTs reminders as JSON to an HTTP endpoint:

        {"task_id": 12, "title": "...", "description": "...",
         "body": "Due tomorrow (1 day before)"}

    "body" is left out when the task has no due date.

    Any transport error or non-2xx answer raises NotificationError, which the
    delivery worker turns into a retry.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        if not url:
            raise ValueError("webhook url is required")
        self._url = url
        self._client = client or httpx.Client(timeout=httpx.Timeout(timeout, connect=min(5.0, timeout)))
        self._owns_client = client is None

    def deliver(
        self, task_id: int, title: str, description: str, *, body: str | None = None
    ) -> None:
        data = {"task_id": int(task_id), "title": title, "description": description}
        if body:
            data["body"] = body
        try:
            resp = self._client.post(self._url, json=data)
        except httpx.HTTPError as exc:
            raise NotificationError(f"webhook request failed: {exc}") from exc

        if not resp.is_success:
            raise NotificationError(f"webhook answered HTTP {resp.status_code}")
        logger.debug("Webhook accepted task_id=%s status=%s", task_id, resp.status_code)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()
