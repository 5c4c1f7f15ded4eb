# src/share_reminder/share/inbox.py

from __future__ import annotations

import logging
import threading
from collections import deque

from .envelope import SharedContentEnvelope

logger = logging.getLogger(__name__)


class ShareInbox:
    """
    One-shot inbox between the share receiver (producer) and the share flow (consumer).

    Lifecycle of an item:
    - put() on receipt,
    - handed to exactly one consumer by the next poll(),
    - gone afterwards (a second poll never sees it again).

    Thread-safety:
    - a single lock guards the queue; producer and consumer may live on different threads.
    """

    def __init__(self, max_pending: int = 64) -> None:
        self._max_pending = max(1, int(max_pending))
        self._items: deque[SharedContentEnvelope] = deque()
        self._lock = threading.Lock()

    def put(self, envelope: SharedContentEnvelope) -> None:
        with self._lock:
            if len(self._items) >= self._max_pending:
                dropped = self._items.popleft()
                logger.warning(
                    "Share inbox full (max=%s); dropping oldest received_at=%s",
                    self._max_pending,
                    dropped.received_at.isoformat(),
                )
            self._items.append(envelope)

    def poll(self) -> SharedContentEnvelope | None:
        with self._lock:
            if not self._items:
                return None
            return self._items.popleft()

    def drain(self) -> list[SharedContentEnvelope]:
        with self._lock:
            out = list(self._items)
            self._items.clear()
            return out

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
