# src/share_reminder/share/envelope.py

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from ..errors import InvalidSharePayload

logger = logging.getLogger(__name__)

# Host payload keys -> envelope field. Both the platform's camelCase and snake_case are accepted.
_OPTIONAL_KEYS: dict[str, str] = {
    "appName": "app_name",
    "app_name": "app_name",
    "senderInfo": "sender_info",
    "sender_info": "sender_info",
    "conversationContext": "conversation_context",
    "conversation_context": "conversation_context",
}


def _clean_optional(value: Any) -> str | None:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


@dataclass(frozen=True, slots=True)
class SharedContentEnvelope:
    """
    Raw shared text plus provenance, created once per inbound share event.

    The envelope is immutable: the extraction engine reads it, nothing writes it.
    """

    text: str
    received_at: datetime
    app_name: str | None = None
    sender_info: str | None = None
    conversation_context: str | None = None

    @classmethod
    def from_payload(
        cls, payload: Mapping[str, Any] | None, *, now: datetime | None = None
    ) -> SharedContentEnvelope:
        """
        Build an envelope from the host's flat key/value share payload.

        Required: "text" (non-blank).
        Optional: "appName", "senderInfo", "conversationContext" (snake_case also accepted).
        """
        if not payload:
            raise InvalidSharePayload("share payload is empty")

        raw_text = payload.get("text")
        text = str(raw_text).strip() if raw_text is not None else ""
        if not text:
            raise InvalidSharePayload("share payload has no text")

        fields: dict[str, str | None] = {}
        for key, value in payload.items():
            if key == "text":
                continue
            target = _OPTIONAL_KEYS.get(key)
            if target is None:
                logger.debug("Ignoring unknown share payload key=%s", key)
                continue
            fields[target] = _clean_optional(value)

        return cls(
            text=text,
            received_at=now or datetime.now(),
            app_name=fields.get("app_name"),
            sender_info=fields.get("sender_info"),
            conversation_context=fields.get("conversation_context"),
        )

    def to_payload(self) -> dict[str, str]:
        out = {"text": self.text}
        if self.app_name:
            out["appName"] = self.app_name
        if self.sender_info:
            out["senderInfo"] = self.sender_info
        if self.conversation_context:
            out["conversationContext"] = self.conversation_context
        return out
