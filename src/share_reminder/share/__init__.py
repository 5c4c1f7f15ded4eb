"""
Inbound share handling.

Components:
- envelope.py: SharedContentEnvelope (typed, immutable share event)
- inbox.py: ShareInbox (one-shot handoff between receiver and share flow)
"""

from .envelope import SharedContentEnvelope
from .inbox import ShareInbox

__all__ = ["SharedContentEnvelope", "ShareInbox"]
