"""Protocol event handling for unrepl-client.

Provides:
- Conversion of decoded wire messages into ProtocolEvent instances
- The dispatcher applying events to per-channel pending evaluation queues
"""

from .dispatcher import EventDispatcher, namespace_from_prompt
from .events import EventKind, ProtocolEvent, parse_message, parse_messages

__all__ = [
    "EventDispatcher",
    "EventKind",
    "ProtocolEvent",
    "namespace_from_prompt",
    "parse_message",
    "parse_messages",
]
