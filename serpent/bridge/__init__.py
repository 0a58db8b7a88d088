"""Cross-context bridge — broadcast media, channels and correlated requests."""

from .bus import MessageBus
from .channels import (
    HANDOFF_ATTRIBUTE,
    PUSH_DOCUMENT,
    PUSH_IMAGE,
    PUSH_TEXT,
    Channel,
    ChannelSet,
    await_handoff,
    ensure_distinct,
)
from .client import BridgeClient, PendingRequest
from .contexts import ContentBridge, PageContext, RelayClient, RelayContext
from .responder import BridgeResponder

__all__ = [
    "MessageBus",
    "HANDOFF_ATTRIBUTE",
    "PUSH_DOCUMENT",
    "PUSH_IMAGE",
    "PUSH_TEXT",
    "Channel",
    "ChannelSet",
    "await_handoff",
    "ensure_distinct",
    "BridgeClient",
    "PendingRequest",
    "ContentBridge",
    "PageContext",
    "RelayClient",
    "RelayContext",
    "BridgeResponder",
]
