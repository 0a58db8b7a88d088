"""The three cooperating contexts.

  page     sees the DOM and page globals, runs extractors, no network credentials
  bridge   sees the DOM only, runs commands, talks to both neighbours
  relay    no DOM, holds the credentials and the network client

Page ↔ bridge share one broadcast medium with per-session random
channels. Bridge ↔ relay share another with fixed channels. Nothing
crosses either medium except JSON messages.
"""

import logging
from typing import Any, Optional

from ..config import SerpentSettings
from ..errors import BridgeTimeout, NoContentAvailable, SerpentError, error_from_wire, error_to_wire
from ..extractors.base import ContentBundle, ExtractorRegistry, ProblemBundle
from ..extractors.environment import has_notebook_markers, identify_environment
from ..extractors.surface import PageSurface
from ..relay.outbound import expected_chunks
from ..relay.telegram import MessageKind, OutboundMessage, TelegramRelay
from .bus import MessageBus
from .channels import (
    PUSH_DOCUMENT,
    PUSH_IMAGE,
    PUSH_TEXT,
    RELAY_CHANNELS,
    ChannelSet,
    publish_handoff,
)
from .client import BridgeClient
from .responder import BridgeResponder

logger = logging.getLogger("serpent.bridge.contexts")

# Headroom left between an extractor's deadline and the bridge timeout
EXTRACT_MARGIN = 0.5
# Extra time the bridge waits beyond the relay's own request deadlines
RELAY_SLACK = 2.0


# ============================================================
# PAGE CONTEXT
# ============================================================

class PageContext:
    """Page-native context: owns the session channels and answers extraction requests."""

    def __init__(
        self,
        surface: PageSurface,
        bus: MessageBus,
        registry: ExtractorRegistry,
        settings: SerpentSettings,
        channels: Optional[ChannelSet] = None,
    ):
        self.surface = surface
        self.registry = registry
        self.settings = settings
        self.channels = channels or ChannelSet.generate()
        self._responder = BridgeResponder(bus, name="page")

    def start(self) -> None:
        self._responder.serve(self.channels.cell, self._on_cell_request)
        self._responder.serve(self.channels.problem, self._on_problem_request)
        publish_handoff(self.surface.attributes, self.channels)

    def close(self) -> None:
        self._responder.close()

    async def _on_cell_request(self, _data: Any) -> Optional[dict]:
        environment = identify_environment(self.surface)
        if not environment.is_notebook:
            logger.debug(f"Cell requested on a {environment.value} surface")
            return None
        timeout = max(EXTRACT_MARGIN, self.settings.cell_timeout - EXTRACT_MARGIN)
        bundle = await self.registry.extract(environment, self.surface, timeout)
        return bundle.to_dict() if isinstance(bundle, ContentBundle) else None

    async def _on_problem_request(self, _data: Any) -> Optional[dict]:
        environment = identify_environment(self.surface)
        if environment.is_notebook:
            return None
        timeout = max(EXTRACT_MARGIN, self.settings.problem_timeout - EXTRACT_MARGIN)
        bundle = await self.registry.extract(environment, self.surface, timeout)
        return bundle.to_dict() if isinstance(bundle, ProblemBundle) else None


# ============================================================
# BRIDGE CONTEXT (page side)
# ============================================================

class ContentBridge:
    """The bridge context's view of the page: DOM markers and the two page channels."""

    def __init__(
        self,
        surface: PageSurface,
        bus: MessageBus,
        channels: ChannelSet,
        settings: SerpentSettings,
    ):
        self._surface = surface
        self.channels = channels
        self.settings = settings
        self._client = BridgeClient(bus, (channels.cell, channels.problem), name="page-bridge")

    def is_notebook(self) -> bool:
        """DOM-only check; page globals are out of reach from this context."""
        return has_notebook_markers(self._surface.soup())

    async def fetch_cell(self) -> Optional[ContentBundle]:
        data = await self._client.request(self.channels.cell, self.settings.cell_timeout)
        return ContentBundle.from_dict(data)

    async def fetch_problem(self) -> Optional[ProblemBundle]:
        data = await self._client.request(self.channels.problem, self.settings.problem_timeout)
        return ProblemBundle.from_dict(data)

    def close(self) -> None:
        self._client.close()


# ============================================================
# RELAY CONTEXT
# ============================================================

class RelayContext:
    """Privileged context: holds the relay and answers push requests."""

    def __init__(self, bus: MessageBus, relay: TelegramRelay):
        self.relay = relay
        self._responder = BridgeResponder(bus, name="relay")

    def start(self) -> None:
        self._responder.serve(PUSH_TEXT, self._on_push_text)
        self._responder.serve(PUSH_IMAGE, self._on_push_image)
        self._responder.serve(PUSH_DOCUMENT, self._on_push_document)

    def close(self) -> None:
        self._responder.close()

    async def _deliver(self, message: OutboundMessage) -> dict:
        try:
            await self.relay.deliver(message)
        except SerpentError as e:
            return {"ok": False, "error": error_to_wire(e)}
        except Exception as e:
            logger.exception(f"Relay failed on {message.kind.value} message")
            return {"ok": False, "error": error_to_wire(e)}
        return {"ok": True}

    async def _on_push_text(self, data: Any) -> dict:
        data = data or {}
        return await self._deliver(OutboundMessage(MessageKind.TEXT, str(data.get("text") or "")))

    async def _on_push_image(self, data: Any) -> dict:
        data = data or {}
        return await self._deliver(OutboundMessage(
            MessageKind.IMAGE, str(data.get("base64") or ""), caption=data.get("caption"),
        ))

    async def _on_push_document(self, data: Any) -> dict:
        data = data or {}
        return await self._deliver(OutboundMessage(
            MessageKind.DOCUMENT, str(data.get("content") or ""), filename=data.get("filename"),
        ))


class RelayClient:
    """Bridge-side caller of the relay channels. Raises the relay's errors locally."""

    def __init__(self, bus: MessageBus, settings: SerpentSettings):
        self.settings = settings
        self._client = BridgeClient(bus, RELAY_CHANNELS, name="relay-bridge")

    def _deadline(self, requests: int = 1) -> float:
        return self.settings.request_timeout * requests + RELAY_SLACK

    async def _push(self, channel, data: dict, requests: int = 1) -> None:
        result = await self._client.request(channel, self._deadline(requests), data)
        if result is None:
            raise BridgeTimeout("Relay did not answer")
        if not isinstance(result, dict) or not result.get("ok"):
            raise error_from_wire(result.get("error") if isinstance(result, dict) else None)

    async def push_text(self, text: str) -> None:
        if not text:
            raise NoContentAvailable("Nothing to send")
        chunks = expected_chunks(text, self.settings.message_limit)
        await self._push(PUSH_TEXT, {"text": text}, requests=chunks)

    async def push_image(self, base64_data: str, caption: Optional[str] = None) -> None:
        await self._push(PUSH_IMAGE, {"base64": base64_data, "caption": caption})

    async def push_document(self, content: str, filename: Optional[str] = None) -> None:
        await self._push(PUSH_DOCUMENT, {"content": content, "filename": filename})

    def close(self) -> None:
        self._client.close()
