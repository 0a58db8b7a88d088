"""Session — the three contexts of one page, wired over in-process media."""

import logging
from typing import Optional

import httpx

from .bridge.bus import MessageBus
from .bridge.channels import await_handoff
from .bridge.contexts import ContentBridge, PageContext, RelayClient, RelayContext
from .config import SerpentSettings
from .dispatcher import Clipboard, Command, CommandDispatcher, CommandResult, StatusCallback
from .extractors.base import ExtractorRegistry
from .extractors.registry import build_registry
from .extractors.surface import OpenDocument, PageSurface
from .relay.telegram import TelegramRelay

logger = logging.getLogger("serpent.session")


class Session:
    """Builds and owns the page, bridge and relay contexts for one surface.

    Usage::

        async with Session(surface, settings) as session:
            result = await session.invoke(Command.SEND_CONTENT)
    """

    def __init__(
        self,
        surface: PageSurface,
        settings: SerpentSettings,
        *,
        relay: Optional[TelegramRelay] = None,
        registry: Optional[ExtractorRegistry] = None,
        clipboard: Optional[Clipboard] = None,
        on_status: Optional[StatusCallback] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.surface = surface
        self.settings = settings
        self.page_bus = MessageBus("page")
        self.relay_bus = MessageBus("relay")
        self.relay = relay or TelegramRelay.from_settings(settings, client=http_client)
        self.registry = registry or build_registry(settings.remote_extract_timeout, client=http_client)
        self.clipboard = clipboard
        self.on_status = on_status

        self.page: Optional[PageContext] = None
        self.relay_context: Optional[RelayContext] = None
        self.content: Optional[ContentBridge] = None
        self.relay_client: Optional[RelayClient] = None
        self.dispatcher: Optional[CommandDispatcher] = None

    def _current_document(self) -> Optional[OpenDocument]:
        return self.surface.document

    async def start(self) -> CommandDispatcher:
        self.relay_context = RelayContext(self.relay_bus, self.relay)
        self.relay_context.start()
        self.relay_client = RelayClient(self.relay_bus, self.settings)

        self.page = PageContext(self.surface, self.page_bus, self.registry, self.settings)
        self.page.start()

        channels = await await_handoff(
            self.surface.attributes,
            retries=self.settings.handoff_retries,
            interval=self.settings.handoff_interval,
        )
        if channels is not None:
            self.content = ContentBridge(self.surface, self.page_bus, channels, self.settings)

        self.dispatcher = CommandDispatcher(
            self.content,
            self.relay_client,
            clipboard=self.clipboard,
            documents=self._current_document,
            on_status=self.on_status,
            clipboard_timeout=self.settings.clipboard_timeout,
        )
        logger.debug(f"Session ready on {self.surface.url or 'local surface'}")
        return self.dispatcher

    async def invoke(self, command: Command) -> CommandResult:
        if self.dispatcher is None:
            raise RuntimeError("Session not started")
        return await self.dispatcher.invoke(command)

    async def close(self) -> None:
        for part in (self.content, self.relay_client, self.page, self.relay_context):
            if part is not None:
                part.close()
        await self.page_bus.drain()
        await self.relay_bus.drain()
        await self.relay.aclose()

    async def __aenter__(self) -> "Session":
        await self.start()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()
