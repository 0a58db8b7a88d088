"""Telegram relay — deliver text, images and documents through the Bot API.

One call to ``deliver`` maps to one or more HTTP POSTs:
  text      → sendMessage (JSON), split into chunks sent strictly in order
  image     → sendPhoto (multipart), never chunked
  document  → sendDocument (multipart), never chunked

Every POST has a whole-call deadline. Nothing is retried; the first
failure ends the call and is reported to the caller.
"""

import asyncio
import base64
import binascii
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import httpx

from ..errors import (
    ConfigurationMissing,
    EndpointRejected,
    InvalidPayload,
    RelayTimeout,
    TransportFailure,
)
from .outbound import CAPTION_LIMIT, MESSAGE_LIMIT, escape_html, split_message, truncate_caption

logger = logging.getLogger("serpent.relay")

DEFAULT_API_BASE = "https://api.telegram.org"
REQUEST_TIMEOUT = 15.0

# Bot API upload caps
MAX_PHOTO_SIZE = 10 * 1024 * 1024
MAX_DOCUMENT_SIZE = 50 * 1024 * 1024


class MessageKind(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    DOCUMENT = "document"


@dataclass
class OutboundMessage:
    """One relay call's payload.

    ``payload`` is HTML text for TEXT, base64 PNG data for IMAGE, and the
    file's text content for DOCUMENT.
    """

    kind: MessageKind
    payload: str
    caption: Optional[str] = None
    filename: Optional[str] = None


class TelegramRelay:
    """Bot API client bound to one bot token and one chat."""

    def __init__(
        self,
        bot_token: Optional[str],
        chat_id: Optional[str],
        *,
        api_base: str = DEFAULT_API_BASE,
        request_timeout: float = REQUEST_TIMEOUT,
        message_limit: int = MESSAGE_LIMIT,
        caption_limit: int = CAPTION_LIMIT,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._bot_token = bot_token or ""
        self._chat_id = chat_id or ""
        self.api_base = api_base.rstrip("/")
        self.request_timeout = request_timeout
        self.message_limit = message_limit
        self.caption_limit = caption_limit
        self._client = client
        self._owns_client = client is None

    @classmethod
    def from_settings(cls, settings, client: Optional[httpx.AsyncClient] = None) -> "TelegramRelay":
        return cls(
            settings.bot_token,
            settings.chat_id,
            api_base=settings.api_base,
            request_timeout=settings.request_timeout,
            message_limit=settings.message_limit,
            caption_limit=settings.caption_limit,
            client=client,
        )

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
        self._client = None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient()
            self._owns_client = True
        return self._client

    def _require_config(self) -> None:
        if not self._bot_token or not self._chat_id:
            raise ConfigurationMissing("Missing configuration")

    # ── Public API ──────────────────────────────────────────

    async def deliver(self, message: OutboundMessage) -> None:
        """Send one outbound message. Raises a RelayError subclass on failure."""
        if message.kind is MessageKind.TEXT:
            await self.send_text(message.payload)
        elif message.kind is MessageKind.IMAGE:
            await self.send_image(message.payload, message.caption)
        elif message.kind is MessageKind.DOCUMENT:
            await self.send_document(message.payload, message.filename)
        else:
            raise InvalidPayload(f"Unsupported message kind: {message.kind}")

    async def send_text(self, text: str) -> int:
        """Send HTML text, chunked to the message limit. Returns the chunk count."""
        self._require_config()
        chunks = split_message(text, self.message_limit)
        for n, chunk in enumerate(chunks, start=1):
            logger.debug(f"sendMessage chunk {n}/{len(chunks)} ({len(chunk)} chars)")
            await self._call(
                "sendMessage",
                json={"chat_id": self._chat_id, "text": chunk, "parse_mode": "HTML"},
            )
        return len(chunks)

    async def send_image(self, base64_data: str, caption: Optional[str] = None) -> None:
        """Send one PNG image given as base64, with an optional caption."""
        self._require_config()
        try:
            image = base64.b64decode(base64_data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise InvalidPayload("Image is not valid base64") from e
        if not image:
            raise InvalidPayload("Image is empty")
        if len(image) > MAX_PHOTO_SIZE:
            raise InvalidPayload(f"Image too large ({len(image) / (1024 * 1024):.1f} MB)")

        data = {"chat_id": self._chat_id}
        if caption:
            data["caption"] = escape_html(truncate_caption(caption, self.caption_limit))
            data["parse_mode"] = "HTML"
        await self._call("sendPhoto", data=data, files={"photo": ("output.png", image, "image/png")})

    async def send_document(self, content: str, filename: Optional[str] = None) -> None:
        """Send text content as a file attachment."""
        self._require_config()
        raw = content.encode("utf-8")
        if len(raw) > MAX_DOCUMENT_SIZE:
            raise InvalidPayload(f"Document too large ({len(raw) / (1024 * 1024):.1f} MB)")
        await self._call(
            "sendDocument",
            data={"chat_id": self._chat_id},
            files={"document": (filename or "file.txt", raw, "text/plain")},
        )

    async def check(self) -> dict:
        """Call getMe. Returns the bot description on success."""
        if not self._bot_token:
            raise ConfigurationMissing("Missing configuration")
        body = await self._call("getMe")
        return body.get("result") or {}

    # ── Transport ───────────────────────────────────────────

    async def _call(self, method: str, **kwargs) -> dict:
        url = f"{self.api_base}/bot{self._bot_token}/{method}"
        try:
            response = await asyncio.wait_for(
                self._http().post(url, timeout=self.request_timeout, **kwargs),
                self.request_timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            logger.warning(f"{method} timed out after {self.request_timeout}s")
            raise RelayTimeout("Request timed out") from e
        except httpx.TransportError as e:
            logger.warning(f"{method} transport failure: {type(e).__name__}")
            raise TransportFailure(str(e) or type(e).__name__) from e

        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            raise EndpointRejected(f"HTTP {response.status_code}")
        if not body.get("ok"):
            description = body.get("description") or "API error"
            logger.warning(f"{method} rejected: {description}")
            raise EndpointRejected(description)

        logger.info(f"{method} ok")
        return body
