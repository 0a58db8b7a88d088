"""Bridge client — correlated request/response over a broadcast medium.

Protocol for one request:
  1. allocate the next id, store it as the single pending request, start a timer
  2. broadcast ``{t: request_tag, i: id, d: data}``
  3. accept only ``{t: response_tag, i: id}`` matching the pending request
  4. on match: cancel the timer, resolve with ``d``, clear the slot
     on timer: resolve with None, clear the slot; late answers are dropped

Only one request is tracked at a time. Starting a new one stops tracking
the old one; the old caller still gets None from its own timer.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from .bus import Message, MessageBus
from .channels import Channel, ensure_distinct

logger = logging.getLogger("serpent.bridge")


@dataclass
class PendingRequest:
    id: int
    response_tag: str
    future: asyncio.Future
    timer: asyncio.TimerHandle


class BridgeClient:
    """Requesting end of a bridge. Serves any number of channels, one request at a time."""

    def __init__(self, bus: MessageBus, channels: tuple[Channel, ...] = (), name: str = "bridge") -> None:
        ensure_distinct(*channels)
        self.bus = bus
        self.name = name
        self._last_id = 0
        self._pending: Optional[PendingRequest] = None
        self._unsubscribe: dict[str, Callable[[], None]] = {}
        for channel in channels:
            self._listen(channel.response_tag)

    @property
    def pending(self) -> Optional[PendingRequest]:
        return self._pending

    def _listen(self, response_tag: str) -> None:
        if response_tag not in self._unsubscribe:
            self._unsubscribe[response_tag] = self.bus.subscribe(response_tag, self._on_response)

    async def request(self, channel: Channel, timeout: float, data: Any = None) -> Any:
        """Send one request and wait for its answer. Returns None on timeout."""
        loop = asyncio.get_running_loop()
        self._listen(channel.response_tag)

        self._last_id += 1
        request_id = self._last_id
        future = loop.create_future()
        timer = loop.call_later(timeout, self._expire, request_id, future)

        if self._pending is not None:
            logger.debug(f"{self.name}: request {request_id} supersedes {self._pending.id}")
        self._pending = PendingRequest(request_id, channel.response_tag, future, timer)
        try:
            self.bus.publish(channel.request_tag, request_id, data)
            return await future
        finally:
            timer.cancel()
            if self._pending is not None and self._pending.id == request_id:
                self._pending = None

    def _on_response(self, message: Message) -> None:
        pending = self._pending
        if pending is None:
            return
        if message.get("t") != pending.response_tag or message.get("i") != pending.id:
            logger.debug(f"{self.name}: ignoring response {message.get('i')} (pending {pending.id})")
            return
        pending.timer.cancel()
        self._pending = None
        if not pending.future.done():
            pending.future.set_result(message.get("d"))

    def _expire(self, request_id: int, future: asyncio.Future) -> None:
        if self._pending is not None and self._pending.id == request_id:
            self._pending = None
        if not future.done():
            logger.debug(f"{self.name}: request {request_id} timed out")
            future.set_result(None)

    def close(self) -> None:
        for unsubscribe in self._unsubscribe.values():
            unsubscribe()
        self._unsubscribe.clear()
        if self._pending is not None:
            self._pending.timer.cancel()
            if not self._pending.future.done():
                self._pending.future.set_result(None)
            self._pending = None
