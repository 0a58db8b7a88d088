"""Broadcast medium between two adjacent contexts, backed by blinker signals.

Behaves like a page's ``postMessage``: publishing returns at once, every
subscriber on the medium sees every message (the publisher's own
context included), and nothing acknowledges delivery.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Optional, Union

from blinker import Signal

logger = logging.getLogger("serpent.bridge.bus")

Message = dict[str, Any]
Handler = Callable[[Message], Union[None, Awaitable[None]]]


def clone_message(message: Message) -> Message:
    """Structured clone: messages are plain JSON, never shared objects."""
    return json.loads(json.dumps(message))


class MessageBus:
    """One-way broadcast medium with ``publish(tag, ...)`` / ``subscribe(tag, ...)``."""

    def __init__(self, name: str = "bus") -> None:
        self.name = name
        self._signal = Signal(f"serpent.{name}")
        self._inflight: set[asyncio.Task] = set()

    def publish(self, tag: str, id: Optional[int] = None, data: Any = None) -> None:
        """Broadcast ``{"t": tag, "i": id, "d": data}``. Delivery is asynchronous."""
        message = clone_message({"t": tag, "i": id, "d": data})
        task = asyncio.get_running_loop().create_task(self._signal.send_async(self, message=message))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    def subscribe(self, tag: str, handler: Handler) -> Callable[[], None]:
        """Call ``handler`` for every message carrying ``tag``. Returns an unsubscribe callable."""

        async def _receiver(sender: Any, *, message: Message) -> None:
            if message.get("t") != tag:
                return
            await self._invoke(handler, clone_message(message))

        self._signal.connect(_receiver, weak=False)
        return lambda: self._signal.disconnect(_receiver)

    async def drain(self) -> None:
        """Wait until every published message has reached its subscribers."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    async def _invoke(self, handler: Handler, message: Message) -> None:
        try:
            result = handler(message)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception(f"{self.name}: subscriber failed on tag {message.get('t')!r}")
