"""Bridge responder — the answering end of a channel."""

import inspect
import logging
from typing import Any, Awaitable, Callable, Union

from .bus import Message, MessageBus
from .channels import Channel, ensure_distinct

logger = logging.getLogger("serpent.bridge")

RequestHandler = Callable[[Any], Union[Any, Awaitable[Any]]]


class BridgeResponder:
    """Answers every request on a served channel, echoing the request id."""

    def __init__(self, bus: MessageBus, name: str = "responder") -> None:
        self.bus = bus
        self.name = name
        self._served: list[Channel] = []
        self._unsubscribe: list[Callable[[], None]] = []

    def serve(self, channel: Channel, handler: RequestHandler) -> None:
        ensure_distinct(*self._served, channel)
        self._served.append(channel)

        async def _on_request(message: Message) -> None:
            try:
                data = handler(message.get("d"))
                if inspect.isawaitable(data):
                    data = await data
            except Exception:
                logger.exception(f"{self.name}: handler for {channel.request_tag!r} failed")
                data = None
            self.bus.publish(channel.response_tag, message.get("i"), data)

        self._unsubscribe.append(self.bus.subscribe(channel.request_tag, _on_request))

    def close(self) -> None:
        for unsubscribe in self._unsubscribe:
            unsubscribe()
        self._unsubscribe.clear()
        self._served.clear()
