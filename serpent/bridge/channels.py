"""Channels — request/response tag pairs routed over a broadcast medium.

Page-facing channels use per-session random tags so that an unrelated
listener on the same page can neither guess nor spoof them. Relay
channels sit on a private medium and use fixed tags.
"""

from __future__ import annotations

import asyncio
import json
import logging
import secrets
import string
from collections.abc import MutableMapping
from dataclasses import dataclass
from typing import Optional

from ..errors import ChannelCollisionError

logger = logging.getLogger("serpent.bridge.channels")

# Document-element attribute the page context writes its channel set into
HANDOFF_ATTRIBUTE = "data-_q"

_TAG_ALPHABET = string.ascii_lowercase + string.digits


@dataclass(frozen=True)
class Channel:
    request_tag: str
    response_tag: str

    @property
    def tags(self) -> tuple[str, str]:
        return (self.request_tag, self.response_tag)


def random_tag() -> str:
    return "_" + "".join(secrets.choice(_TAG_ALPHABET) for _ in range(8))


def ensure_distinct(*channels: Channel) -> None:
    """Raise ChannelCollisionError if any two tags across ``channels`` are equal."""
    seen: set[str] = set()
    for channel in channels:
        for tag in channel.tags:
            if not tag:
                raise ChannelCollisionError("Channel tags must be non-empty")
            if tag in seen:
                raise ChannelCollisionError(f"Tag {tag!r} is used twice")
            seen.add(tag)


@dataclass(frozen=True)
class ChannelSet:
    """The per-session page channels: cell content and problem statement."""

    cell: Channel
    problem: Channel

    def __post_init__(self) -> None:
        ensure_distinct(self.cell, self.problem)

    @classmethod
    def generate(cls) -> ChannelSet:
        tags: list[str] = []
        while len(tags) < 4:
            tag = random_tag()
            if tag not in tags:
                tags.append(tag)
        return cls(cell=Channel(tags[0], tags[1]), problem=Channel(tags[2], tags[3]))

    def to_handoff(self) -> str:
        return json.dumps({
            "a": self.cell.request_tag,
            "b": self.cell.response_tag,
            "c": self.problem.request_tag,
            "d": self.problem.response_tag,
        })

    @classmethod
    def from_handoff(cls, raw: str) -> Optional[ChannelSet]:
        """Parse a handoff string. Returns None when it is malformed."""
        try:
            data = json.loads(raw)
            return cls(cell=Channel(data["a"], data["b"]), problem=Channel(data["c"], data["d"]))
        except (ValueError, KeyError, TypeError, ChannelCollisionError) as e:
            logger.warning(f"Ignoring malformed channel handoff: {e!r}")
            return None


# Fixed relay channels (bridge ↔ relay medium)
PUSH_TEXT = Channel("ext:pushText", "ext:pushText:result")
PUSH_IMAGE = Channel("ext:pushImage", "ext:pushImage:result")
PUSH_DOCUMENT = Channel("ext:pushDoc", "ext:pushDoc:result")
RELAY_CHANNELS = (PUSH_TEXT, PUSH_IMAGE, PUSH_DOCUMENT)

ensure_distinct(*RELAY_CHANNELS)


def publish_handoff(attributes: MutableMapping[str, str], channels: ChannelSet) -> None:
    attributes[HANDOFF_ATTRIBUTE] = channels.to_handoff()


def take_handoff(attributes: MutableMapping[str, str]) -> Optional[ChannelSet]:
    """Read and remove the handoff attribute, if present."""
    raw = attributes.pop(HANDOFF_ATTRIBUTE, None)
    if raw is None:
        return None
    return ChannelSet.from_handoff(raw)


async def await_handoff(
    attributes: MutableMapping[str, str],
    retries: int = 50,
    interval: float = 0.1,
) -> Optional[ChannelSet]:
    """Poll for the page's handoff. Gives up silently with None.

    The page context may start after the bridge context, hence the polling.
    """
    for _ in range(retries + 1):
        channels = take_handoff(attributes)
        if channels is not None:
            return channels
        await asyncio.sleep(interval)
    logger.info("Channel handoff never arrived; commands will report not ready")
    return None
