"""Bundles, environment ids, and the extractor registry."""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Optional, Protocol, Union, runtime_checkable

if TYPE_CHECKING:
    from .surface import PageSurface

logger = logging.getLogger("serpent.extractors")

# A fallback that starts after the primary used up the deadline still gets this long
FALLBACK_MIN_BUDGET = 0.5


@dataclass
class ContentBundle:
    """A notebook cell: source, ordered text outputs, base64 images."""

    code: str
    outputs: list[str] = field(default_factory=list)
    images: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional[ContentBundle]:
        if not isinstance(data, dict):
            return None
        return cls(
            code=str(data.get("code") or ""),
            outputs=[str(o) for o in data.get("outputs") or []],
            images=[str(i) for i in data.get("images") or []],
        )

    @property
    def has_output(self) -> bool:
        return bool("\n".join(self.outputs).strip() or self.images)


@dataclass
class ProblemBundle:
    """A scraped problem statement."""

    title: str
    body: str

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional[ProblemBundle]:
        if not isinstance(data, dict):
            return None
        return cls(title=str(data.get("title") or ""), body=str(data.get("body") or ""))


Bundle = Union[ContentBundle, ProblemBundle]


class BundleKind(str, Enum):
    CONTENT = "content"
    PROBLEM = "problem"


class EnvironmentId(str, Enum):
    """Identity of the surface the user is looking at."""

    JUPYTER_LAB = "jupyter-lab"
    JUPYTER_CLASSIC = "jupyter-classic"
    LEETCODE = "leetcode"
    HACKERRANK = "hackerrank"
    CODEFORCES = "codeforces"
    CODECHEF = "codechef"
    CODILITY = "codility"
    CODERPAD = "coderpad"
    ATCODER = "atcoder"
    CSES = "cses"
    KATTIS = "kattis"
    SPOJ = "spoj"
    GENERIC = "generic"

    @property
    def is_notebook(self) -> bool:
        return self in (EnvironmentId.JUPYTER_LAB, EnvironmentId.JUPYTER_CLASSIC)

    @property
    def bundle_kind(self) -> BundleKind:
        return BundleKind.CONTENT if self.is_notebook else BundleKind.PROBLEM


@runtime_checkable
class Extractor(Protocol):
    """Produces a bundle from the page surface, or None when there is nothing.

    ``extract`` may be sync or async. It is allowed to raise; the registry
    turns every failure into a fallback or a None.
    """

    name: str

    def extract(self, surface: PageSurface): ...


class ExtractorRegistry:
    """Extractors keyed by environment, with one generic fallback per bundle kind."""

    def __init__(self) -> None:
        self._extractors: dict[EnvironmentId, Extractor] = {}
        self._fallbacks: dict[BundleKind, Extractor] = {}

    def register(self, environment: EnvironmentId, extractor: Extractor) -> None:
        self._extractors[environment] = extractor

    def set_fallback(self, kind: BundleKind, extractor: Extractor) -> None:
        self._fallbacks[kind] = extractor

    def get(self, environment: EnvironmentId) -> Optional[Extractor]:
        """Extractor for ``environment``, else the fallback for its bundle kind."""
        return self._extractors.get(environment) or self._fallbacks.get(environment.bundle_kind)

    @property
    def environments(self) -> list[EnvironmentId]:
        return list(self._extractors)

    async def extract(
        self,
        environment: EnvironmentId,
        surface: PageSurface,
        timeout: float,
    ) -> Optional[Bundle]:
        """Run the extractor for ``environment`` within ``timeout`` seconds.

        Any failure (exception or deadline) falls back immediately to the
        generic extractor of the same bundle kind. Never raises; all
        failure is expressed as None.
        """
        extractor = self.get(environment)
        if extractor is None:
            logger.debug(f"No extractor for {environment.value}")
            return None

        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        try:
            return await asyncio.wait_for(_run(extractor, surface), timeout)
        except Exception as e:
            logger.warning(f"Extractor {extractor.name} failed on {environment.value}: {e!r}")

        fallback = self._fallbacks.get(environment.bundle_kind)
        if fallback is None or fallback is extractor:
            return None
        remaining = max(FALLBACK_MIN_BUDGET, deadline - loop.time())
        try:
            return await asyncio.wait_for(_run(fallback, surface), remaining)
        except Exception as e:
            logger.warning(f"Fallback extractor {fallback.name} failed: {e!r}")
            return None


async def _run(extractor: Extractor, surface: PageSurface) -> Optional[Bundle]:
    result = extractor.extract(surface)
    if inspect.isawaitable(result):
        result = await result
    return result
