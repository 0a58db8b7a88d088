"""Default extractor registry builder."""

from typing import Optional

import httpx

from .base import BundleKind, EnvironmentId, ExtractorRegistry
from .notebook import ClassicNotebookExtractor, JupyterLabExtractor
from .problems import (
    REMOTE_TIMEOUT,
    AtCoderExtractor,
    CodeChefExtractor,
    CodeforcesExtractor,
    CoderPadExtractor,
    CodilityExtractor,
    GenericProblemExtractor,
    HackerRankExtractor,
    LeetCodeExtractor,
)


def build_registry(
    remote_timeout: float = REMOTE_TIMEOUT,
    client: Optional[httpx.AsyncClient] = None,
) -> ExtractorRegistry:
    """Build a registry with every bundled extractor.

    Sites without a dedicated extractor (CSES, Kattis, SPOJ, unknown hosts)
    resolve to the generic problem extractor.
    """
    registry = ExtractorRegistry()
    registry.register(EnvironmentId.JUPYTER_LAB, JupyterLabExtractor())
    registry.register(EnvironmentId.JUPYTER_CLASSIC, ClassicNotebookExtractor())
    registry.register(EnvironmentId.LEETCODE, LeetCodeExtractor(timeout=remote_timeout, client=client))
    registry.register(EnvironmentId.HACKERRANK, HackerRankExtractor())
    registry.register(EnvironmentId.CODEFORCES, CodeforcesExtractor())
    registry.register(EnvironmentId.CODECHEF, CodeChefExtractor())
    registry.register(EnvironmentId.CODILITY, CodilityExtractor())
    registry.register(EnvironmentId.CODERPAD, CoderPadExtractor())
    registry.register(EnvironmentId.ATCODER, AtCoderExtractor())
    registry.set_fallback(BundleKind.PROBLEM, GenericProblemExtractor())
    return registry
