"""Environment detection.

Notebook detection runs first: several judges (CoderPad, Kaggle) embed
Jupyter, and a notebook surface must get cell extraction.
"""

from typing import Optional

from bs4 import BeautifulSoup

from .base import EnvironmentId
from .surface import PageSurface

LAB_MARKERS = (".jp-Notebook", ".jp-Cell")
CLASSIC_MARKERS = ("#notebook-container",)

# Checked in order, first substring match wins
HOST_PATTERNS: list[tuple[tuple[str, ...], EnvironmentId]] = [
    (("leetcode.com",), EnvironmentId.LEETCODE),
    (("hackerrank.com",), EnvironmentId.HACKERRANK),
    (("codeforces.com", "codeforces.ml", "codeforces.es"), EnvironmentId.CODEFORCES),
    (("codechef.com",), EnvironmentId.CODECHEF),
    (("codility.com",), EnvironmentId.CODILITY),
    (("coderpad.io", "cdpad.io"), EnvironmentId.CODERPAD),
    (("atcoder.jp",), EnvironmentId.ATCODER),
    (("cses.fi",), EnvironmentId.CSES),
    (("kattis.com",), EnvironmentId.KATTIS),
    (("spoj.com",), EnvironmentId.SPOJ),
]


def has_notebook_markers(soup: BeautifulSoup) -> bool:
    """DOM-only notebook check, usable from a context without page globals."""
    return any(soup.select_one(sel) is not None for sel in LAB_MARKERS + CLASSIC_MARKERS)


def notebook_flavor(surface: PageSurface, soup: Optional[BeautifulSoup] = None) -> Optional[EnvironmentId]:
    soup = soup if soup is not None else surface.soup()
    if any(soup.select_one(sel) is not None for sel in LAB_MARKERS):
        return EnvironmentId.JUPYTER_LAB
    if surface.notebook is not None:
        return EnvironmentId.JUPYTER_CLASSIC
    if any(soup.select_one(sel) is not None for sel in CLASSIC_MARKERS):
        return EnvironmentId.JUPYTER_CLASSIC
    return None


def identify_environment(surface: PageSurface) -> EnvironmentId:
    """Pure function of the surface: notebook flavor, else site by hostname."""
    flavor = notebook_flavor(surface)
    if flavor is not None:
        return flavor

    host = surface.hostname
    for needles, environment in HOST_PATTERNS:
        if any(needle in host for needle in needles):
            return environment
    return EnvironmentId.GENERIC
