"""The page surface — ambient state an extractor reads from.

A surface bundles what the page-native context can see: the rendered
HTML, page globals (such as a live notebook object or CoderPad's
``padConfig``), the document currently open, and the document-element
attributes that double as a handoff slot between contexts.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlparse

import httpx
from bs4 import BeautifulSoup

logger = logging.getLogger("serpent.extractors.surface")

FETCH_TIMEOUT = 15.0


@dataclass
class NotebookSession:
    """A live notebook: its cells (``.ipynb`` structure) and the selected one."""

    cells: list[dict] = field(default_factory=list)
    selected_index: Optional[int] = None

    def selected_cell(self) -> Optional[dict]:
        if self.selected_index is None:
            return None
        if not 0 <= self.selected_index < len(self.cells):
            return None
        return self.cells[self.selected_index]

    @classmethod
    def from_ipynb(cls, path: str | Path, selected_index: Optional[int] = 0) -> NotebookSession:
        """Load a notebook file. Raises ValueError when it is not notebook JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValueError(f"Not a notebook file: {path}") from e
        cells = data.get("cells") if isinstance(data, dict) else None
        if not isinstance(cells, list):
            raise ValueError(f"Not a notebook file: {path}")
        return cls(cells=cells, selected_index=selected_index)


@dataclass
class OpenDocument:
    """The document currently open in the host."""

    filename: str
    content: str

    @classmethod
    def from_path(cls, path: str | Path) -> OpenDocument:
        path = Path(path)
        return cls(filename=path.name, content=path.read_text(encoding="utf-8", errors="replace"))


@dataclass
class PageSurface:
    url: str = ""
    html: str = ""
    notebook: Optional[NotebookSession] = None
    globals: dict[str, Any] = field(default_factory=dict)
    document: Optional[OpenDocument] = None
    attributes: dict[str, str] = field(default_factory=dict)

    @property
    def hostname(self) -> str:
        return urlparse(self.url).hostname or ""

    @property
    def path(self) -> str:
        return urlparse(self.url).path or "/"

    @property
    def origin(self) -> str:
        parsed = urlparse(self.url)
        if not parsed.scheme or not parsed.netloc:
            return ""
        return f"{parsed.scheme}://{parsed.netloc}"

    def soup(self) -> BeautifulSoup:
        """Parse the page HTML. Parsed fresh on every call."""
        return BeautifulSoup(self.html or "", "lxml")

    @classmethod
    async def fetch(cls, url: str, client: Optional[httpx.AsyncClient] = None) -> PageSurface:
        """Load a page over HTTP. Raises httpx errors on failure."""
        if not url.startswith(("http://", "https://")):
            raise ValueError("URL must start with http:// or https://")

        async def _get(c: httpx.AsyncClient) -> httpx.Response:
            resp = await c.get(url, follow_redirects=True)
            resp.raise_for_status()
            return resp

        if client is not None:
            response = await _get(client)
        else:
            async with httpx.AsyncClient(timeout=FETCH_TIMEOUT) as c:
                response = await _get(c)

        logger.info(f"Fetched {url} ({len(response.text)} chars)")
        return cls(url=str(response.url), html=response.text)
