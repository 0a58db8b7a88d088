"""Shared utilities for Serpent CLI commands."""

import asyncio
import base64
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console

from serpent.config import SerpentSettings, configure_logging, load_settings
from serpent.dispatcher import Command, CommandResult, Outcome
from serpent.extractors.surface import NotebookSession, OpenDocument, PageSurface
from serpent.session import Session

console = Console()

# What a classic Notebook page shows the DOM; the cells come from the notebook model
CLASSIC_NOTEBOOK_SHELL = '<html><body><div id="notebook-container"></div></body></html>'


class TerminalClipboard:
    """Clipboard write through the terminal's OSC 52 escape sequence."""

    def __init__(self, stream=None):
        self._stream = stream or sys.stdout

    async def write(self, text: str) -> None:
        encoded = base64.b64encode(text.encode("utf-8")).decode("ascii")
        self._stream.write(f"\x1b]52;c;{encoded}\x07")
        self._stream.flush()


def _print_status(result: CommandResult) -> None:
    if result.outcome is Outcome.FAILED:
        console.print(f"[red]✗ {result.status}[/red]")
    elif result.outcome in (Outcome.SENT, Outcome.COPIED):
        console.print(f"[green]✓ {result.status}[/green]")
    else:
        console.print(f"[yellow]• {result.status}[/yellow]")


async def build_surface(target: str, cell: Optional[int] = 0, url: Optional[str] = None) -> PageSurface:
    """Turn a CLI target into a page surface.

    - ``*.ipynb``       notebook file, ``cell`` selects the cell
    - ``http(s)://...`` fetched page
    - anything else     saved HTML file; ``url`` gives it a site identity
    """
    if target.startswith(("http://", "https://")):
        return await PageSurface.fetch(target)

    path = Path(target)
    if path.suffix == ".ipynb":
        notebook = NotebookSession.from_ipynb(path, selected_index=cell)
        return PageSurface(
            url=path.resolve().as_uri(),
            html=CLASSIC_NOTEBOOK_SHELL,
            notebook=notebook,
            document=OpenDocument.from_path(path),
        )

    html = path.read_text(encoding="utf-8", errors="replace")
    return PageSurface(url=url or path.resolve().as_uri(), html=html)


def run_command(
    command: Command,
    surface: PageSurface,
    settings: Optional[SerpentSettings] = None,
    clipboard=None,
) -> CommandResult:
    """Run one command in a fresh session and print its status."""
    settings = settings or load_settings()
    configure_logging(settings.debug)

    async def _run() -> CommandResult:
        async with Session(surface, settings, clipboard=clipboard, on_status=_print_status) as session:
            return await session.invoke(command)

    return asyncio.run(_run())


def load_surface(target: str, cell: Optional[int] = 0, url: Optional[str] = None) -> PageSurface:
    return asyncio.run(build_surface(target, cell=cell, url=url))
