"""Send, copy and send-file commands."""

import sys
from pathlib import Path

import click
import httpx

from serpent.dispatcher import Command, Outcome
from serpent.extractors.surface import OpenDocument, PageSurface

from . import cli
from .shared import TerminalClipboard, console, load_surface, run_command

_target = click.argument("target")
_cell = click.option("--cell", type=int, default=0, show_default=True, help="Cell index for .ipynb targets")
_url = click.option("--url", default=None, help="Page URL for a saved .html target (sets the site)")


def _finish(result) -> None:
    if result.outcome is Outcome.FAILED:
        sys.exit(1)


def _surface_or_exit(target: str, cell: int, url: str) -> PageSurface:
    try:
        return load_surface(target, cell=cell, url=url)
    except (OSError, ValueError, httpx.HTTPError) as e:
        console.print(f"[red]✗ Cannot open {target}: {e}[/red]")
        sys.exit(1)


@cli.command()
@_target
@_cell
@_url
def send(target, cell, url):
    """Send the selected cell, or the problem statement on a judge page."""
    _finish(run_command(Command.SEND_CONTENT, _surface_or_exit(target, cell, url)))


@cli.command(name="send-output")
@_target
@_cell
@_url
def send_output(target, cell, url):
    """Send only the selected cell's text output and images."""
    _finish(run_command(Command.SEND_OUTPUT, _surface_or_exit(target, cell, url)))


@cli.command()
@_target
@_cell
@_url
@click.option("--with-output", "variant", flag_value="with-output", help="Copy code and output (notebooks only)")
@click.option("--output-only", "variant", flag_value="output-only", help="Copy only the output (notebooks only)")
def copy(target, cell, url, variant):
    """Copy the cell's code, or the problem statement, to the clipboard."""
    command = {
        "with-output": Command.COPY_CELL,
        "output-only": Command.COPY_OUTPUT,
    }.get(variant, Command.COPY)
    surface = _surface_or_exit(target, cell, url)
    _finish(run_command(command, surface, clipboard=TerminalClipboard()))


@cli.command(name="send-file")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
def send_file(path):
    """Send a file verbatim as a document."""
    surface = PageSurface(url=Path(path).resolve().as_uri(), document=OpenDocument.from_path(path))
    _finish(run_command(Command.SEND_DOCUMENT, surface))
