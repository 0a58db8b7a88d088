"""Serpent CLI — host commands over one page session."""

import click
from serpent import __version__
from .shared import console


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="serpent")
@click.pass_context
def cli(ctx):
    """Serpent — relay notebook cells and problem statements to Telegram"""
    if ctx.invoked_subcommand is None:
        _show_help()


def _show_help():
    """Show all available commands grouped by category."""
    console.print(f"[bold]Serpent v{__version__}[/bold] — relay notebook cells and problem statements to Telegram\n")

    groups = {
        "Send": [
            ("send", "Send the selected cell (code, output, images) or the problem statement"),
            ("send-output", "Send only the selected cell's output"),
            ("send-file", "Send a file as a document"),
        ],
        "Local": [
            ("copy", "Copy the cell's code or the problem statement (--with-output, --output-only)"),
        ],
        "Setup": [
            ("check", "Check configuration and the bot token"),
        ],
    }

    for category, commands in groups.items():
        console.print(f"  [bold cyan]{category}[/bold cyan]")
        for name, desc in commands:
            console.print(f"    [bold]serpent {name:12s}[/bold] {desc}")
        console.print()

    console.print("[dim]Run 'serpent <command> --help' for details on a specific command.[/dim]")


# Import all command modules (registers commands onto cli group)
from . import cmd_send  # noqa: E402, F401
from . import cmd_check  # noqa: E402, F401


@cli.command(name="help", hidden=True)
def help_cmd():
    """Show all available commands."""
    _show_help()


def main():
    cli()
