"""Check command."""

import asyncio
import sys

from rich.table import Table

from . import cli
from .shared import console


@cli.command()
def check():
    """Check configuration and the bot token."""
    async def _check():
        from serpent import __version__
        from serpent.config import load_settings
        from serpent.errors import SerpentError, classify_error
        from serpent.relay.telegram import TelegramRelay

        settings = load_settings()

        table = Table(title=f"Serpent v{__version__}", show_header=False, padding=(0, 2))
        table.add_column("Key", style="bold")
        table.add_column("Value")

        table.add_row("API base", settings.api_base)
        table.add_row("Bot token", "[green]set[/green]" if settings.bot_token else "[red]missing (SERPENT_BOT_TOKEN)[/red]")
        table.add_row("Chat id", "[green]set[/green]" if settings.chat_id else "[red]missing (SERPENT_CHAT_ID)[/red]")
        table.add_row("Message limit", str(settings.message_limit))
        table.add_row("Timeouts", f"cell {settings.cell_timeout}s · problem {settings.problem_timeout}s · request {settings.request_timeout}s")

        ok = settings.has_credentials
        if settings.bot_token:
            relay = TelegramRelay.from_settings(settings)
            try:
                bot = await relay.check()
                table.add_row("Bot", f"[green]@{bot.get('username', '?')} ({bot.get('first_name', '')})[/green]")
            except SerpentError as e:
                ok = False
                table.add_row("Bot", f"[red]{classify_error(e)}[/red]")
            finally:
                await relay.aclose()

        console.print(table)
        return ok

    if not asyncio.run(_check()):
        sys.exit(1)
