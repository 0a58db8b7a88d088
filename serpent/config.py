"""Serpent configuration management."""

import logging
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings

logger = logging.getLogger("serpent.config")


class SerpentSettings(BaseSettings):
    """Settings loaded from environment variables or .env file."""

    # Telegram, provisioned per deployment
    bot_token: Optional[str] = Field(default=None, description="Telegram bot token")
    chat_id: Optional[str] = Field(default=None, description="Target chat id")
    api_base: str = Field(default="https://api.telegram.org", description="Bot API base URL")

    # Relay limits
    request_timeout: float = Field(default=15.0, description="Deadline per outbound API call (s)")
    message_limit: int = Field(default=4096, description="Max characters per text message")
    caption_limit: int = Field(default=1024, description="Max characters per media caption")

    # Bridge
    cell_timeout: float = Field(default=3.0, description="Deadline for locally available content (s)")
    problem_timeout: float = Field(default=5.0, description="Deadline for content needing a remote call (s)")
    remote_extract_timeout: float = Field(default=4.0, description="Deadline for remote-API extractors (s)")
    handoff_retries: int = Field(default=50, description="Polls for the page's channel handoff")
    handoff_interval: float = Field(default=0.1, description="Delay between handoff polls (s)")

    # Host
    clipboard_timeout: float = Field(default=2.0, description="Deadline for clipboard writes (s)")
    debug: bool = Field(default=False, description="Debug logging")

    model_config = {"env_prefix": "SERPENT_", "env_file": ".env", "extra": "ignore"}

    @property
    def has_credentials(self) -> bool:
        return bool(self.bot_token and self.chat_id)


def load_settings() -> SerpentSettings:
    """Load settings from environment."""
    settings = SerpentSettings()
    if not settings.has_credentials:
        logger.warning(
            "SERPENT_BOT_TOKEN or SERPENT_CHAT_ID is not set. "
            "Extraction works, but every send will fail with 'Missing configuration'."
        )
    return settings


def configure_logging(debug: bool = False) -> None:
    """Configure process-level logging once."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    if not debug:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)
