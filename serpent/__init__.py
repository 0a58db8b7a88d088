"""Serpent — relay notebook cells and problem statements to a Telegram chat."""

__version__ = "0.3.0"
