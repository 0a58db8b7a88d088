"""Outbound relay — formatting, chunking and delivery to the Telegram Bot API."""

from .outbound import (
    CAPTION_LIMIT,
    MESSAGE_LIMIT,
    escape_html,
    format_cell_message,
    format_output_message,
    format_problem_message,
    split_message,
)
from .telegram import MessageKind, OutboundMessage, TelegramRelay

__all__ = [
    "CAPTION_LIMIT",
    "MESSAGE_LIMIT",
    "escape_html",
    "format_cell_message",
    "format_output_message",
    "format_problem_message",
    "split_message",
    "MessageKind",
    "OutboundMessage",
    "TelegramRelay",
]
