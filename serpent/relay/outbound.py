"""Outbound text processing — splitting and Telegram HTML assembly.

Telegram supports a limited HTML subset. Everything derived from the
user's page is escaped before it is wrapped in <b>/<pre> markup, so a
cell that prints "<script>" can never break the message structure.
"""

import html as _html
from typing import Optional

from ..extractors.base import ContentBundle, ProblemBundle

# Telegram Bot API limits
MESSAGE_LIMIT = 4096
CAPTION_LIMIT = 1024


# ============================================================
# MESSAGE SPLITTING
# ============================================================

def split_message(text: str, limit: int = MESSAGE_LIMIT) -> list[str]:
    """Split a long message into chunks no longer than ``limit``.

    Each chunk ends just after the last line break that fits, as long as
    that keeps the chunk at least half full. Otherwise the chunk is cut
    at exactly ``limit`` characters, which bounds the chunk count for
    text without line breaks.

    Joining the chunks in order gives back ``text`` exactly.

    Args:
        text: Message text to split
        limit: Maximum length per chunk (default: 4096 for Telegram)

    Returns:
        List of message chunks (a single chunk when ``text`` fits)
    """
    if limit < 1:
        raise ValueError("limit must be positive")
    if len(text) <= limit:
        return [text]

    chunks = []
    remaining = text

    while len(remaining) > limit:
        split_at = remaining.rfind("\n", 0, limit) + 1
        if split_at < limit * 0.5:
            split_at = limit
        chunks.append(remaining[:split_at])
        remaining = remaining[split_at:]

    if remaining:
        chunks.append(remaining)
    return chunks


def expected_chunks(text: str, limit: int = MESSAGE_LIMIT) -> int:
    """Upper bound on the number of requests ``text`` will need."""
    return max(1, -(-len(text) // max(1, limit // 2)))


# ============================================================
# ESCAPING & FORMATTING
# ============================================================

def escape_html(text: str) -> str:
    """Escape the three characters Telegram HTML treats as markup."""
    return _html.escape(text, quote=False)


def truncate_caption(caption: str, limit: int = CAPTION_LIMIT) -> str:
    """Cut a caption to the endpoint's caption limit."""
    return caption[:limit]


def joined_output(bundle: ContentBundle) -> str:
    return "\n".join(bundle.outputs).strip()


def format_cell_message(bundle: ContentBundle) -> str:
    """Code block, followed by an output block when the cell has text output."""
    message = f"<b>Code</b>\n<pre>{escape_html(bundle.code)}</pre>"
    output = joined_output(bundle)
    if output:
        message += f"\n\n<b>Output</b>\n<pre>{escape_html(output)}</pre>"
    return message


def format_output_message(bundle: ContentBundle) -> Optional[str]:
    """Output block only, or None when the cell printed nothing."""
    output = joined_output(bundle)
    if not output:
        return None
    return f"<pre>{escape_html(output)}</pre>"


def format_problem_message(problem: ProblemBundle) -> str:
    return f"<pre>{escape_html(problem.body)}</pre>"
