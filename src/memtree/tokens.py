"""Token-size estimate used for index bookkeeping."""

from __future__ import annotations

CHARS_PER_TOKEN = 4


def estimate_tokens(content: str) -> int:
    """Rough, deterministic token count: one token per four characters.

    Blank content is 0; any other content is at least 1.
    """
    stripped = content.strip()
    if not stripped:
        return 0
    return max(1, len(stripped) // CHARS_PER_TOKEN)
