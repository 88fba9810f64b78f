"""Word counting for length-limited free-text answers."""

import re

_WHITESPACE = re.compile(r"\s+")


def count_words(text: str) -> int:
    """Count whitespace-separated tokens in ``text``.

    Leading and trailing whitespace is ignored. Empty or whitespace-only
    text has zero words.

    Examples:
        >>> count_words("  hello   flux  ")
        2
        >>> count_words("   ")
        0
    """
    stripped = text.strip()
    if not stripped:
        return 0
    return len(_WHITESPACE.split(stripped))


__all__ = ["count_words"]
