"""Shared text utility functions for the content gateway.

Provides common text processing functions used by the normalizer and the
content pipeline.
"""

import re

_OPENING_FENCE = re.compile(r"^```[A-Za-z0-9_-]*[ \t]*\n?")
_CLOSING_FENCE = re.compile(r"\n?```\s*$")


def strip_markdown_code_blocks(text: str) -> str:
    """Strip markdown code fences from text.

    LLMs often wrap JSON responses in markdown code blocks like:
    ```json
    {...}
    ```

    The opening fence is removed even when the closing fence is missing,
    because token-limited replies are frequently cut off before it.

    Args:
        text: Raw text that may be wrapped in a code fence

    Returns:
        Text with the fence markers stripped, or the stripped original text
    """
    if not text:
        return text

    cleaned = text.strip()
    if not cleaned.startswith("```"):
        return cleaned

    cleaned = _OPENING_FENCE.sub("", cleaned, count=1)
    cleaned = _CLOSING_FENCE.sub("", cleaned, count=1)
    return cleaned.strip()


def count_words(text: str) -> int:
    """Count whitespace-separated words."""
    return len([w for w in text.split() if w])


def estimate_words_per_minute(transcript: str) -> int:
    """Rough speaking rate for a transcript without audio timing.

    Assumes about two words per second, with a floor of ten seconds of speech.
    """
    words = count_words(transcript)
    if words == 0:
        return 0
    estimated_seconds = max(10.0, words / 2)
    return int(round(words / estimated_seconds * 60))
