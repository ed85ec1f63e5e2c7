"""Channel utility helpers."""

from __future__ import annotations

from collections.abc import Callable

TELEGRAM_MESSAGE_LIMIT = 4096


def split_message(
    text: str,
    limit: int = TELEGRAM_MESSAGE_LIMIT,
    *,
    measure: Callable[[str], int] = len,
) -> list[str]:
    """Split text into chunks whose measured size is at most `limit`.

    Each cut happens at the last whitespace character at or before the limit,
    and that character is dropped. Without whitespace the text is hard cut at
    the limit.

    `measure` is the size the transport sees, for example the length of the
    rendered markup. A chunk that measures too long is cut shorter until it fits.
    """
    if limit <= 0:
        raise ValueError("limit must be positive")

    chunks: list[str] = []
    rest = text
    while measure(rest) > limit:
        head, rest = _take_chunk(rest, limit, measure)
        chunks.append(head)
    chunks.append(rest)
    return chunks


def _take_chunk(text: str, limit: int, measure: Callable[[str], int]) -> tuple[str, str]:
    size = min(limit, len(text))
    while True:
        cut = _last_whitespace(text, size)
        if cut > 0:
            head, tail = text[:cut], text[cut + 1 :]
        else:
            head, tail = text[:size], text[size:]
        length = measure(head)
        if length <= limit or len(head) <= 1:
            return head, tail
        # Shrink in proportion to the overshoot, by at least one character.
        size = max(1, min(len(head) - 1, len(head) * limit // length))


def _last_whitespace(text: str, limit: int) -> int:
    for index in range(min(limit, len(text) - 1), -1, -1):
        if text[index].isspace():
            return index
    return -1
