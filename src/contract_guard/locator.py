"""Span locator: literal, case-sensitive substring search.

Risk texts are opaque strings, never patterns.  An empty needle is
treated as absent everywhere, so it can never locate a span.
"""

from __future__ import annotations


def index_of(haystack: str, needle: str, start: int = 0) -> int:
    """Offset of the first occurrence of needle at or after start, or -1."""
    if not needle:
        return -1
    return haystack.find(needle, start)


def find_all(haystack: str, needle: str) -> list[int]:
    """Start offsets of every non-overlapping occurrence, ascending."""
    offsets: list[int] = []
    if not needle:
        return offsets
    pos = haystack.find(needle)
    while pos != -1:
        offsets.append(pos)
        pos = haystack.find(needle, pos + len(needle))
    return offsets


def contains(haystack: str, needle: str) -> bool:
    return index_of(haystack, needle) != -1


def replace_first(haystack: str, needle: str, replacement: str) -> str:
    """Replace only the first occurrence; unchanged text if absent."""
    pos = index_of(haystack, needle)
    if pos == -1:
        return haystack
    return haystack[:pos] + replacement + haystack[pos + len(needle):]
