"""Text matching helpers."""

from __future__ import annotations


def contains_casefold(haystack: str | None, needle: str) -> bool:
    """Case-insensitive substring test; an empty needle matches any string."""
    if haystack is None:
        return not needle
    return needle.casefold() in haystack.casefold()


def matches_any(needle: str, *fields: str | None) -> bool:
    return any(contains_casefold(field, needle) for field in fields)
