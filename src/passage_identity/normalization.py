"""Lookup key normalization for user names, emails and role names."""

from typing import Optional


def normalize_lookup_key(value: Optional[str]) -> Optional[str]:
    """Normalize a name or email for case-insensitive lookups.

    Keys are stripped and upper-cased; ``None`` stays ``None``.
    """
    if value is None:
        return None
    return value.strip().upper()
