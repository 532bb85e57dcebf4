"""Concurrency and security stamp generation."""

from typing import Any
from uuid import uuid4


def new_stamp() -> str:
    """Return a fresh random stamp."""
    return str(uuid4())


def next_concurrency_stamp(_current: Any) -> str:
    """Version generator for ``version_id_col`` mapper arguments."""
    return new_stamp()
