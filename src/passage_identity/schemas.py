"""Value types exchanged with the identity stores."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Claim:
    """A single type/value claim attached to a user or role."""

    type: str
    value: Optional[str] = None


@dataclass(frozen=True)
class UserLoginInfo:
    """An external login (e.g. an OAuth provider account) for a user."""

    login_provider: str
    provider_key: str
    display_name: Optional[str] = None
