"""Authentication provider protocol."""

import re
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

_BEARER_RE = re.compile(r"^Bearer\s+(.+)$", re.IGNORECASE)


@dataclass
class Actor:
    """The authenticated caller, as resolved from a bearer token."""

    id: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    claims: dict[str, Any] = field(default_factory=dict)


def extract_bearer_token(header_value: Optional[str]) -> Optional[str]:
    """Pull the token out of an ``Authorization: Bearer <token>`` value."""
    if not header_value:
        return None
    match = _BEARER_RE.match(header_value.strip())
    if not match:
        return None
    return match.group(1).strip() or None


class IAuthProvider(Protocol):
    """Protocol for identity providers."""

    async def verify_token(self, token: str) -> Optional[Actor]:
        """
        Verify a bearer token.

        Args:
            token: The bearer token to verify

        Returns:
            Actor if valid, None if invalid
        """
        ...

    def issue_session_token(
        self, actor: Actor, claims: Optional[dict[str, Any]] = None
    ) -> str:
        """
        Mint a session token for an actor.

        Args:
            actor: The actor to create a token for
            claims: Extra claims to embed

        Returns:
            The generated token string
        """
        ...
