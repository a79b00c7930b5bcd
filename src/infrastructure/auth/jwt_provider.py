"""JWT identity provider implementation.

Supports both identity-provider-issued JWTs (ES256 via JWKS) and
locally-issued session tokens (HS256 shared secret).

Expected payload structure:
    {
        "sub": "actor-id",
        "email": "player@example.com",
        "aud": "authenticated",
        "user_metadata": { "display_name": "Lucia" },
        "exp": 1234567890
    }
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Optional

import httpx
from jose import JWTError, jwt
from jose.backends import ECKey

from core.config import settings
from infrastructure.auth.provider import Actor

logger = logging.getLogger(__name__)

# Registered claims that are not copied into Actor.claims
_RESERVED_CLAIMS = {"sub", "email", "aud", "exp", "iat", "nbf", "iss", "user_metadata"}

# Module-level JWKS cache (fetched once, reused across requests)
_jwks_cache: dict[str, Any] | None = None


async def _get_jwks_keys() -> dict[str, Any]:
    """Fetch and cache JWKS keys from the identity provider."""
    global _jwks_cache
    if _jwks_cache is not None:
        return _jwks_cache

    jwks_url = settings.jwks_url
    if not jwks_url:
        return {}

    try:
        async with httpx.AsyncClient() as client:
            response = await client.get(jwks_url, timeout=10.0)
            response.raise_for_status()
            jwks_data = response.json()
            # Build a kid -> key mapping
            _jwks_cache = {}
            for key_data in jwks_data.get("keys", []):
                kid = key_data.get("kid")
                if kid:
                    _jwks_cache[kid] = key_data
            logger.info("Fetched %d JWKS keys", len(_jwks_cache))
            return _jwks_cache
    except (httpx.HTTPError, ValueError):
        logger.exception("Failed to fetch JWKS from %s", jwks_url)
        return {}


class JWTAuthProvider:
    """JWT-based identity provider.

    Verifies provider-issued (ES256) and locally-issued (HS256) tokens and
    issues HS256 session tokens.
    """

    def __init__(
        self,
        secret_key: str = settings.jwt_secret_key,
        algorithm: str = settings.jwt_algorithm,
        expire_minutes: int = settings.jwt_expire_minutes,
    ) -> None:
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._expire_minutes = expire_minutes

    async def verify_token(self, token: str) -> Optional[Actor]:
        """
        Verify a JWT and resolve the actor it identifies.

        Detects the signing algorithm from the token header:
        - ES256: validates via JWKS public key
        - anything else: validates via the shared secret

        Args:
            token: The JWT to verify

        Returns:
            Actor if valid, None if invalid or expired
        """
        try:
            header = jwt.get_unverified_header(token)
            alg = header.get("alg", self._algorithm)

            if alg == "ES256":
                payload = await self._validate_es256(token, header)
            else:
                payload = jwt.decode(
                    token,
                    self._secret_key,
                    algorithms=[self._algorithm],
                    options={"verify_aud": False},
                )

            if payload is None:
                return None

            actor_id = payload.get("sub")
            if not actor_id or not isinstance(actor_id, str):
                return None

            user_metadata = payload.get("user_metadata") or {}
            display_name = (
                user_metadata.get("display_name")
                or user_metadata.get("name")
                or user_metadata.get("full_name")
                or payload.get("name")
            )

            return Actor(
                id=actor_id,
                email=payload.get("email"),
                display_name=display_name,
                claims={k: v for k, v in payload.items() if k not in _RESERVED_CLAIMS},
            )

        except JWTError:
            return None

    async def _validate_es256(
        self, token: str, header: dict
    ) -> Optional[dict]:
        """Validate an ES256-signed JWT using JWKS public keys."""
        kid = header.get("kid")
        if not kid:
            return None

        jwks_keys = await _get_jwks_keys()
        key_data = jwks_keys.get(kid)
        if not key_data:
            # Key not found, refetch once in case the keys rotated
            global _jwks_cache
            _jwks_cache = None
            jwks_keys = await _get_jwks_keys()
            key_data = jwks_keys.get(kid)
            if not key_data:
                logger.warning("JWKS key not found for kid=%s", kid)
                return None

        ec_key = ECKey(key_data, algorithm="ES256")
        return jwt.decode(
            token,
            ec_key,
            algorithms=["ES256"],
            options={"verify_aud": False},
        )

    def issue_session_token(
        self, actor: Actor, claims: Optional[dict[str, Any]] = None
    ) -> str:
        """
        Issue an HS256 session token for an actor.

        Args:
            actor: The actor to create a token for
            claims: Extra claims to embed; registered claims cannot be overridden

        Returns:
            The generated JWT string
        """
        expire = datetime.utcnow() + timedelta(minutes=self._expire_minutes)

        payload: dict = {
            k: v for k, v in (claims or {}).items() if k not in _RESERVED_CLAIMS
        }
        payload.update(
            {
                "sub": actor.id,
                "aud": "authenticated",
                "exp": expire,
                "user_metadata": {
                    "display_name": actor.display_name,
                },
            }
        )
        if actor.email:
            payload["email"] = actor.email

        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)
