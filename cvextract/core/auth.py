"""
Caller identity for API requests.

FF_USE_AUTH0=true  → bearer JWT checked against the tenant's JWKS (RS256).
FF_USE_AUTH0=false → every request runs as DEV_USER.

Failures raise PermissionError; the API layer turns them into 401s.
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional

import httpx
from jose import jwt, JWTError

from .config import get_settings
from .flags import get_flags

logger = logging.getLogger(__name__)

JWKS_TTL = 600
RSA_FIELDS = ("kty", "kid", "use", "n", "e")


@dataclass(frozen=True)
class AuthenticatedUser:
    user_id: str
    email: str = ""
    name: str = ""


DEV_USER = AuthenticatedUser(user_id="dev-user", email="dev@local", name="Dev User")


class JwksCache:
    """Signing keys of one Auth0 tenant, refetched every JWKS_TTL seconds."""

    def __init__(self, ttl: int = JWKS_TTL):
        self.ttl = ttl
        self._keys: list[dict] = []
        self._fetched_at = 0.0

    async def keys(self, domain: str) -> list[dict]:
        if self._keys and time.time() - self._fetched_at < self.ttl:
            return self._keys

        async with httpx.AsyncClient(timeout=10) as client:
            resp = await client.get(f"https://{domain}/.well-known/jwks.json")
            resp.raise_for_status()

        self._keys = resp.json().get("keys", [])
        self._fetched_at = time.time()
        logger.info("Fetched %d JWKS keys from %s", len(self._keys), domain)
        return self._keys

    async def signing_key(self, domain: str, kid: Optional[str]) -> dict:
        for key in await self.keys(domain):
            if key.get("kid") == kid:
                return {name: key[name] for name in RSA_FIELDS if name in key}
        raise JWTError(f"No JWKS key with kid={kid}")


_jwks = JwksCache()


def bearer_token(authorization: str) -> str:
    if not authorization:
        raise PermissionError("Missing Authorization header")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise PermissionError("Invalid Authorization header. Use: Bearer <token>")
    return token


async def verify_token(token: str) -> AuthenticatedUser:
    settings = get_settings()
    domain = settings.auth0_domain

    key = await _jwks.signing_key(domain, jwt.get_unverified_header(token).get("kid"))
    claims = jwt.decode(
        token,
        key,
        algorithms=[settings.auth0_algorithm],
        audience=settings.auth0_audience,
        issuer=f"https://{domain}/",
    )
    return AuthenticatedUser(
        user_id=claims.get("sub", ""),
        email=claims.get("email", ""),
        name=claims.get("name", ""),
    )


async def get_current_user(authorization: str = "") -> AuthenticatedUser:
    if not get_flags().use_auth0:
        return DEV_USER

    token = bearer_token(authorization)
    try:
        user = await verify_token(token)
    except (JWTError, httpx.HTTPError) as e:
        raise PermissionError(f"Invalid token: {e}")

    if not user.user_id:
        raise PermissionError("Token missing sub claim")
    return user
