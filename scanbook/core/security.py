"""Keycloak bearer-token verification."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any

import httpx
from jose import JWTError, jwt

from .config import settings

logger = logging.getLogger(__name__)

FALLBACK_AUDIENCE = "account"


class TokenDecodeError(Exception):
    """Raised when a bearer token cannot be decoded or is invalid."""


@dataclass(frozen=True)
class Identity:
    """The resolved subject of a verified access token."""

    id: str
    username: str | None = None
    name: str | None = None
    email: str | None = None
    roles: frozenset[str] = field(default_factory=frozenset)

    @property
    def is_admin(self) -> bool:
        return settings.keycloak_admin_role in self.roles

    @property
    def display_name(self) -> str | None:
        return self.name or self.username


class KeycloakKeyCache:
    """Realm signing keys, refreshed once the TTL has elapsed."""

    def __init__(self, ttl_seconds: int):
        self.ttl_seconds = ttl_seconds
        self._keys: list[dict[str, Any]] | None = None
        self._expires_at = 0.0

    @property
    def certs_url(self) -> str:
        return f"{settings.keycloak_issuer}/protocol/openid-connect/certs"

    def clear(self) -> None:
        self._keys = None
        self._expires_at = 0.0

    async def get_keys(self, client: httpx.AsyncClient | None = None) -> list[dict[str, Any]]:
        if self._keys is not None and time.monotonic() < self._expires_at:
            return self._keys
        self._keys = await self._fetch(client)
        self._expires_at = time.monotonic() + self.ttl_seconds
        return self._keys

    async def _fetch(self, client: httpx.AsyncClient | None) -> list[dict[str, Any]]:
        created_client = False
        if client is None:
            client = httpx.AsyncClient(timeout=settings.keycloak_timeout_seconds)
            created_client = True
        try:
            response = await client.get(self.certs_url)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Failed to fetch Keycloak signing keys from %s: %s", self.certs_url, exc)
            raise TokenDecodeError("Signing keys unavailable") from exc
        finally:
            if created_client:
                await client.aclose()
        keys = payload.get("keys") or []
        logger.info("Fetched %d Keycloak signing key(s)", len(keys))
        return keys


key_cache = KeycloakKeyCache(settings.keycloak_jwks_ttl_seconds)


def decode_keycloak_token(token: str, keys: list[dict[str, Any]]) -> dict[str, Any]:
    """Verify signature, issuer and audience against the given JWKS keys."""
    try:
        header = jwt.get_unverified_header(token)
    except JWTError as exc:
        raise TokenDecodeError("Invalid token format") from exc

    kid = header.get("kid")
    key = next((candidate for candidate in keys if candidate.get("kid") == kid), None)
    if key is None:
        raise TokenDecodeError("Signing key not found")

    last_error: JWTError | None = None
    for audience in (settings.keycloak_client_id, FALLBACK_AUDIENCE):
        try:
            return jwt.decode(
                token,
                key,
                algorithms=["RS256"],
                audience=audience,
                issuer=settings.keycloak_issuer,
            )
        except JWTError as exc:
            last_error = exc
    raise TokenDecodeError("Invalid token") from last_error


def identity_from_claims(claims: dict[str, Any]) -> Identity:
    subject = claims.get("sub")
    if not subject:
        raise TokenDecodeError("Token has no subject")
    roles = set(claims.get("realm_access", {}).get("roles", []))
    client_access = claims.get("resource_access", {}).get(settings.keycloak_client_id, {})
    roles.update(client_access.get("roles", []))
    return Identity(
        id=subject,
        username=claims.get("preferred_username"),
        name=claims.get("name"),
        email=claims.get("email"),
        roles=frozenset(roles),
    )


async def verify_access_token(token: str) -> Identity:
    keys = await key_cache.get_keys()
    return identity_from_claims(decode_keycloak_token(token, keys))
