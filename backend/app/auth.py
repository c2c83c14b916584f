"""
Cloudflare Access gate for every storage and settings endpoint.

Requests must carry the Access JWT (``Cf-Access-Jwt-Assertion`` header or
``CF_Authorization`` cookie), signed by the team's key set and issued for the
configured audience. When ``ACCESS_LOCAL_BYPASS`` is on, requests whose peer
address is loopback skip the check. The Host header is client-controlled and
is never consulted.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, Optional

import jwt
from fastapi import HTTPException, Request
from jwt import PyJWKClient

from . import config

logger = logging.getLogger(__name__)

TOKEN_HEADER = "Cf-Access-Jwt-Assertion"
TOKEN_COOKIE = "CF_Authorization"


@dataclass(frozen=True)
class AccessIdentity:
    email: Optional[str]
    subject: Optional[str]
    claims: Dict[str, Any]


@lru_cache(maxsize=4)
def get_jwks_client(team_domain: str) -> PyJWKClient:
    return PyJWKClient(f"{team_domain.rstrip('/')}/cdn-cgi/access/certs", cache_keys=True)


def verify_access_token(token: str, team_domain: str, audience: str) -> AccessIdentity:
    """Validate signature, issuer, audience and expiry of an Access JWT."""
    signing_key = get_jwks_client(team_domain).get_signing_key_from_jwt(token)
    claims = jwt.decode(
        token,
        signing_key.key,
        algorithms=["RS256"],
        audience=audience,
        issuer=team_domain.rstrip("/"),
        options={"require": ["exp", "iss", "aud"]},
    )
    return AccessIdentity(email=claims.get("email"), subject=claims.get("sub"), claims=claims)


def _forbidden(message: str) -> HTTPException:
    return HTTPException(status_code=403, detail=f"Unauthorized: {message}")


def is_loopback_peer(request: Request) -> bool:
    return request.client is not None and request.client.host in config.LOOPBACK_ADDRESSES


def require_access(request: Request) -> Optional[AccessIdentity]:
    if config.ACCESS_LOCAL_BYPASS and is_loopback_peer(request):
        logger.debug("Loopback peer, skipping Cloudflare Access check")
        return None

    if not config.CLOUDFLARE_TEAM_DOMAIN or not config.CLOUDFLARE_AUD_TAG:
        raise HTTPException(
            status_code=500,
            detail="CLOUDFLARE_TEAM_DOMAIN and CLOUDFLARE_AUD_TAG must be set",
        )

    token = request.headers.get(TOKEN_HEADER) or request.cookies.get(TOKEN_COOKIE)
    if not token:
        logger.warning("Rejected request to %s: no Access token", request.url.path)
        raise _forbidden("Missing Cloudflare Access token")

    try:
        identity = verify_access_token(
            token, config.CLOUDFLARE_TEAM_DOMAIN, config.CLOUDFLARE_AUD_TAG
        )
    except jwt.PyJWTError as exc:
        logger.warning("Rejected request to %s: %s", request.url.path, exc)
        raise _forbidden("Invalid Cloudflare Access token")

    logger.info("Authenticated user %s", identity.email)
    request.state.user_email = identity.email
    return identity
