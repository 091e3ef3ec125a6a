"""
Bearer-token identity for player-facing routes.

Tokens are HS256 JWTs: sub = player UUID, aud = plus-backend. Minting happens
in the account login flow; this module only needs the shared secret.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Header
from jose import JWTError, jwt

from plus_api.core.config import get_player_token_secret, get_player_token_ttl
from plus_api.core.errors import ApiError

_ALGORITHM = "HS256"
TOKEN_AUDIENCE = "plus-backend"


class AuthenticationError(ApiError):
    status_code = 401
    error = "unauthorized"


def issue_player_token(player: uuid.UUID, ttl_seconds: Optional[int] = None) -> str:
    now = datetime.now(timezone.utc)
    ttl = ttl_seconds if ttl_seconds is not None else get_player_token_ttl()
    claims = {
        "sub": str(player),
        "aud": TOKEN_AUDIENCE,
        "iat": now,
        "exp": now + timedelta(seconds=ttl),
    }
    return jwt.encode(claims, get_player_token_secret(), algorithm=_ALGORITHM)


def verify_player_token(token: str) -> uuid.UUID:
    secret = get_player_token_secret()
    if not secret:
        raise AuthenticationError("Authorization header was invalid")
    try:
        claims = jwt.decode(token, secret, algorithms=[_ALGORITHM], audience=TOKEN_AUDIENCE)
    except JWTError:
        raise AuthenticationError("Authorization header was invalid")
    try:
        return uuid.UUID(str(claims.get("sub", "")))
    except ValueError:
        raise AuthenticationError("Authorization header was invalid")


def _bearer(authorization: Optional[str]) -> Optional[str]:
    if authorization is None:
        return None
    if not authorization.startswith("Bearer "):
        raise AuthenticationError("Authorization header was invalid")
    return authorization[len("Bearer ") :].strip()


def require_player(authorization: Optional[str] = Header(None)) -> uuid.UUID:
    token = _bearer(authorization)
    if not token:
        raise AuthenticationError("Authorization header was missing")
    return verify_player_token(token)


def optional_player(authorization: Optional[str] = Header(None)) -> Optional[uuid.UUID]:
    token = _bearer(authorization)
    if not token:
        return None
    return verify_player_token(token)
