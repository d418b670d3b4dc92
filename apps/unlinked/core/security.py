"""JWT handling shared by the REST dependency and the socket handshake.

Tokens are issued by the account service (HS256, `userId` claim) and usually
arrive in the `jwt-linkedin` cookie. Sockets may instead send them in the
handshake `auth` payload or an `Authorization: Bearer` header.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from http.cookies import SimpleCookie
from typing import Any, Mapping, Optional

from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError

from unlinked.core.exceptions import AuthenticationError
from unlinked.core.settings import settings
from unlinked.core.utils import utcnow

logger = logging.getLogger(__name__)


def issue_token(
    user_id: Any,
    *,
    expires_in: timedelta | None = None,
    now: datetime | None = None,
) -> str:
    issued = now or utcnow()
    lifetime = expires_in if expires_in is not None else timedelta(days=settings.jwt_expires_days)
    claims = {"userId": str(user_id), "iat": issued, "exp": issued + lifetime}
    return jwt.encode(
        claims, settings.jwt_signing_key(), algorithm=settings.jwt_algorithm
    )


def decode_token(token: str) -> dict[str, Any]:
    try:
        return jwt.decode(
            token, settings.jwt_signing_key(), algorithms=[settings.jwt_algorithm]
        )
    except ExpiredSignatureError as exc:
        raise AuthenticationError("Unauthorized - Token Expired", code="token_expired") from exc
    except JWTError as exc:
        raise AuthenticationError("Unauthorized - Invalid Token", code="invalid_token") from exc


def user_id_from_token(token: Optional[str]) -> str:
    if not token:
        raise AuthenticationError("Unauthorized - No Token Provided", code="no_token")
    claims = decode_token(token)
    user_id = claims.get("userId")
    if not user_id:
        raise AuthenticationError("Unauthorized - Invalid Token", code="invalid_token")
    return str(user_id)


def _bearer(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    scheme, _, credentials = value.partition(" ")
    if scheme.lower() != "bearer" or not credentials.strip():
        return None
    return credentials.strip()


def _cookie(raw: Optional[str], name: str) -> Optional[str]:
    if not raw:
        return None
    jar = SimpleCookie()
    jar.load(raw)
    morsel = jar.get(name)
    return morsel.value if morsel is not None else None


def token_from_handshake(environ: Mapping[str, Any], auth: Any = None) -> Optional[str]:
    """Pick the credential from a Socket.IO connect: auth payload, bearer header, cookie."""
    if isinstance(auth, Mapping):
        token = auth.get("token")
        if isinstance(token, str) and token.strip():
            return token.strip()

    token = _bearer(environ.get("HTTP_AUTHORIZATION"))
    if token:
        return token
    return _cookie(environ.get("HTTP_COOKIE"), settings.jwt_cookie_name)


def token_from_request(cookies: Mapping[str, str], authorization: Optional[str]) -> Optional[str]:
    return cookies.get(settings.jwt_cookie_name) or _bearer(authorization)


__all__ = [
    "decode_token",
    "issue_token",
    "token_from_handshake",
    "token_from_request",
    "user_id_from_token",
]
