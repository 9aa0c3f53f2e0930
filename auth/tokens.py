"""
auth/tokens.py -- JWT session tokens and the auth cookie.

After AuthenticationFlow returns Authenticated, the web layer establishes the
session principal by issuing a signed JWT and storing it in an httpOnly cookie.
Later requests are authenticated from that cookie (or a Bearer header) by
auth/dependencies.py.

JWT: python-jose with HS256, signed with SECRET_KEY. Tokens carry user_id,
username and expiry. Verification returns None on any failure -- the route
layer turns that into a 401.

Layer rule: no imports from api/ or web/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from core.config import get_settings

logger = logging.getLogger("hublink.auth")

_ALGORITHM = "HS256"

ACCESS_COOKIE = "access_token"


def create_access_token(user_id: int, username: str, expire_seconds: int = 0) -> str:
    """Encode a signed JWT for a local account.

    Args:
        user_id:        Numeric user ID stored in the DB.
        username:       Username stored as the JWT subject claim.
        expire_seconds: Session duration in seconds. If 0 (default), uses
                        Settings.token_expire_seconds.
    """
    settings = get_settings()
    duration = expire_seconds if expire_seconds > 0 else settings.token_expire_seconds
    expire = datetime.now(timezone.utc) + timedelta(seconds=duration)
    payload = {
        "sub": username,
        "user_id": user_id,
        "exp": expire,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=_ALGORITHM)


def decode_access_token(token: str) -> dict | None:
    """Decode and verify a JWT. Returns the payload dict or None on any failure."""
    try:
        payload = jwt.decode(token, get_settings().secret_key, algorithms=[_ALGORITHM])
    except JWTError:
        return None
    if "user_id" not in payload:
        return None
    return payload


def set_auth_cookie(response, token: str, expire_seconds: int = 0) -> None:
    """Write the JWT access token as an httpOnly cookie on the response.

    httponly=True: JS cannot read the cookie.
    samesite="lax": sent on top-level navigations, which includes the redirect
        back from GitHub, but not on cross-site POSTs.
    secure: only sent over HTTPS when SECURE_COOKIES=true.
    """
    settings = get_settings()
    duration = expire_seconds if expire_seconds > 0 else settings.token_expire_seconds
    response.set_cookie(
        ACCESS_COOKIE,
        value=token,
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
        max_age=duration,
    )
