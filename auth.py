import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import HTTPException, Request, Response, status
from jose import JWTError, jwt

from config import Settings

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
TOKEN_COOKIE = "token"
TOKEN_LIFETIME = timedelta(days=365)


class AuthenticationError(Exception):
    """Raised when a session token is missing, tampered with or expired."""


def issue_token(identity: dict, settings: Settings, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = identity.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or TOKEN_LIFETIME)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)


def verify_token(token: str, settings: Settings) -> dict:
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError as exc:
        raise AuthenticationError(str(exc)) from exc


def _cookie_options(settings: Settings) -> dict:
    return {
        "httponly": True,
        "secure": settings.production,
        "samesite": "none" if settings.production else "strict",
    }


def set_token_cookie(response: Response, token: str, settings: Settings) -> None:
    response.set_cookie(
        TOKEN_COOKIE,
        token,
        max_age=int(TOKEN_LIFETIME.total_seconds()),
        **_cookie_options(settings),
    )


def clear_token_cookie(response: Response, settings: Settings) -> None:
    # Logout only drops the cookie; an issued token stays valid until it expires.
    response.delete_cookie(TOKEN_COOKIE, **_cookie_options(settings))


async def get_current_user(request: Request) -> dict:
    """Auth gate: decode the ``token`` cookie or reject the request with 401."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="unauthorized access",
    )
    token = request.cookies.get(TOKEN_COOKIE)
    if not token:
        raise credentials_exception
    try:
        return verify_token(token, request.app.state.settings)
    except AuthenticationError as exc:
        logger.warning("rejected session token: %s", exc)
        raise credentials_exception
