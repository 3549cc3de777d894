"""Authentication utilities for Supabase session tokens and the ops API key."""

import hmac
from typing import Annotated

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import APIKeyHeader, HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import BaseModel

from healthle.config import Settings, get_settings
from healthle.core.errors import AuthenticationError
from healthle.core.logging import get_logger

logger = get_logger(__name__)

LOGIN_REQUIRED_TEXT = "ログインが必要です。"
SESSION_EXPIRED_TEXT = "セッションの有効期限が切れました。再度ログインしてください。"

# Security schemes
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)
bearer_scheme = HTTPBearer(auto_error=False)


class UserContext(BaseModel):
    """User context extracted from a Supabase access token."""

    user_id: str
    role: str
    email: str | None = None
    access_token: str | None = None


def decode_access_token(token: str, settings: Settings) -> UserContext:
    """
    Decode a Supabase-issued access token.

    Raises:
        JWTError: If the token is invalid, expired or has no subject
    """
    payload = jwt.decode(
        token,
        settings.supabase_jwt_secret,
        algorithms=["HS256"],
        audience="authenticated",
    )

    user_id = payload.get("sub")
    if not user_id:
        raise JWTError("missing subject")

    return UserContext(
        user_id=user_id,
        role=payload.get("role", "authenticated"),
        email=payload.get("email"),
        access_token=token,
    )


async def verify_ops_api_key(
    api_key: Annotated[str | None, Security(api_key_header)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> str:
    """Verify the X-API-Key header used by operations tooling."""
    if not api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing API key",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    if not hmac.compare_digest(api_key, settings.healthle_ops_api_key):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    return api_key


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> UserContext:
    """
    Require a signed-in user.

    The bearer token is the Supabase session access token held by the browser.
    An expired token gets its own message so the page can send the user back
    to the login form.
    """
    if not credentials:
        raise AuthenticationError(LOGIN_REQUIRED_TEXT)

    try:
        return decode_access_token(credentials.credentials, settings)
    except ExpiredSignatureError:
        raise AuthenticationError(SESSION_EXPIRED_TEXT) from None
    except JWTError as e:
        logger.info("Rejected access token", error=str(e))
        raise AuthenticationError(LOGIN_REQUIRED_TEXT) from None


async def get_optional_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> UserContext | None:
    """
    Get the current user if signed in, None for anonymous sessions.

    Consultations can be started and answered anonymously, so an invalid
    token is treated the same as no token.
    """
    if not credentials:
        return None

    try:
        return decode_access_token(credentials.credentials, settings)
    except JWTError:
        return None
