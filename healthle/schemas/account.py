"""Schemas for sign-up, sign-in and session state."""

from pydantic import BaseModel, Field


class Credentials(BaseModel):
    """Email and password."""

    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=1)


class SignUpRequest(Credentials):
    """Registration form with password confirmation."""

    confirm_password: str


class AuthSession(BaseModel):
    """Session returned by the auth service."""

    access_token: str | None = None
    refresh_token: str | None = None
    expires_in: int | None = None
    user_id: str
    email: str | None = None


class SessionStatus(BaseModel):
    """Whether the caller is signed in."""

    is_logged_in: bool
    user_id: str | None = None
    email: str | None = None
