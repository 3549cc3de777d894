"""Account endpoints relayed to the auth service."""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.security import HTTPAuthorizationCredentials

from healthle.core.auth import bearer_scheme
from healthle.core.errors import AuthenticationError
from healthle.dependencies import AccountServiceDep
from healthle.schemas.account import AuthSession, Credentials, SessionStatus, SignUpRequest
from healthle.services.accounts import ensure_passwords_match

router = APIRouter(prefix="/auth", tags=["auth"])

BearerToken = Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)]


@router.post("/signup", response_model=AuthSession, status_code=status.HTTP_201_CREATED)
async def sign_up(request: SignUpRequest, accounts: AccountServiceDep) -> AuthSession:
    """Create an account."""
    ensure_passwords_match(request.password, request.confirm_password)
    return await accounts.sign_up(request.email, request.password)


@router.post("/login", response_model=AuthSession)
async def login(request: Credentials, accounts: AccountServiceDep) -> AuthSession:
    """Sign in with email and password."""
    return await accounts.sign_in(request.email, request.password)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(credentials: BearerToken, accounts: AccountServiceDep) -> None:
    """Revoke the current session."""
    if credentials is None:
        raise AuthenticationError("Missing authorization token")
    await accounts.sign_out(credentials.credentials)


@router.get("/session", response_model=SessionStatus)
async def get_session(credentials: BearerToken, accounts: AccountServiceDep) -> SessionStatus:
    """Whether the bearer token belongs to a live session."""
    return await accounts.get_user(credentials.credentials if credentials else None)
