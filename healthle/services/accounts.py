"""Accounts through the Supabase auth REST API."""

from typing import Any

import httpx

from healthle.config import Settings, get_settings
from healthle.core.errors import AuthenticationError, UpstreamError, ValidationFailedError
from healthle.core.logging import get_logger
from healthle.schemas.account import AuthSession, SessionStatus

logger = get_logger(__name__)

PASSWORD_MISMATCH = "パスワードが一致しません。"


def ensure_passwords_match(password: str, confirm_password: str) -> None:
    """Reject a registration form whose confirmation differs."""
    if password != confirm_password:
        raise ValidationFailedError(PASSWORD_MISMATCH)


def _error_message(response: httpx.Response) -> str:
    """Best human-readable message from an auth API error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        for key in ("msg", "error_description", "message", "error"):
            if isinstance(body.get(key), str):
                return body[key]
    return f"HTTP {response.status_code}"


def _session_from_payload(payload: dict[str, Any]) -> AuthSession:
    """
    Build a session from a sign-up or token response.

    Sign-up answers with a bare user object when email confirmation is
    pending, and with a full session otherwise.
    """
    user = payload.get("user") if isinstance(payload.get("user"), dict) else payload
    user_id = user.get("id")
    if not user_id:
        raise UpstreamError("認証サービスの応答が不正です。")

    return AuthSession(
        access_token=payload.get("access_token"),
        refresh_token=payload.get("refresh_token"),
        expires_in=payload.get("expires_in"),
        user_id=user_id,
        email=user.get("email"),
    )


class AccountService:
    """
    Sign-up, sign-in and session lookup.

    Accounts are owned by the auth service; this class only relays requests.
    """

    DEFAULT_TIMEOUT = 30.0

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._transport = transport
        self._base_url = f"{self._settings.supabase_url.rstrip('/')}/auth/v1"

    def _get_headers(self, access_token: str | None = None) -> dict[str, str]:
        return {
            "apikey": self._settings.supabase_anon_key,
            "Authorization": f"Bearer {access_token or self._settings.supabase_anon_key}",
            "Content-Type": "application/json",
        }

    async def _request(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
        access_token: str | None = None,
    ) -> dict[str, Any]:
        async with httpx.AsyncClient(transport=self._transport) as client:
            try:
                response = await client.request(
                    method,
                    f"{self._base_url}{path}",
                    headers=self._get_headers(access_token),
                    json=json,
                    params=params,
                    timeout=self.DEFAULT_TIMEOUT,
                )
            except httpx.HTTPError as e:
                logger.error("Auth service request failed", path=path, error=str(e))
                raise UpstreamError("認証サービスに接続できませんでした。") from None

        if response.status_code >= 500:
            logger.error("Auth service error", path=path, status_code=response.status_code)
            raise UpstreamError(_error_message(response))
        if response.is_error:
            logger.info("Auth request rejected", path=path, status_code=response.status_code)
            raise AuthenticationError(_error_message(response))

        if not response.content:
            return {}
        return response.json()

    async def sign_up(self, email: str, password: str) -> AuthSession:
        """Create an account."""
        payload = await self._request("POST", "/signup", json={"email": email, "password": password})
        session = _session_from_payload(payload)
        logger.info("Account created", user_id=session.user_id)
        return session

    async def sign_in(self, email: str, password: str) -> AuthSession:
        """Sign in with email and password."""
        payload = await self._request(
            "POST",
            "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        session = _session_from_payload(payload)
        logger.info("Signed in", user_id=session.user_id)
        return session

    async def sign_out(self, access_token: str) -> None:
        """Revoke the session of an access token."""
        await self._request("POST", "/logout", access_token=access_token)

    async def get_user(self, access_token: str | None) -> SessionStatus:
        """Session state for an access token; a rejected token means signed out."""
        if not access_token:
            return SessionStatus(is_logged_in=False)
        try:
            payload = await self._request("GET", "/user", access_token=access_token)
        except AuthenticationError:
            return SessionStatus(is_logged_in=False)

        return SessionStatus(
            is_logged_in=bool(payload.get("id")),
            user_id=payload.get("id"),
            email=payload.get("email"),
        )
