"""Auth state middleware to expose the signed-in user to downstream middleware."""

from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from jose import JWTError
from starlette.middleware.base import BaseHTTPMiddleware

from healthle.config import get_settings
from healthle.core.auth import decode_access_token
from healthle.core.logging import get_logger

logger = get_logger(__name__)


class AuthStateMiddleware(BaseHTTPMiddleware):
    """
    Sets request.state.user_id from a Supabase access token.

    Runs before rate limiting and audit logging so they can key on the user.
    Authentication is not enforced here; anonymous consultations are
    allowed and endpoints that need an account use get_current_user.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        request.state.user_id = None

        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            try:
                user = decode_access_token(auth_header[7:], get_settings())
                request.state.user_id = user.user_id
            except JWTError:
                # Endpoint auth reports invalid tokens
                pass
            except Exception as e:
                logger.debug("Failed to read user from access token", error=str(e))

        return await call_next(request)
