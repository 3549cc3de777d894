"""Tests for audit logging middleware."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from healthle.middleware.audit_log import AuditLogMiddleware


class TestAuditLogMiddleware:
    """Tests for AuditLogMiddleware."""

    @pytest.mark.asyncio
    async def test_logs_chat_request_with_consultation(self):
        """Test that an audited request logs user and consultation."""
        middleware = AuditLogMiddleware(app=MagicMock())

        request = MagicMock()
        request.method = "POST"
        request.url.path = "/api/v1/chat/c-1/start"
        request.state.user_id = "user-1"
        request.state.consultation_id = "c-1"
        call_next = AsyncMock(return_value=MagicMock(status_code=200))

        with patch("healthle.middleware.audit_log.logger") as mock_logger:
            await middleware.dispatch(request, call_next)

        mock_logger.info.assert_called_once()
        kwargs = mock_logger.info.call_args.kwargs
        assert kwargs["operation"] == "chat_start"
        assert kwargs["user_id"] == "user-1"
        assert kwargs["consultation_id"] == "c-1"
        assert kwargs["status_code"] == 200

    @pytest.mark.asyncio
    async def test_skips_unaudited_paths(self):
        """Test that dashboard reads are not audited."""
        middleware = AuditLogMiddleware(app=MagicMock())

        request = MagicMock()
        request.method = "GET"
        request.url.path = "/api/v1/dashboard"
        call_next = AsyncMock(return_value=MagicMock(status_code=200))

        with patch("healthle.middleware.audit_log.logger") as mock_logger:
            await middleware.dispatch(request, call_next)

        assert call_next.called
        assert not mock_logger.info.called

    @pytest.mark.parametrize(
        ("method", "path", "operation"),
        [
            ("POST", "/api/v1/consultations", "consultation_start"),
            ("POST", "/api/v1/questionnaire/c-1", "questionnaire_submit"),
            ("POST", "/api/v1/chat/c-1/messages", "chat_ask"),
            ("POST", "/api/v1/chat/c-1/survey", "survey_submit"),
            ("POST", "/api/v1/chat/c-1/register", "account_register"),
            ("GET", "/api/v1/history/consultations", "history_read"),
            ("GET", "/api/v1/history/sessions/t-1", "session_read"),
            ("POST", "/api/v1/history/sessions/t-1/messages", "session_ask"),
            ("POST", "/api/v1/auth/login", "auth_login"),
        ],
    )
    def test_operation_types(self, method, path, operation):
        """Test operation names derived from the route."""
        middleware = AuditLogMiddleware(app=MagicMock())
        assert middleware._get_operation_type(path, method) == operation
