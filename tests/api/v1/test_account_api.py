"""Tests for auth, settings and page metadata endpoints."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from healthle.core.errors import AuthenticationError
from healthle.dependencies import get_account_service, get_legal_service
from healthle.schemas.account import AuthSession, SessionStatus
from healthle.schemas.settings import LegalDocumentResponse


@pytest.fixture
def account_service(app):
    service = MagicMock()
    service.sign_up = AsyncMock(return_value=AuthSession(user_id="u-1", email="a@example.com"))
    service.sign_in = AsyncMock(return_value=AuthSession(access_token="at", user_id="u-1"))
    service.sign_out = AsyncMock(return_value=None)
    service.get_user = AsyncMock(return_value=SessionStatus(is_logged_in=True, user_id="u-1"))
    app.dependency_overrides[get_account_service] = lambda: service
    return service


@pytest.fixture
def legal_service(app):
    service = MagicMock()
    service.get = AsyncMock(
        return_value=LegalDocumentResponse(type="terms_of_service", title="利用規約", content="第1条")
    )
    app.dependency_overrides[get_legal_service] = lambda: service
    return service


class TestAuthEndpoints:
    """Tests for /api/v1/auth."""

    def test_signup(self, client, account_service):
        response = client.post(
            "/api/v1/auth/signup",
            json={"email": "a@example.com", "password": "pw", "confirm_password": "pw"},
        )

        assert response.status_code == 201
        assert response.json()["user_id"] == "u-1"

    def test_signup_password_mismatch(self, client, account_service):
        response = client.post(
            "/api/v1/auth/signup",
            json={"email": "a@example.com", "password": "pw", "confirm_password": "other"},
        )

        assert response.status_code == 422
        assert response.json()["detail"] == "パスワードが一致しません。"
        assert not account_service.sign_up.called

    def test_login_rejected(self, client, account_service):
        account_service.sign_in.side_effect = AuthenticationError("Invalid login credentials")

        response = client.post("/api/v1/auth/login", json={"email": "a@example.com", "password": "x"})

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid login credentials"

    def test_logout_requires_token(self, client, account_service):
        response = client.post("/api/v1/auth/logout")

        assert response.status_code == 401
        assert not account_service.sign_out.called

    def test_logout(self, client, account_service, auth_headers, valid_jwt_token):
        response = client.post("/api/v1/auth/logout", headers=auth_headers)

        assert response.status_code == 204
        account_service.sign_out.assert_awaited_once_with(valid_jwt_token)

    def test_session(self, client, account_service, auth_headers, valid_jwt_token):
        response = client.get("/api/v1/auth/session", headers=auth_headers)

        assert response.json()["is_logged_in"] is True
        account_service.get_user.assert_awaited_once_with(valid_jwt_token)


class TestSettingsEndpoints:
    """Tests for /api/v1/settings."""

    def test_settings_page(self, client):
        response = client.get("/api/v1/settings")

        body = response.json()
        assert body["interview_url"].startswith("https://timerex.net/")
        assert body["contact_url"] == "https://lin.ee/AlseMHV"
        assert body["disclaimer"].startswith("本サービスは、ヘルスケアに関する情報提供を行うもの")

    def test_legal_document(self, client, legal_service):
        response = client.get("/api/v1/settings/legal/terms_of_service")

        assert response.status_code == 200
        assert response.json()["title"] == "利用規約"
        legal_service.get.assert_awaited_once_with("terms_of_service")

    def test_unknown_legal_document(self, client, legal_service):
        response = client.get("/api/v1/settings/legal/cookies")

        assert response.status_code == 422


class TestPagesEndpoint:
    """Tests for /api/v1/pages."""

    def test_questionnaire_metadata(self, client):
        response = client.get("/api/v1/pages/questionnaire", params={"concern": "頭痛"})

        assert response.status_code == 200
        assert response.json()["title"] == "健康質問票 | ヘルスル（Healthle） - 頭痛"

    def test_unknown_page(self, client):
        response = client.get("/api/v1/pages/admin")

        assert response.status_code == 404
