"""
Tests for the back-office external login endpoints.
"""

import pytest
from starlette.testclient import TestClient

from cms_backoffice.application import CmsApplication
from cms_backoffice.backoffice import BackOfficeEndpoints, schemes_from_settings
from cms_backoffice.config import SecuritySettings
from conftest import make_token


@pytest.fixture
def client(collaborators):
    application = CmsApplication(**collaborators)
    with TestClient(application.create_app()) as client:
        yield client


class TestSchemesFromSettings:
    def test_one_scheme_per_provider(self, configs):
        schemes = schemes_from_settings(configs.security)

        assert [s.authentication_type for s in schemes] == ["Google", "AzureAD"]
        azure = schemes[1]
        assert azure.caption == "Sign in with Azure AD"
        assert azure.options.auto_redirect_login_to_external_provider is True
        assert azure.options.deny_local_login is True
        assert azure.validator.algorithms == ["HS256"]
        assert azure.validator._jwks_cache.ttl == 60

    def test_no_providers(self):
        assert schemes_from_settings(SecuritySettings(external_login_providers=[])) == []


class TestEndpoints:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {
            "status": "healthy",
            "service": "cms-backoffice",
            "backoffice_url": "https://cms.example.com/backoffice",
        }
        assert response.headers["X-Request-Id"]

    def test_external_logins(self, client):
        data = client.get("/backoffice/external-logins").json()

        assert data["providers"] == [
            {"authentication_type": "Google", "caption": "Sign in with Google"},
            {"authentication_type": "AzureAD", "caption": "Sign in with Azure AD"},
        ]
        assert data["auto_login_provider"] == "AzureAD"
        assert data["deny_local_login"] is True

    def test_external_login_info_from_bearer_token(self, client):
        response = client.get(
            "/backoffice/external-logins/Google",
            headers={"Authorization": f"Bearer {make_token()}"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["provider_key"] == "user-123"
        assert data["default_user_name"] == "JaneDoe"
        assert data["email"] == "jane@example.com"
        assert data["external_identity"]["authentication_type"] == "Google"

    def test_external_login_info_from_cookie(self, client):
        client.cookies.set("AzureAD.ExternalLogin", make_token(name="John Smith"))
        response = client.get("/backoffice/external-logins/AzureAD")

        assert response.status_code == 200
        assert response.json()["default_user_name"] == "JohnSmith"

    def test_external_login_without_token(self, client):
        response = client.get("/backoffice/external-logins/Google")

        assert response.status_code == 401
        assert response.json() == {"error": "External login failed"}

    def test_unknown_provider(self, client):
        response = client.get("/backoffice/external-logins/Twitter")

        assert response.status_code == 404
        assert response.json() == {"error": "Unknown external login provider: Twitter"}


class TestBackOfficeEndpoints:
    def test_routes_under_custom_path(self, configs):
        endpoints = BackOfficeEndpoints(schemes_from_settings(configs.security), path="admin/")
        paths = [route.path for route in endpoints.routes()]

        assert paths == ["/health", "/admin/external-logins", "/admin/external-logins/{provider}"]
