"""
Tests for settings, the hosting environment and back-office location.
"""

import json
import os
from unittest.mock import patch

import pytest

from cms_backoffice.config import (
    ConfigsFactory,
    ExternalLoginProviderSettings,
    GlobalSettings,
    HostingSettings,
    SecuritySettings,
    WebRoutingSettings,
)
from cms_backoffice.core.hosting import BackOfficeInfo, HostingEnvironment


class TestSettingsFromEnvironment:
    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            hosting = HostingSettings()
            global_settings = GlobalSettings()
            web_routing = WebRoutingSettings()
            security = SecuritySettings()

        assert hosting.debug is False
        assert hosting.application_virtual_path == "/"
        assert global_settings.backoffice_path == "/backoffice"
        assert global_settings.configuration_status == ""
        assert global_settings.register_type is None
        assert global_settings.log_level == "WARNING"
        assert web_routing.application_url is None
        assert security.external_login_providers == []
        assert security.jwks_cache_ttl == 3600

    @pytest.mark.parametrize("value,expected", [("true", True), ("1", True), ("YES", True), ("off", False)])
    def test_debug_flag(self, value, expected):
        with patch.dict(os.environ, {"CMS_DEBUG": value}):
            assert HostingSettings().debug is expected

    def test_factory_reads_every_section(self, tmp_path):
        env = {
            "CMS_APP_PATH": str(tmp_path),
            "CMS_CONFIGURATION_STATUS": "0.2.0",
            "CMS_BACKOFFICE_PATH": "/admin",
            "CMS_APPLICATION_URL": "https://cms.example.com",
            "CMS_JWKS_CACHE_TTL": "120",
        }
        with patch.dict(os.environ, env):
            configs = ConfigsFactory().create()

        assert configs.hosting.application_physical_path == str(tmp_path)
        assert configs.global_settings.configuration_status == "0.2.0"
        assert configs.security.jwks_cache_ttl == 120

        data = configs.to_dict()
        assert data["backoffice_path"] == "/admin"
        assert data["application_url"] == "https://cms.example.com"


class TestExternalLoginProviders:
    """Providers parsed from CMS_EXTERNAL_LOGIN_PROVIDERS"""

    def test_parse_providers(self):
        providers = [
            {
                "authentication_type": "Google",
                "issuer_url": "https://accounts.google.com",
                "audience": "client-id",
            },
            {
                "authentication_type": "AzureAD",
                "issuer_url": "https://login.microsoftonline.com/tenant/v2.0",
                "audience": "api://cms",
                "caption": "Azure AD",
                "auto_redirect": True,
                "deny_local_login": True,
            },
        ]
        with patch.dict(os.environ, {"CMS_EXTERNAL_LOGIN_PROVIDERS": json.dumps(providers)}):
            security = SecuritySettings()

        google, azure = security.external_login_providers
        assert google.caption == "Google"
        assert google.auto_redirect is False
        assert azure.caption == "Azure AD"
        assert azure.auto_redirect is True
        assert azure.deny_local_login is True

    def test_invalid_json(self):
        with patch.dict(os.environ, {"CMS_EXTERNAL_LOGIN_PROVIDERS": "{not json"}):
            with pytest.raises(ValueError, match="not valid JSON"):
                SecuritySettings()

    def test_not_a_list(self):
        with patch.dict(os.environ, {"CMS_EXTERNAL_LOGIN_PROVIDERS": '{"a": 1}'}):
            with pytest.raises(ValueError, match="must be a JSON list"):
                SecuritySettings()

    def test_missing_keys(self):
        with pytest.raises(ValueError, match="issuer_url, audience"):
            ExternalLoginProviderSettings.from_dict({"authentication_type": "Google"})


class TestHostingEnvironment:
    @pytest.fixture
    def hosting(self, tmp_path):
        return HostingEnvironment(HostingSettings(debug=True, application_physical_path=str(tmp_path)))

    def test_properties(self, hosting, tmp_path):
        assert hosting.application_physical_path == str(tmp_path)
        assert hosting.application_virtual_path == "/"
        assert hosting.is_debug_mode is True
        assert hosting.shutdown_reason is None

    def test_map_path_content_root(self, hosting, tmp_path):
        assert hosting.map_path_content_root("~/config/logging.json") == str(tmp_path / "config" / "logging.json")
        assert hosting.map_path_content_root("data/logs") == str(tmp_path / "data" / "logs")
        assert hosting.map_path_content_root("~") == str(tmp_path)

    def test_absolute_path_unchanged(self, hosting, tmp_path):
        absolute = str(tmp_path.parent / "elsewhere")
        assert hosting.map_path_content_root(absolute) == absolute


class TestBackOfficeInfo:
    def make(self, tmp_path, backoffice_path, application_url):
        hosting = HostingEnvironment(HostingSettings(application_physical_path=str(tmp_path)))
        return BackOfficeInfo(
            GlobalSettings(backoffice_path=backoffice_path),
            hosting,
            WebRoutingSettings(application_url=application_url),
        )

    @pytest.mark.parametrize(
        "backoffice_path,application_url,expected",
        [
            ("/backoffice", "https://cms.example.com", "https://cms.example.com/backoffice"),
            ("backoffice/", "https://cms.example.com/", "https://cms.example.com/backoffice"),
            ("/admin", "https://example.com/site", "https://example.com/site/admin"),
            ("/backoffice", None, "/backoffice"),
        ],
    )
    def test_absolute_url(self, tmp_path, backoffice_path, application_url, expected):
        assert self.make(tmp_path, backoffice_path, application_url).absolute_url == expected
