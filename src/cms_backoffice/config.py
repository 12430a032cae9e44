"""
Configuration module for the CMS back-office application
Centralizes all configuration values and environment variables
"""

import json
import os
from dataclasses import dataclass, field
from typing import Any, Optional


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "on")


@dataclass
class HostingSettings:
    """Settings describing how the application is hosted"""

    debug: bool = field(default_factory=lambda: _env_bool("CMS_DEBUG"))
    application_physical_path: str = field(
        default_factory=lambda: os.getenv("CMS_APP_PATH", os.getcwd())
    )
    application_virtual_path: str = field(
        default_factory=lambda: os.getenv("CMS_VIRTUAL_PATH", "/")
    )

    # Relative to the application physical path
    log_directory: str = "data/logs"
    logging_config_file: str = "config/logging.json"
    logging_user_config_file: str = "config/logging.user.json"


@dataclass
class GlobalSettings:
    """Settings shared by the whole application"""

    configuration_status: str = field(
        default_factory=lambda: os.getenv("CMS_CONFIGURATION_STATUS", "")
    )
    backoffice_path: str = field(default_factory=lambda: os.getenv("CMS_BACKOFFICE_PATH", "/backoffice"))
    # Dotted path of a ServiceRegister subclass, e.g. "myapp.composing:MyRegister"
    register_type: Optional[str] = field(default_factory=lambda: os.getenv("CMS_REGISTER_TYPE"))
    log_level: str = field(default_factory=lambda: os.getenv("CMS_LOG_LEVEL", "WARNING"))


@dataclass
class WebRoutingSettings:
    """Settings for URL generation"""

    application_url: Optional[str] = field(default_factory=lambda: os.getenv("CMS_APPLICATION_URL"))


@dataclass
class ExternalLoginProviderSettings:
    """One external identity provider offered on the back-office login screen"""

    authentication_type: str
    issuer_url: str
    audience: str
    caption: Optional[str] = None
    jwks_url: Optional[str] = None
    signing_key: Optional[str] = None
    auto_redirect: bool = False
    deny_local_login: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ExternalLoginProviderSettings":
        missing = [k for k in ("authentication_type", "issuer_url", "audience") if not data.get(k)]
        if missing:
            raise ValueError(f"External login provider is missing required keys: {', '.join(missing)}")
        return cls(
            authentication_type=data["authentication_type"],
            issuer_url=data["issuer_url"],
            audience=data["audience"],
            caption=data.get("caption", data["authentication_type"]),
            jwks_url=data.get("jwks_url"),
            signing_key=data.get("signing_key"),
            auto_redirect=bool(data.get("auto_redirect", False)),
            deny_local_login=bool(data.get("deny_local_login", False)),
        )


def _load_external_login_providers() -> list[ExternalLoginProviderSettings]:
    raw = os.getenv("CMS_EXTERNAL_LOGIN_PROVIDERS", "").strip()
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"CMS_EXTERNAL_LOGIN_PROVIDERS is not valid JSON: {e}") from e
    if not isinstance(data, list):
        raise ValueError("CMS_EXTERNAL_LOGIN_PROVIDERS must be a JSON list")
    return [ExternalLoginProviderSettings.from_dict(item) for item in data]


@dataclass
class SecuritySettings:
    """Back-office security settings"""

    external_login_providers: list[ExternalLoginProviderSettings] = field(
        default_factory=_load_external_login_providers
    )
    jwks_cache_ttl: int = field(default_factory=lambda: int(os.getenv("CMS_JWKS_CACHE_TTL", "3600")))


@dataclass
class Configs:
    """All settings sections, as handed to the runtime"""

    global_settings: GlobalSettings
    hosting: HostingSettings
    web_routing: WebRoutingSettings
    security: SecuritySettings

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary"""
        return {
            "debug": self.hosting.debug,
            "application_physical_path": self.hosting.application_physical_path,
            "configuration_status": self.global_settings.configuration_status,
            "backoffice_path": self.global_settings.backoffice_path,
            "application_url": self.web_routing.application_url,
            "external_login_providers": [
                p.authentication_type for p in self.security.external_login_providers
            ],
        }


class ConfigsFactory:
    """Reads each settings section once from the environment."""

    def __init__(self) -> None:
        self.hosting_settings = HostingSettings()
        self.global_settings = GlobalSettings()
        self.web_routing_settings = WebRoutingSettings()
        self.security_settings = SecuritySettings()

    def create(self) -> Configs:
        return Configs(
            global_settings=self.global_settings,
            hosting=self.hosting_settings,
            web_routing=self.web_routing_settings,
            security=self.security_settings,
        )
