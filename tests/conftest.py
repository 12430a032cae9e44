"""
Shared fixtures for the CMS back-office tests.
"""

import logging
import time

import jwt
import pytest

from cms_backoffice.application import ApplicationBase
from cms_backoffice.composing.current import Current
from cms_backoffice.config import (
    Configs,
    ExternalLoginProviderSettings,
    GlobalSettings,
    HostingSettings,
    SecuritySettings,
    WebRoutingSettings,
)
from cms_backoffice.core.hosting import BackOfficeInfo, HostingEnvironment
from cms_backoffice.core.logging_setup import clear_log_enrichers
from cms_backoffice.core.profiling import VoidProfiler
from cms_backoffice.version import __version__

ISSUER = "https://login.example.com"
AUDIENCE = "cms-backoffice-client"
SIGNING_KEY = "test-signing-key-that-is-long-enough-for-hs256"


@pytest.fixture(autouse=True)
def reset_application_state():
    """Every test starts and ends without global application state."""
    Current.reset()
    yield
    Current.reset()
    clear_log_enrichers()
    ApplicationBase.application_init_handlers.clear()
    ApplicationBase.application_error_handlers.clear()
    ApplicationBase.application_end_handlers.clear()


@pytest.fixture
def restore_root_logging():
    """Restore root handlers after tests that reconfigure logging."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)


def make_token(**overrides):
    """Create an HS256 ID token accepted by the test providers."""
    claims = {
        "sub": "user-123",
        "iss": ISSUER,
        "aud": AUDIENCE,
        "exp": int(time.time()) + 300,
        "iat": int(time.time()),
        "name": "Jane Doe",
        "email": "jane@example.com",
    }
    claims.update(overrides)
    claims = {k: v for k, v in claims.items() if v is not None}
    return jwt.encode(claims, SIGNING_KEY, algorithm="HS256")


@pytest.fixture
def providers():
    return [
        ExternalLoginProviderSettings(
            authentication_type="Google",
            issuer_url=ISSUER,
            audience=AUDIENCE,
            caption="Sign in with Google",
            signing_key=SIGNING_KEY,
        ),
        ExternalLoginProviderSettings(
            authentication_type="AzureAD",
            issuer_url=ISSUER,
            audience=AUDIENCE,
            caption="Sign in with Azure AD",
            signing_key=SIGNING_KEY,
            auto_redirect=True,
            deny_local_login=True,
        ),
    ]


@pytest.fixture
def configs(tmp_path, providers):
    return Configs(
        global_settings=GlobalSettings(
            configuration_status=__version__,
            backoffice_path="/backoffice",
            register_type=None,
            log_level="WARNING",
        ),
        hosting=HostingSettings(
            debug=False,
            application_physical_path=str(tmp_path),
            application_virtual_path="/",
        ),
        web_routing=WebRoutingSettings(application_url="https://cms.example.com"),
        security=SecuritySettings(external_login_providers=providers, jwks_cache_ttl=60),
    )


@pytest.fixture
def collaborators(configs):
    """Keyword arguments for the explicit ApplicationBase constructor."""
    hosting_environment = HostingEnvironment(configs.hosting)
    return {
        "logger": logging.getLogger("tests.application"),
        "configs": configs,
        "hosting_environment": hosting_environment,
        "backoffice_info": BackOfficeInfo(
            configs.global_settings, hosting_environment, configs.web_routing
        ),
        "profiler": VoidProfiler(),
    }
