"""
Back-office HTTP endpoints for external login.

Serves the login screen's provider list (with auto-redirect and deny-local
login hints) and the external login info of a provider callback.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Optional

from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from .config import SecuritySettings
from .core.hosting import BackOfficeInfo
from .security.external_login import (
    get_auto_login_provider,
    get_backoffice_external_login_providers,
    get_external_login_info,
    has_deny_local_login,
)
from .security.models import BackOfficeExternalLoginProviderOptions
from .security.oauth21 import (
    ExternalLoginScheme,
    ExternalTokenValidator,
    RequestAuthenticationManager,
)

logger = logging.getLogger(__name__)


def schemes_from_settings(security_settings: SecuritySettings) -> list[ExternalLoginScheme]:
    """Build one external login scheme per configured provider."""
    schemes = []
    for provider in security_settings.external_login_providers:
        validator = ExternalTokenValidator(
            issuer_url=provider.issuer_url,
            audience=provider.audience,
            jwks_url=provider.jwks_url,
            signing_key=provider.signing_key,
            jwks_cache_ttl=security_settings.jwks_cache_ttl,
        )
        schemes.append(
            ExternalLoginScheme(
                authentication_type=provider.authentication_type,
                caption=provider.caption,
                validator=validator,
                options=BackOfficeExternalLoginProviderOptions(
                    auto_redirect_login_to_external_provider=provider.auto_redirect,
                    deny_local_login=provider.deny_local_login,
                ),
            )
        )
    return schemes


class BackOfficeEndpoints:
    """Route handlers for back-office external login."""

    def __init__(
        self,
        schemes: Iterable[ExternalLoginScheme],
        backoffice_info: Optional[BackOfficeInfo] = None,
        path: str = "/backoffice",
    ) -> None:
        self.schemes = list(schemes)
        self.backoffice_info = backoffice_info
        self.path = "/" + path.strip("/")

    def routes(self) -> list[Route]:
        return [
            Route("/health", self.handle_health, methods=["GET"]),
            Route(f"{self.path}/external-logins", self.handle_external_logins, methods=["GET"]),
            Route(
                f"{self.path}/external-logins/{{provider}}",
                self.handle_external_login_info,
                methods=["GET"],
            ),
        ]

    def _manager(self, request: Request) -> RequestAuthenticationManager:
        return RequestAuthenticationManager(request, self.schemes)

    async def handle_health(self, request: Request) -> JSONResponse:
        """Health check endpoint for load balancers."""
        return JSONResponse(
            {
                "status": "healthy",
                "service": "cms-backoffice",
                "backoffice_url": self.backoffice_info.absolute_url if self.backoffice_info else None,
            }
        )

    async def handle_external_logins(self, request: Request) -> JSONResponse:
        manager = self._manager(request)
        providers = get_backoffice_external_login_providers(manager)
        return JSONResponse(
            {
                "providers": [
                    {"authentication_type": p.authentication_type, "caption": p.caption}
                    for p in providers
                ],
                "auto_login_provider": get_auto_login_provider(manager),
                "deny_local_login": has_deny_local_login(manager),
            }
        )

    async def handle_external_login_info(self, request: Request) -> JSONResponse:
        provider = request.path_params["provider"]
        manager = self._manager(request)
        if provider not in manager.schemes:
            return JSONResponse({"error": f"Unknown external login provider: {provider}"}, status_code=404)

        info = await get_external_login_info(manager, provider)
        if info is None:
            logger.info(f"External login with {provider} did not produce a usable identity")
            return JSONResponse({"error": "External login failed"}, status_code=401)

        return JSONResponse(info.to_dict())
