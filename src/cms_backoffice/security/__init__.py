"""
Back-office security: external (OAuth/OIDC) login support.

Architecture:
- AuthenticationManager Protocol: seam over the identity provider SDK
- external_login helpers: provider listing, options, ExternalLoginInfo extraction
- RequestAuthenticationManager: JWT-backed manager for Starlette requests
"""

from .external_login import (
    AuthenticationManager,
    create_two_factor_remember_browser_identity,
    external_login_info_from_result,
    get_auto_login_provider,
    get_backoffice_external_login_providers,
    get_external_authentication_types,
    get_external_login_info,
    has_deny_local_login,
)
from .models import (
    AuthenticateResult,
    AuthenticationDescription,
    AuthenticationProperties,
    BackOfficeExternalLoginProviderOptions,
    Claim,
    ClaimsIdentity,
    ClaimTypes,
    ExternalLoginInfo,
    UserLoginInfo,
)
from .oauth21 import (
    ExternalLoginScheme,
    ExternalTokenValidator,
    RequestAuthenticationManager,
    claims_identity_from_token,
)

__all__ = [
    "AuthenticateResult",
    "AuthenticationDescription",
    "AuthenticationManager",
    "AuthenticationProperties",
    "BackOfficeExternalLoginProviderOptions",
    "Claim",
    "ClaimTypes",
    "ClaimsIdentity",
    "ExternalLoginInfo",
    "ExternalLoginScheme",
    "ExternalTokenValidator",
    "RequestAuthenticationManager",
    "UserLoginInfo",
    "claims_identity_from_token",
    "create_two_factor_remember_browser_identity",
    "external_login_info_from_result",
    "get_auto_login_provider",
    "get_backoffice_external_login_providers",
    "get_external_authentication_types",
    "get_external_login_info",
    "has_deny_local_login",
]
