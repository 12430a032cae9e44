"""
External login helpers for the back-office login flow.

Thin adapters over an authentication manager: list the external providers
offered on the back-office login screen, read their options, and turn an
external provider's callback result into ExternalLoginInfo.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Optional, Protocol

from ..constants import (
    BACKOFFICE_AUTHENTICATION_TYPE,
    BACKOFFICE_EXTERNAL_LOGIN_OPTIONS_PROPERTY,
    TWO_FACTOR_REMEMBER_BROWSER_COOKIE,
)
from .models import (
    AuthenticateResult,
    AuthenticationDescription,
    BackOfficeExternalLoginProviderOptions,
    Claim,
    ClaimsIdentity,
    ClaimTypes,
    ExternalLoginInfo,
    UserLoginInfo,
)

logger = logging.getLogger(__name__)


class AuthenticationManager(Protocol):
    """Authentication manager interface.

    Implementations know the registered authentication schemes and can
    authenticate the current request against one of them.
    """

    def get_authentication_types(
        self, predicate: Callable[[AuthenticationDescription], bool]
    ) -> list[AuthenticationDescription]:
        """Return registered schemes matching predicate, in registration order."""
        ...

    async def authenticate(self, authentication_type: str) -> Optional[AuthenticateResult]:
        """Authenticate the current request with the given scheme.

        Returns:
            AuthenticateResult, or None when the scheme produced nothing
        """
        ...


def _require_manager(manager: Optional[AuthenticationManager]) -> AuthenticationManager:
    if manager is None:
        raise ValueError("manager must not be None")
    return manager


def external_login_info_from_result(
    result: Optional[AuthenticateResult],
) -> Optional[ExternalLoginInfo]:
    """Extract login info out of an external identity.

    Args:
        result: Result of authenticating against an external scheme

    Returns:
        ExternalLoginInfo, or None when there is no identity or it carries
        no name identifier claim
    """
    if result is None or result.identity is None:
        return None

    id_claim = result.identity.find_first(ClaimTypes.NAME_IDENTIFIER)
    if id_claim is None:
        return None

    # User names never contain spaces
    name = result.identity.name
    if name is not None:
        name = name.replace(" ", "")

    email = result.identity.find_first_value(ClaimTypes.EMAIL)
    return ExternalLoginInfo(
        external_identity=result.identity,
        login=UserLoginInfo(id_claim.issuer, id_claim.value, id_claim.issuer),
        default_user_name=name,
        email=email,
    )


def get_external_authentication_types(
    manager: Optional[AuthenticationManager],
) -> list[AuthenticationDescription]:
    """Schemes that can be shown to a user: they have properties and a caption."""
    manager = _require_manager(manager)
    return manager.get_authentication_types(
        lambda d: d.properties is not None and d.caption is not None
    )


def _is_backoffice(description: AuthenticationDescription) -> bool:
    return BACKOFFICE_AUTHENTICATION_TYPE in (description.properties or {})


def _backoffice_options(
    description: AuthenticationDescription,
) -> Optional[BackOfficeExternalLoginProviderOptions]:
    if not _is_backoffice(description):
        return None
    options = (description.properties or {}).get(BACKOFFICE_EXTERNAL_LOGIN_OPTIONS_PROPERTY)
    if isinstance(options, BackOfficeExternalLoginProviderOptions):
        return options
    return None


def get_backoffice_external_login_providers(
    manager: Optional[AuthenticationManager],
) -> list[AuthenticationDescription]:
    return [d for d in get_external_authentication_types(manager) if _is_backoffice(d)]


def get_auto_login_provider(manager: Optional[AuthenticationManager]) -> Optional[str]:
    """Return the authentication type for the last registered back-office
    provider that asks for automatic redirect to the external login.
    """
    found = None
    for description in get_external_authentication_types(manager):
        options = _backoffice_options(description)
        if options is not None and options.auto_redirect_login_to_external_provider:
            found = description
    return found.authentication_type if found is not None else None


def has_deny_local_login(manager: Optional[AuthenticationManager]) -> bool:
    for description in get_external_authentication_types(manager):
        options = _backoffice_options(description)
        if options is not None and options.deny_local_login:
            return True
    return False


async def get_external_login_info(
    manager: Optional[AuthenticationManager],
    authentication_type: str,
    xsrf_key: Optional[str] = None,
    expected_value: Optional[str] = None,
) -> Optional[ExternalLoginInfo]:
    """Authenticate with an external scheme and extract login info.

    Args:
        manager: Authentication manager for the current request
        authentication_type: External scheme to authenticate against
        xsrf_key: When given, key that must be present in the result's
            properties dictionary
        expected_value: Value the xsrf_key entry must hold, typically the id of
            the user linking the login

    Returns:
        ExternalLoginInfo, or None when authentication produced no usable
        identity or the xsrf check failed
    """
    manager = _require_manager(manager)
    result = await manager.authenticate(authentication_type)

    if xsrf_key is None:
        return external_login_info_from_result(result)

    # Verify that the user id is the one we expect
    if (
        result is not None
        and result.properties is not None
        and result.properties.dictionary is not None
        and xsrf_key in result.properties.dictionary
        and result.properties.dictionary[xsrf_key] == expected_value
    ):
        return external_login_info_from_result(result)

    logger.warning(f"External login xsrf check failed for scheme {authentication_type}")
    return None


def create_two_factor_remember_browser_identity(
    manager: Optional[AuthenticationManager], user_id: str
) -> ClaimsIdentity:
    _require_manager(manager)

    identity = ClaimsIdentity(TWO_FACTOR_REMEMBER_BROWSER_COOKIE)
    identity.add_claim(Claim(ClaimTypes.NAME_IDENTIFIER, user_id))
    return identity
