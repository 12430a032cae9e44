"""
Data models for the security module.

Separated from __init__.py to avoid circular imports between
the external login helpers and the authentication manager implementations.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


class ClaimTypes:
    """Standard claim type URIs used for identities issued by external providers."""

    NAME_IDENTIFIER = "http://schemas.xmlsoap.org/ws/2005/05/identity/claims/nameidentifier"
    NAME = "http://schemas.xmlsoap.org/ws/2005/05/identity/claims/name"
    EMAIL = "http://schemas.xmlsoap.org/ws/2005/05/identity/claims/emailaddress"
    GIVEN_NAME = "http://schemas.xmlsoap.org/ws/2005/05/identity/claims/givenname"
    SURNAME = "http://schemas.xmlsoap.org/ws/2005/05/identity/claims/surname"
    ROLE = "http://schemas.microsoft.com/ws/2008/06/identity/claims/role"


LOCAL_AUTHORITY = "LOCAL AUTHORITY"


@dataclass(frozen=True)
class Claim:
    """A single statement about a subject, made by an issuer."""

    type: str
    value: str
    issuer: str = LOCAL_AUTHORITY


@dataclass
class ClaimsIdentity:
    """An identity described by a set of claims.

    Attributes:
        authentication_type: Scheme that produced the identity (None when anonymous)
        claims: Claims in the order they were added
    """

    authentication_type: Optional[str] = None
    claims: list[Claim] = field(default_factory=list)

    @property
    def is_authenticated(self) -> bool:
        return bool(self.authentication_type)

    @property
    def name(self) -> Optional[str]:
        return self.find_first_value(ClaimTypes.NAME)

    def add_claim(self, claim: Claim) -> None:
        self.claims.append(claim)

    def find_first(self, claim_type: str) -> Optional[Claim]:
        for claim in self.claims:
            if claim.type == claim_type:
                return claim
        return None

    def find_first_value(self, claim_type: str) -> Optional[str]:
        claim = self.find_first(claim_type)
        return claim.value if claim is not None else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "authentication_type": self.authentication_type,
            "claims": [
                {"type": c.type, "value": c.value, "issuer": c.issuer} for c in self.claims
            ],
        }


@dataclass(frozen=True)
class UserLoginInfo:
    """Issuer-scoped login identifier pair."""

    login_provider: str
    provider_key: str
    provider_display_name: Optional[str] = None


@dataclass
class ExternalLoginInfo:
    """Normalized record of an external identity provider's callback result.

    Attributes:
        login: Associated login data
        default_user_name: Suggested user name for a user
        email: Email claim from the external identity
        external_identity: The external identity
    """

    login: UserLoginInfo
    default_user_name: Optional[str] = None
    email: Optional[str] = None
    external_identity: Optional[ClaimsIdentity] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "login_provider": self.login.login_provider,
            "provider_key": self.login.provider_key,
            "provider_display_name": self.login.provider_display_name,
            "default_user_name": self.default_user_name,
            "email": self.email,
            "external_identity": (
                self.external_identity.to_dict() if self.external_identity else None
            ),
        }


@dataclass
class AuthenticationProperties:
    """State round-tripped through an external authentication flow."""

    dictionary: dict[str, str] = field(default_factory=dict)


@dataclass
class AuthenticationDescription:
    """Describes an authentication scheme known to the authentication manager."""

    authentication_type: str
    caption: Optional[str] = None
    properties: Optional[dict[str, Any]] = field(default_factory=dict)


@dataclass
class AuthenticateResult:
    """Outcome of authenticating a request against one scheme."""

    identity: Optional[ClaimsIdentity] = None
    properties: Optional[AuthenticationProperties] = None
    description: Optional[AuthenticationDescription] = None


@dataclass
class BackOfficeExternalLoginProviderOptions:
    """Options attached to an external provider used for back-office login.

    Attributes:
        auto_redirect_login_to_external_provider: Skip the login screen and
            redirect straight to this provider
        deny_local_login: Hide local username/password login entirely
    """

    auto_redirect_login_to_external_provider: bool = False
    deny_local_login: bool = False
