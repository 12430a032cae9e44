"""
OAuth 2.1 / OpenID Connect external login schemes with JWT validation.

Works with any OIDC compliant identity provider (Azure AD, Google, Auth0,
Okta, Cognito, ...). The provider's ID token, stored by the login callback,
is validated and mapped to a ClaimsIdentity that the external login helpers
consume.

Architecture:
- ExternalTokenValidator: signature, exp, iss and aud checks with TTL-cached JWKS
- ExternalLoginScheme: one configured provider and its back-office options
- RequestAuthenticationManager: AuthenticationManager bound to one HTTP request
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any, Optional

import jwt
from cachetools import TTLCache  # type: ignore[import-untyped]
from jwt import PyJWKClient

from ..constants import (
    BACKOFFICE_AUTHENTICATION_TYPE,
    BACKOFFICE_EXTERNAL_LOGIN_OPTIONS_PROPERTY,
    EXTERNAL_LOGIN_COOKIE_SUFFIX,
)
from .models import (
    AuthenticateResult,
    AuthenticationDescription,
    AuthenticationProperties,
    BackOfficeExternalLoginProviderOptions,
    Claim,
    ClaimsIdentity,
    ClaimTypes,
)

logger = logging.getLogger(__name__)

# Registered JWT claims that are not copied onto the identity
_RESERVED_CLAIMS = {
    "sub",
    "email",
    "name",
    "preferred_username",
    "properties",
    "iss",
    "aud",
    "exp",
    "nbf",
    "iat",
    "jti",
    "nonce",
}


class ExternalTokenValidator:
    """Validates ID tokens issued by one external identity provider.

    Validation:
    - Signature using JWKS from the provider (or a configured shared key)
    - Expiration (exp claim)
    - Issuer matches expected issuer (iss claim)
    - Audience includes this application (aud claim)

    Args:
        issuer_url: Expected issuer
        audience: Expected audience, usually the OAuth client id
        jwks_url: JWKS endpoint (default: <issuer>/.well-known/jwks.json)
        signing_key: Shared secret or PEM key; skips JWKS when set
        algorithms: Accepted algorithms (default: RS256/ES256, HS256 with signing_key)
        jwks_cache_ttl: JWKS client cache duration in seconds
        jwks_max_keys: Maximum cached signing keys
    """

    def __init__(
        self,
        issuer_url: str,
        audience: str,
        jwks_url: Optional[str] = None,
        signing_key: Optional[str] = None,
        algorithms: Optional[list[str]] = None,
        jwks_cache_ttl: int = 3600,
        jwks_max_keys: int = 16,
    ) -> None:
        if not issuer_url:
            raise ValueError("issuer_url must be set for ExternalTokenValidator")
        if not audience:
            raise ValueError("audience must be set for ExternalTokenValidator")

        self.issuer_url = issuer_url.rstrip("/")
        self.audience = audience
        self.jwks_url = jwks_url or f"{self.issuer_url}/.well-known/jwks.json"
        self.signing_key = signing_key
        if algorithms:
            self.algorithms = algorithms
        else:
            self.algorithms = ["HS256"] if signing_key else ["RS256", "ES256"]
        self.jwks_max_keys = jwks_max_keys

        # Expiring cache forces a JWKS re-fetch so rotated keys are picked up
        self._jwks_cache: TTLCache = TTLCache(maxsize=1, ttl=jwks_cache_ttl)

    def validate(self, token: str) -> dict[str, Any] | None:
        """Validate an ID token.

        Returns:
            Decoded claims dict if valid, None otherwise
        """
        try:
            if self.signing_key is not None:
                key: Any = self.signing_key
            else:
                key = self._get_jwks_client().get_signing_key_from_jwt(token).key

            claims: dict[str, Any] = jwt.decode(
                token,
                key,
                algorithms=self.algorithms,
                audience=self.audience,
                issuer=self.issuer_url,
                options={"require": ["exp", "iss", "aud", "sub"]},
            )
            logger.debug(f"External token validated for subject: {claims.get('sub')}")
            return claims

        except jwt.ExpiredSignatureError:
            logger.warning("External token validation failed: token expired")
            return None
        except jwt.InvalidAudienceError:
            logger.warning(f"External token validation failed: invalid audience (expected {self.audience})")
            return None
        except jwt.InvalidIssuerError:
            logger.warning(f"External token validation failed: invalid issuer (expected {self.issuer_url})")
            return None
        except jwt.PyJWTError as e:
            logger.warning(f"External token validation failed: {e}")
            return None
        except Exception as e:
            logger.error(f"Unexpected error validating external token: {e}", exc_info=True)
            return None

    def _get_jwks_client(self) -> PyJWKClient:
        if "jwks_client" in self._jwks_cache:
            return self._jwks_cache["jwks_client"]

        logger.debug(f"Initializing JWKS client for {self.jwks_url}")
        client = PyJWKClient(
            self.jwks_url,
            cache_keys=True,
            max_cached_keys=self.jwks_max_keys,
        )
        self._jwks_cache["jwks_client"] = client
        return client


def claims_identity_from_token(claims: dict[str, Any], authentication_type: str) -> ClaimsIdentity:
    """Map decoded ID token claims onto a ClaimsIdentity.

    Claims carry the token issuer so the login pair ends up scoped to it.
    """
    issuer = str(claims.get("iss") or authentication_type)
    identity = ClaimsIdentity(authentication_type)

    if claims.get("sub"):
        identity.add_claim(Claim(ClaimTypes.NAME_IDENTIFIER, str(claims["sub"]), issuer))

    name = claims.get("name") or claims.get("preferred_username")
    if name:
        identity.add_claim(Claim(ClaimTypes.NAME, str(name), issuer))

    if claims.get("email"):
        identity.add_claim(Claim(ClaimTypes.EMAIL, str(claims["email"]), issuer))

    for claim_type, value in claims.items():
        if claim_type in _RESERVED_CLAIMS:
            continue
        if claim_type == "given_name":
            claim_type = ClaimTypes.GIVEN_NAME
        elif claim_type == "family_name":
            claim_type = ClaimTypes.SURNAME
        elif claim_type == "roles":
            claim_type = ClaimTypes.ROLE

        values = value if isinstance(value, list) else [value]
        for item in values:
            if isinstance(item, (str, int, float, bool)):
                identity.add_claim(Claim(claim_type, str(item), issuer))

    return identity


@dataclass
class ExternalLoginScheme:
    """A configured external identity provider."""

    authentication_type: str
    caption: Optional[str]
    validator: ExternalTokenValidator
    options: Optional[BackOfficeExternalLoginProviderOptions] = None
    backoffice: bool = True
    properties: dict[str, Any] = field(default_factory=dict)

    @property
    def cookie_name(self) -> str:
        return f"{self.authentication_type}{EXTERNAL_LOGIN_COOKIE_SUFFIX}"

    def describe(self) -> AuthenticationDescription:
        properties = dict(self.properties)
        if self.backoffice:
            properties[BACKOFFICE_AUTHENTICATION_TYPE] = True
            if self.options is not None:
                properties[BACKOFFICE_EXTERNAL_LOGIN_OPTIONS_PROPERTY] = self.options
        return AuthenticationDescription(
            authentication_type=self.authentication_type,
            caption=self.caption,
            properties=properties,
        )


class RequestAuthenticationManager:
    """AuthenticationManager for one HTTP request (Starlette/FastAPI Request).

    The external token is read from the scheme's external login cookie, or
    from a bearer Authorization header when no cookie is present.
    """

    def __init__(self, request: Any, schemes: Iterable[ExternalLoginScheme]) -> None:
        self.request = request
        self.schemes = {s.authentication_type: s for s in schemes}

    def get_authentication_types(
        self, predicate: Callable[[AuthenticationDescription], bool]
    ) -> list[AuthenticationDescription]:
        descriptions = [s.describe() for s in self.schemes.values()]
        return [d for d in descriptions if predicate(d)]

    async def authenticate(self, authentication_type: str) -> Optional[AuthenticateResult]:
        scheme = self.schemes.get(authentication_type)
        if scheme is None:
            logger.warning(f"No external login scheme registered for {authentication_type}")
            return None

        token = self._get_token(scheme)
        if not token:
            logger.debug(f"No external token for scheme {authentication_type}")
            return None

        # JWKS lookups block on HTTP
        loop = asyncio.get_running_loop()
        claims = await loop.run_in_executor(None, scheme.validator.validate, token)
        if not claims:
            return None

        properties = claims.get("properties")
        if not isinstance(properties, dict):
            properties = {}

        return AuthenticateResult(
            identity=claims_identity_from_token(claims, authentication_type),
            properties=AuthenticationProperties({str(k): str(v) for k, v in properties.items()}),
            description=scheme.describe(),
        )

    def _get_token(self, scheme: ExternalLoginScheme) -> str | None:
        cookies = getattr(self.request, "cookies", None) or {}
        token = cookies.get(scheme.cookie_name)
        if token:
            return str(token)

        headers = getattr(self.request, "headers", None)
        auth_header = headers.get("authorization") if headers is not None else None
        if auth_header and auth_header.startswith("Bearer "):
            return auth_header[7:]
        return None
