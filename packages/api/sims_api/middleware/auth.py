# This project was developed with assistance from AI tools.
"""
JWT authentication and the per-route authorization gate.

Validates Bearer tokens against Keycloak's JWKS endpoint, resolves the
caller to a system user (provisioning or reactivating it), then evaluates
the route's authorization scheme. Handlers receive the outcome as an
``AuthorizationContext`` argument.

Set AUTH_DISABLED=true to bypass token validation (tests / local dev without Keycloak).
"""

import logging
import time
from collections.abc import Callable
from typing import Annotated

import httpx
import jwt
from fastapi import Depends, HTTPException, Request, status
from sims_db import get_db
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.auth import (
    MissingIdentityError,
    get_service_client_id,
    require_identity,
)
from ..core.config import settings
from ..schemas.auth import (
    AuthorizationContext,
    AuthorizationScheme,
    KeycloakToken,
    SystemUserContext,
)
from ..services.authorization import AuthorizationEvaluationError, AuthorizationService
from ..services.user import SystemUserResolutionError, ensure_system_user

logger = logging.getLogger(__name__)

SchemeBuilder = Callable[[Request], AuthorizationScheme | None]

# ---------------------------------------------------------------------------
# JWKS cache
# ---------------------------------------------------------------------------

_jwks_data: dict | None = None
_jwks_fetched_at: float = 0


def _fetch_jwks() -> dict:
    """Fetch JSON Web Key Set from Keycloak. Raises on failure."""
    url = (
        f"{settings.KEYCLOAK_URL}/realms/{settings.KEYCLOAK_REALM}"
        "/protocol/openid-connect/certs"
    )
    response = httpx.get(url, timeout=5)
    response.raise_for_status()
    return response.json()


def _get_jwks(force_refresh: bool = False) -> dict:
    """Return cached JWKS, refreshing if stale or forced."""
    global _jwks_data, _jwks_fetched_at  # noqa: PLW0603

    now = time.time()
    if _jwks_data is None or force_refresh or (now - _jwks_fetched_at) > settings.JWKS_CACHE_TTL:
        _jwks_data = _fetch_jwks()
        _jwks_fetched_at = now

    return _jwks_data


def _find_key(jwks: dict, kid: str | None) -> jwt.PyJWK | None:
    for key in jwt.PyJWKSet.from_dict(jwks).keys:
        if key.key_id == kid:
            return key
    return None


def _get_signing_key(token: str) -> jwt.PyJWK:
    """Find the signing key for the given token from the JWKS."""
    try:
        kid = jwt.get_unverified_header(token).get("kid")
        key = _find_key(_get_jwks(), kid)
        if key is None:
            # kid not found -- cache-bust and retry once (key rotation)
            key = _find_key(_get_jwks(force_refresh=True), kid)
        if key is None:
            raise jwt.InvalidTokenError(f"No matching key found for kid={kid}")
        return key

    except httpx.HTTPError as exc:
        logger.error("Failed to fetch JWKS from Keycloak: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authentication service unavailable",
        ) from exc


# ---------------------------------------------------------------------------
# Token validation
# ---------------------------------------------------------------------------

def _extract_token(request: Request) -> str | None:
    """Extract Bearer token from Authorization header."""
    auth = request.headers.get("Authorization")
    if auth and auth.startswith("Bearer "):
        return auth[7:]
    return None


def _decode_token(token: str) -> KeycloakToken:
    """Validate and decode a JWT against Keycloak's JWKS."""
    signing_key = _get_signing_key(token)
    issuer = f"{settings.KEYCLOAK_URL}/realms/{settings.KEYCLOAK_REALM}"

    payload = jwt.decode(
        token,
        signing_key.key,
        algorithms=["RS256"],
        issuer=issuer,
        options={"verify_aud": False},
    )
    return KeycloakToken(**payload)


_DISABLED_TOKEN = KeycloakToken(
    sub="dev-user-guid",
    preferred_username="dev-user",
    identity_provider="idir",
    idir_user_guid="dev-user-guid",
    idir_username="dev-user",
    email="dev@sims.local",
    name="Dev User",
)


async def get_keycloak_token(request: Request) -> KeycloakToken:
    """FastAPI dependency: validate the Bearer JWT and return its claims.

    When AUTH_DISABLED=true, returns a fixed dev identity without validation.
    """
    if settings.AUTH_DISABLED:
        return _DISABLED_TOKEN

    token = _extract_token(request)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return _decode_token(token)
    except jwt.ExpiredSignatureError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc
    except jwt.InvalidTokenError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc


# Type alias for use in route signatures
CurrentToken = Annotated[KeycloakToken, Depends(get_keycloak_token)]


# ---------------------------------------------------------------------------
# Request gate
# ---------------------------------------------------------------------------

async def resolve_system_user(
    session: AsyncSession, token: KeycloakToken
) -> SystemUserContext | None:
    """Map the token to an active system user, provisioning it if needed.

    Service-account tokens without user claims resolve to None.

    Raises:
        MissingIdentityError: A user token lacks its identity claims.
    """
    try:
        user_guid, user_identifier, identity_source = require_identity(token)
    except MissingIdentityError:
        if get_service_client_id(token):
            return None
        raise

    return await ensure_system_user(
        session,
        user_guid,
        user_identifier,
        identity_source,
        display_name=token.display_name or token.name or None,
        given_name=token.given_name or None,
        family_name=token.family_name or None,
        email=token.email or None,
        agency=token.bceid_business_name,
    )


async def get_system_user(
    request: Request,
    token: CurrentToken,
    session: AsyncSession = Depends(get_db),
) -> SystemUserContext | None:
    """FastAPI dependency: resolve (and persist) the caller's system user.

    Provisioning and reactivation are committed here so they survive a
    later denial.
    """
    try:
        system_user = await resolve_system_user(session, token)
        await session.commit()
    except MissingIdentityError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except (SystemUserResolutionError, SQLAlchemyError) as exc:
        logger.exception(
            "System user resolution failed for %s %s", request.method, request.url.path
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to identify the caller",
        ) from exc
    return system_user


CurrentSystemUser = Annotated[SystemUserContext | None, Depends(get_system_user)]


def authorize(scheme_builder: SchemeBuilder | None = None):
    """Dependency factory: gate a route behind an authorization scheme.

    ``scheme_builder`` receives the request and returns the scheme for this
    call (typically closing over path parameters). Without one, any resolved
    system user passes.

    Usage:
        @router.get("/{project_id}")
        async def read(auth: AuthorizationContext = Depends(authorize(project_scheme))):
    """

    async def _gate(
        request: Request,
        token: CurrentToken,
        system_user: CurrentSystemUser,
        session: AsyncSession = Depends(get_db),
    ) -> AuthorizationContext:
        try:
            scheme = scheme_builder(request) if scheme_builder else None
        except (KeyError, ValueError) as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid request parameters",
            ) from exc

        try:
            granted = await AuthorizationService(session, token, system_user).authorize(scheme)
        except AuthorizationEvaluationError as exc:
            logger.exception(
                "Authorization could not be evaluated for %s %s", request.method, request.url.path
            )
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to authorize the request",
            ) from exc

        if not granted:
            logger.warning(
                "Access denied: user=%s route=%s %s",
                system_user.id if system_user else None,
                request.method,
                request.url.path,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access Denied",
            )

        return AuthorizationContext(token=token, system_user=system_user, granted=True)

    return _gate


# Any resolved system user
Authorized = Annotated[AuthorizationContext, Depends(authorize())]
