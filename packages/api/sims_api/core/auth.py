# This project was developed with assistance from AI tools.
"""Pure auth utility functions with no FastAPI or HTTP dependencies.

Keycloak issues differently-shaped tokens per identity provider (IDIR,
BCeID basic/business, service accounts). These helpers normalise the
claims the rest of the service cares about: a stable user GUID, a
human-readable identifier and the identity source.
"""

from collections.abc import Iterable

from sims_db.enums import IdentitySource

from ..schemas.auth import KeycloakToken


class MissingIdentityError(ValueError):
    """Raised when a token lacks the claims needed to identify the caller."""


_GUID_CLAIMS: dict[IdentitySource, str] = {
    IdentitySource.IDIR: "idir_user_guid",
    IdentitySource.BCEIDBASIC: "bceid_user_guid",
    IdentitySource.BCEIDBUSINESS: "bceid_user_guid",
    IdentitySource.DATABASE: "database_user_guid",
}

_IDENTIFIER_CLAIMS: dict[IdentitySource, str] = {
    IdentitySource.IDIR: "idir_username",
    IdentitySource.BCEIDBASIC: "bceid_username",
    IdentitySource.BCEIDBUSINESS: "bceid_username",
    IdentitySource.DATABASE: "username",
}


def get_identity_source(token: KeycloakToken) -> IdentitySource:
    """Map the token's ``identity_provider`` claim to an IdentitySource.

    Unknown or empty providers are treated as DATABASE (service accounts).
    """
    provider = (token.identity_provider or "").upper()
    try:
        return IdentitySource(provider)
    except ValueError:
        return IdentitySource.DATABASE


def _claim(token: KeycloakToken, name: str) -> str | None:
    value = getattr(token, name, None)
    return str(value) if value else None


def get_user_guid(token: KeycloakToken) -> str | None:
    """Return the provider GUID for the caller, falling back to ``sub``."""
    claim = _GUID_CLAIMS.get(get_identity_source(token))
    guid = _claim(token, claim) if claim else None
    guid = guid or token.sub or None
    return guid.lower() if guid else None


def get_user_identifier(token: KeycloakToken) -> str | None:
    """Return the provider username, falling back to ``preferred_username``."""
    claim = _IDENTIFIER_CLAIMS.get(get_identity_source(token))
    identifier = _claim(token, claim) if claim else None
    identifier = identifier or token.preferred_username or None
    return identifier.lower() if identifier else None


def get_service_client_id(token: KeycloakToken) -> str | None:
    """Return the client id of a service-account token, if present."""
    return token.clientId or token.azp or None


def require_identity(token: KeycloakToken) -> tuple[str, str, IdentitySource]:
    """Return ``(guid, identifier, source)`` or raise MissingIdentityError."""
    guid = get_user_guid(token)
    identifier = get_user_identifier(token)
    if not guid or not identifier:
        raise MissingIdentityError("Token is missing required identity claims")
    return guid, identifier, get_identity_source(token)


def has_at_least_one_valid_value(valid: Iterable[str], incoming: Iterable[str]) -> bool:
    """True when ``incoming`` holds any of ``valid``.

    An empty ``valid`` collection means no restriction and always passes.
    """
    valid_set = set(valid)
    if not valid_set:
        return True
    return not valid_set.isdisjoint(incoming)
