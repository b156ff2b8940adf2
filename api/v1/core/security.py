import secrets

from fastapi import Depends, Header, Query

from api.config.settings import Settings, get_settings
from api.v1.core.exceptions import UnauthorizedError


def token_matches(candidate: str | None, secret: str) -> bool:
    """Constant-time comparison; an unset secret never matches."""
    if not secret or not candidate:
        return False
    return secrets.compare_digest(candidate.encode(), secret.encode())


def parse_bearer(authorization: str | None) -> str | None:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


async def require_sync_token(
    authorization: str | None = Header(None, alias="Authorization"),
    settings: Settings = Depends(get_settings),
) -> None:
    """Reject the request with 401 unless it carries the sync endpoint key."""
    if not token_matches(parse_bearer(authorization), settings.sync_endpoint_key):
        raise UnauthorizedError()


async def require_query_token(
    token: str | None = Query(None),
    settings: Settings = Depends(get_settings),
) -> None:
    """Same check for callers that can only put the key in the URL (Slack)."""
    if not token_matches(token, settings.sync_endpoint_key):
        raise UnauthorizedError()


# Convenience type aliases for dependency injection
SyncTokenDep = Depends(require_sync_token)
QueryTokenDep = Depends(require_query_token)
