"""Invintus Sync - Shared Route Dependencies."""

from typing import Optional

from fastapi import Depends, Header, Request
from sqlmodel import Session

from invintus_sync.config import settings
from invintus_sync.core.auth import Capability, Principal, principal_for_key
from invintus_sync.core.errors import Forbidden
from invintus_sync.core.options import SiteOptions, load_options
from invintus_sync.connectors.invintus.cache import TransientCache
from invintus_sync.connectors.invintus.client import InvintusClient
from invintus_sync.connectors.invintus.endpoints import InvintusEndpoints
from invintus_sync.database import get_session
from invintus_sync.sync.hooks import SyncHooks


def _bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if token and scheme.lower() == "bearer":
        return token.strip()
    return authorization.strip()


def get_principal(
    request: Request, authorization: Optional[str] = Header(default=None)
) -> Principal:
    """Resolve the caller from the Authorization header.

    The principal is kept on ``request.state`` so error responses can pick
    401 or 403.
    """
    principal = principal_for_key(_bearer(authorization), settings.api_keys)
    request.state.principal = principal
    return principal


def require_authenticated(principal: Principal = Depends(get_principal)) -> Principal:
    if not principal.is_authenticated:
        raise Forbidden("Sorry, you are not allowed to do that.")
    return principal


def require_capability(capability: Capability):
    def dependency(principal: Principal = Depends(require_authenticated)) -> Principal:
        if not principal.can(capability):
            raise Forbidden(f"Sorry, you are not allowed to {capability.value.replace('_', ' ')}.")
        return principal

    return dependency


def get_site_options(session: Session = Depends(get_session)) -> SiteOptions:
    return load_options(session)


def get_sync_hooks() -> SyncHooks:
    """Hooks applied to webhook reconciliations; override to register callbacks."""
    return SyncHooks()


async def get_invintus_client(options: SiteOptions = Depends(get_site_options)):
    client = InvintusClient(
        api_key=options.invintus_api_key, client_id=options.invintus_client_id
    )
    try:
        yield client
    finally:
        await client.close()


def get_invintus_endpoints(
    client: InvintusClient = Depends(get_invintus_client),
    session: Session = Depends(get_session),
) -> InvintusEndpoints:
    return InvintusEndpoints(client, TransientCache(session))
