# tenant_relay/dependencies.py
import logging
from fastapi import HTTPException, Request, status, Header
from typing import Optional, Annotated

from .settings import settings
from .tenants.storage_interfaces import AbstractTenantDocumentBackend
from .utils.security import FernetEncryptor

logger = logging.getLogger(__name__)


async def get_admin_api_key(
    x_admin_api_key: Annotated[
        Optional[str],
        Header(description="The API Key for accessing admin routes.")
    ] = None
) -> str:
    """
    Validates admin API key authentication for protected admin endpoints.

    Returns the validated API key if authentication succeeds.
    """
    if not settings.admin_api_key:
        logger.critical("ADMIN_API_KEY is not configured on the server. Admin endpoints are effectively disabled.")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin API service is not configured properly (API Key missing on server).",
        )

    if not x_admin_api_key:
        logger.warning("Admin API: Missing X-Admin-API-Key header.")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated: X-Admin-API-Key header missing.",
            headers={"WWW-Authenticate": 'Basic realm="Admin Area"'},
        )

    if x_admin_api_key != settings.admin_api_key:
        logger.warning("Admin API: Invalid X-Admin-API-Key provided.")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden: Invalid API Key.",
            headers={"WWW-Authenticate": 'Basic realm="Admin Area"'},
        )

    return x_admin_api_key


def _require_state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        logger.error(f"Application component '{name}' is not initialized.")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Service component '{name}' unavailable.",
        )
    return value


async def get_tenant_backend(request: Request) -> AbstractTenantDocumentBackend:
    return _require_state(request, "tenant_backend")


async def get_encryptor(request: Request) -> Optional[FernetEncryptor]:
    return getattr(request.app.state, "encryptor", None)
