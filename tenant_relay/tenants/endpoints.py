# tenant_relay/tenants/endpoints.py
import logging
from fastapi import APIRouter, Body, Depends, Header, HTTPException, Path, Query, Response, status
from typing import Any, Dict, List, Annotated, Optional

from .errors import StoreUnavailable, VersionConflict
from .models import ProviderCredentialsUpdate, TenantFieldsUpdate, TenantRecord
from .service import TenantAdminService
from .storage_interfaces import AbstractTenantDocumentBackend
from ..dependencies import get_admin_api_key, get_encryptor, get_tenant_backend
from ..utils.security import FernetEncryptor

logger = logging.getLogger(__name__)

# Admin router for tenant management - requires admin API key authentication
tenants_admin_router = APIRouter(
    prefix="/admin/tenants",
    tags=["Admin - Tenants"],
    dependencies=[Depends(get_admin_api_key)]
)


async def get_tenant_admin_service(
    backend: Annotated[AbstractTenantDocumentBackend, Depends(get_tenant_backend)],
    encryptor: Annotated[Optional[FernetEncryptor], Depends(get_encryptor)]
) -> TenantAdminService:
    """Factory function to create TenantAdminService with injected dependencies."""
    return TenantAdminService(backend, encryptor)


def _record_response(record: TenantRecord, response: Response) -> Dict[str, Any]:
    if record.etag:
        response.headers["ETag"] = record.etag
    return record.to_public_dict()


@tenants_admin_router.get("/", response_model=List[Dict[str, Any]])
@tenants_admin_router.get("", response_model=List[Dict[str, Any]], include_in_schema=False)
async def list_tenants_endpoint(
    service: Annotated[TenantAdminService, Depends(get_tenant_admin_service)],
    skip: Annotated[int, Query(ge=0, description="Number of tenants to skip.")] = 0,
    limit: Annotated[int, Query(ge=1, le=100, description="Maximum number of tenants to return.")] = 100
):
    """List tenant records ordered by tenant id. Provider secrets are masked."""
    try:
        records = await service.list_tenants(skip=skip, limit=limit)
    except StoreUnavailable as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    return [r.to_public_dict() for r in records]


@tenants_admin_router.get("/{tenant_id}")
async def get_tenant_endpoint(
    tenant_id: Annotated[str, Path(description="The ID of the tenant to retrieve")],
    response: Response,
    service: Annotated[TenantAdminService, Depends(get_tenant_admin_service)]
):
    """Retrieve a tenant record. The current etag is returned in the ETag header."""
    try:
        record = await service.get_tenant(tenant_id)
    except StoreUnavailable as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    if not record:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tenant not found")
    return _record_response(record, response)


@tenants_admin_router.put("/{tenant_id}/provider-credentials")
async def set_provider_credentials_endpoint(
    tenant_id: Annotated[str, Path(description="The ID of the tenant to configure")],
    update: ProviderCredentialsUpdate,
    response: Response,
    service: Annotated[TenantAdminService, Depends(get_tenant_admin_service)],
    if_match: Annotated[Optional[str], Header(description="Etag the change is based on.")] = None
):
    """Set the conversational runtime secret and version for a tenant."""
    logger.info(f"API: Received provider credentials update for tenant '{tenant_id}'")
    try:
        record = await service.set_provider_credentials(tenant_id, update, if_match=if_match)
    except VersionConflict as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except StoreUnavailable as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    if not record:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tenant not found")
    return _record_response(record, response)


@tenants_admin_router.patch("/{tenant_id}/fields")
async def update_tenant_fields_endpoint(
    tenant_id: Annotated[str, Path(description="The ID of the tenant to update")],
    update: Annotated[TenantFieldsUpdate, Body()],
    response: Response,
    service: Annotated[TenantAdminService, Depends(get_tenant_admin_service)],
    if_match: Annotated[Optional[str], Header(description="Etag the change is based on.")] = None
):
    """Set administrative fields. Only the keys in the request change."""
    try:
        record = await service.update_fields(tenant_id, update.fields, if_match=if_match)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except VersionConflict as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except StoreUnavailable as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    if not record:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tenant not found")
    return _record_response(record, response)
