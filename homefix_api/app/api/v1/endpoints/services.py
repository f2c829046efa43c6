"""
Service listing endpoints for API v1.

Browsing is public.  Publishing, editing and deleting require a
service provider, and editing or deleting additionally requires that
the provider owns the listing.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, status

from homefix_api.app.core.security import Principal, require_roles
from homefix_api.app.schemas.service import ServiceCategory, ServiceCreate, ServiceRead, ServiceUpdate
from homefix_api.app.schemas.user import Role
from homefix_api.app.services.listing_service import ListingService


router = APIRouter()

provider_only = require_roles(Role.service_provider)


@router.get("/", response_model=List[ServiceRead])
async def list_services(
    category: Optional[ServiceCategory] = Query(None),
    emergency: Optional[bool] = Query(None),
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
) -> List[ServiceRead]:
    """List listings, newest first, filtered by category, emergency flag and price range."""
    return await ListingService.list_services(
        category=category,
        emergency=emergency,
        min_price=min_price,
        max_price=max_price,
    )


@router.get("/provider/services", response_model=List[ServiceRead])
async def list_provider_services(principal: Principal = Depends(provider_only)) -> List[ServiceRead]:
    """Listings owned by the calling provider."""
    return await ListingService.list_services(provider_id=principal.account_id)


@router.post("/", response_model=ServiceRead, status_code=status.HTTP_201_CREATED)
async def create_service(
    data: ServiceCreate,
    principal: Principal = Depends(provider_only),
) -> ServiceRead:
    return await ListingService.create_service(data, principal)


@router.get("/{service_id}", response_model=ServiceRead)
async def get_service(service_id: int = Path(..., description="ID of the service")) -> ServiceRead:
    return await ListingService.get_service(service_id)


@router.put("/{service_id}", response_model=ServiceRead)
async def update_service(
    data: ServiceUpdate,
    service_id: int = Path(..., description="ID of the service"),
    principal: Principal = Depends(provider_only),
) -> ServiceRead:
    """Merge the supplied fields onto the listing.  Owner only."""
    return await ListingService.update_service(service_id, data, principal)


@router.delete("/{service_id}")
async def delete_service(
    service_id: int = Path(..., description="ID of the service"),
    principal: Principal = Depends(provider_only),
) -> dict:
    await ListingService.delete_service(service_id, principal)
    return {"message": "Service deleted"}
