# sakany/app/api/endpoints/properties.py
from typing import List

from fastapi import APIRouter, Depends, status

from sakany.app.api import deps
from sakany.app.models.user import User
from sakany.app.schemas.property import PropertyCreate, PropertyResponse
from sakany.app.services.properties import PropertyService

router = APIRouter()


# 1. ALL LISTINGS, store order
@router.get("", response_model=List[PropertyResponse])
async def read_properties(service: PropertyService = Depends(deps.get_property_service)):
    return await service.list_properties()


# 2. FEATURED (first three); declared before /{property_id}
@router.get("/featured", response_model=List[PropertyResponse])
async def read_featured_properties(service: PropertyService = Depends(deps.get_property_service)):
    return await service.featured_properties()


# 3. DETAIL
@router.get("/{property_id}", response_model=PropertyResponse)
async def read_property(
        property_id: int,
        service: PropertyService = Depends(deps.get_property_service),
):
    return await service.get_property(property_id)


# 4. NEW LISTING (signed-in users only)
@router.post("", response_model=PropertyResponse, status_code=status.HTTP_201_CREATED)
async def create_property(
        property_in: PropertyCreate,
        current_user: User = Depends(deps.get_current_user),
        service: PropertyService = Depends(deps.get_property_service),
):
    return await service.create_property(current_user, property_in.model_dump())
