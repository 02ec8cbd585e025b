# marketplace/api/routes/services.py

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from marketplace.api.deps import get_service_lifecycle, page_params
from marketplace.core.errors import NotFoundError
from marketplace.core.pagination import PageRequest
from marketplace.schemas.common import Deleted, Envelope, Page
from marketplace.schemas.service import ServiceCreate, ServiceFilters, ServiceResponse, ServiceStats, ServiceUpdate
from marketplace.services.service_lifecycle import ServiceLifecycleService

router = APIRouter(prefix="/services", tags=["services"])


# List services with filters

@router.get("", response_model=Envelope[Page[ServiceResponse]])
def list_services(
    category_id: Optional[str] = Query(None, alias="categoryId"),
    is_active: Optional[bool] = Query(None, alias="isActive"),
    popular: Optional[bool] = Query(None),
    locations: Optional[List[str]] = Query(None),
    search: Optional[str] = Query(None),
    min_price: Optional[float] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[float] = Query(None, alias="maxPrice", ge=0),
    page_request: PageRequest = Depends(page_params),
    services: ServiceLifecycleService = Depends(get_service_lifecycle),
):
    filters = ServiceFilters(
        category_id=category_id,
        is_active=is_active,
        popular=popular,
        locations=locations,
        search=search,
        min_price=min_price,
        max_price=max_price,
    )
    return {"success": True, "data": services.get_all_services(page_request, filters)}


# Create service

@router.post("", response_model=Envelope[ServiceResponse], status_code=status.HTTP_201_CREATED)
def create_service(data: ServiceCreate, services: ServiceLifecycleService = Depends(get_service_lifecycle)):
    service = services.create_service(data)
    return {"success": True, "data": service, "message": "Service created successfully"}


@router.get("/popular", response_model=Envelope[List[ServiceResponse]])
def popular_services(
    limit: int = Query(6, ge=1, le=50),
    services: ServiceLifecycleService = Depends(get_service_lifecycle),
):
    return {"success": True, "data": services.get_popular_services(limit)}


@router.get("/search", response_model=Envelope[List[ServiceResponse]])
def search_services(
    q: str = Query(..., min_length=1),
    limit: int = Query(20, ge=1, le=100),
    services: ServiceLifecycleService = Depends(get_service_lifecycle),
):
    return {"success": True, "data": services.search_services(q, limit)}


@router.get("/stats", response_model=Envelope[ServiceStats])
def service_stats(services: ServiceLifecycleService = Depends(get_service_lifecycle)):
    return {"success": True, "data": services.get_service_stats()}


# Active services in one category

@router.get("/category/{category_id}", response_model=Envelope[Page[ServiceResponse]])
def services_by_category(
    category_id: str,
    page_request: PageRequest = Depends(page_params),
    services: ServiceLifecycleService = Depends(get_service_lifecycle),
):
    return {"success": True, "data": services.get_services_by_category(category_id, page_request)}


@router.get("/{service_id}", response_model=Envelope[ServiceResponse])
def get_service(service_id: str, services: ServiceLifecycleService = Depends(get_service_lifecycle)):
    service = services.get_service_by_id(service_id)
    if not service:
        raise NotFoundError("Service not found")
    return {"success": True, "data": service}


@router.put("/{service_id}", response_model=Envelope[ServiceResponse])
def update_service(
    service_id: str,
    data: ServiceUpdate,
    services: ServiceLifecycleService = Depends(get_service_lifecycle),
):
    service = services.update_service(service_id, data)
    if not service:
        raise NotFoundError("Service not found")
    return {"success": True, "data": service, "message": "Service updated successfully"}


@router.delete("/{service_id}", response_model=Envelope[Deleted])
def delete_service(service_id: str, services: ServiceLifecycleService = Depends(get_service_lifecycle)):
    if not services.delete_service(service_id):
        raise NotFoundError("Service not found")
    return {"success": True, "data": {"id": service_id}, "message": "Service deleted successfully"}


@router.patch("/{service_id}/toggle-active", response_model=Envelope[ServiceResponse])
def toggle_active(service_id: str, services: ServiceLifecycleService = Depends(get_service_lifecycle)):
    service = services.toggle_active(service_id)
    if not service:
        raise NotFoundError("Service not found")
    return {"success": True, "data": service}


@router.patch("/{service_id}/toggle-popular", response_model=Envelope[ServiceResponse])
def toggle_popular(service_id: str, services: ServiceLifecycleService = Depends(get_service_lifecycle)):
    service = services.toggle_popular(service_id)
    if not service:
        raise NotFoundError("Service not found")
    return {"success": True, "data": service}
