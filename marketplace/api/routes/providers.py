# marketplace/api/routes/providers.py

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from marketplace.api.deps import get_client_service, get_provider_service, page_params
from marketplace.core.errors import AccessDeniedError, NotFoundError, SelfRatingError
from marketplace.core.pagination import PageRequest
from marketplace.core.security import Identity, get_current_identity, require_owner
from marketplace.db.models.provider import Provider
from marketplace.schemas.common import Deleted, Envelope, Page
from marketplace.schemas.provider import (
    ClientRatingCreate,
    ClientRatingResponse,
    ProviderCreate,
    ProviderRatings,
    ProvidersByService,
    ProviderRequestCreate,
    ProviderRequestResponse,
    ProviderResponse,
    ProviderStats,
    ProviderUpdate,
    ProviderWithServices,
    StatusUpdate,
    WitnessDetails,
    WitnessUpdate,
)
from marketplace.services.client_service import ClientService
from marketplace.services.provider_service import ProviderService

router = APIRouter(prefix="/providers", tags=["providers"])


def _load(provider_id: str, providers: ProviderService) -> Provider:
    provider = providers.get_provider_by_id(provider_id)
    if not provider:
        raise NotFoundError("Provider not found")
    return provider


def _owned(provider_id: str, providers: ProviderService, identity: Identity) -> Provider:
    provider = _load(provider_id, providers)
    require_owner(provider.user_id, identity)
    return provider


# Provider creates their profile

@router.post("", response_model=Envelope[ProviderResponse], status_code=status.HTTP_201_CREATED)
def create_provider(
    data: ProviderCreate,
    identity: Identity = Depends(get_current_identity),
    providers: ProviderService = Depends(get_provider_service),
):
    provider = providers.create_provider(identity.user_id, data)
    return {"success": True, "data": provider, "message": "Provider profile created successfully"}


# Browse providers

@router.get("", response_model=Envelope[Page[ProviderResponse]])
def list_providers(
    region: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
    service_id: Optional[str] = Query(None, alias="serviceId"),
    min_rating: Optional[float] = Query(None, alias="minRating", ge=0, le=5),
    page_request: PageRequest = Depends(page_params),
    identity: Identity = Depends(get_current_identity),
    providers: ProviderService = Depends(get_provider_service),
):
    result = providers.list_providers(page_request, region=region, city=city, service_id=service_id, min_rating=min_rating)
    return {"success": True, "data": result}


@router.get("/search", response_model=Envelope[List[ProviderResponse]])
def search_providers(
    q: str = Query(..., min_length=1),
    identity: Identity = Depends(get_current_identity),
    providers: ProviderService = Depends(get_provider_service),
):
    return {"success": True, "data": providers.search_providers(q)}


@router.get("/location", response_model=Envelope[List[ProviderResponse]])
def providers_by_location(
    region: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
    district: Optional[str] = Query(None),
    identity: Identity = Depends(get_current_identity),
    providers: ProviderService = Depends(get_provider_service),
):
    return {"success": True, "data": providers.get_providers_by_location(region, city, district)}


@router.get("/services/{service_id}", response_model=Envelope[ProvidersByService])
def providers_by_service(
    service_id: str,
    identity: Identity = Depends(get_current_identity),
    providers: ProviderService = Depends(get_provider_service),
):
    found = providers.get_providers_by_service(service_id)
    return {"success": True, "data": {"service_id": service_id, "total": len(found), "providers": found}}


@router.get("/user/{user_id}/with-services", response_model=Envelope[ProviderWithServices])
def provider_with_services(
    user_id: str,
    identity: Identity = Depends(get_current_identity),
    providers: ProviderService = Depends(get_provider_service),
):
    require_owner(user_id, identity)
    result = providers.get_provider_with_services(user_id)
    if not result:
        raise NotFoundError("Provider not found")
    return {"success": True, "data": result}


@router.get("/me", response_model=Envelope[ProviderResponse])
def my_provider_profile(
    identity: Identity = Depends(get_current_identity),
    providers: ProviderService = Depends(get_provider_service),
):
    provider = providers.get_provider_by_user_id(identity.user_id)
    if not provider:
        raise NotFoundError("Provider profile not found")
    return {"success": True, "data": provider}


@router.get("/{provider_id}", response_model=Envelope[ProviderResponse])
def get_provider(
    provider_id: str,
    identity: Identity = Depends(get_current_identity),
    providers: ProviderService = Depends(get_provider_service),
):
    return {"success": True, "data": _load(provider_id, providers)}


@router.put("/{provider_id}", response_model=Envelope[ProviderResponse])
def update_provider(
    provider_id: str,
    data: ProviderUpdate,
    identity: Identity = Depends(get_current_identity),
    providers: ProviderService = Depends(get_provider_service),
):
    _owned(provider_id, providers, identity)
    provider = providers.update_provider(provider_id, data)
    return {"success": True, "data": provider, "message": "Provider updated successfully"}


@router.delete("/{provider_id}", response_model=Envelope[Deleted])
def delete_provider(
    provider_id: str,
    identity: Identity = Depends(get_current_identity),
    providers: ProviderService = Depends(get_provider_service),
):
    _owned(provider_id, providers, identity)
    providers.delete_provider(provider_id)
    return {"success": True, "data": {"id": provider_id}, "message": "Provider deleted successfully"}


@router.get("/{provider_id}/witness", response_model=Envelope[WitnessDetails])
def witness_details(
    provider_id: str,
    identity: Identity = Depends(get_current_identity),
    providers: ProviderService = Depends(get_provider_service),
):
    _owned(provider_id, providers, identity)
    data = {"provider_id": provider_id, "witnesses": providers.get_witness_details(provider_id)}
    return {"success": True, "data": data}


@router.put("/{provider_id}/witness", response_model=Envelope[ProviderResponse])
def update_witness(
    provider_id: str,
    data: WitnessUpdate,
    identity: Identity = Depends(get_current_identity),
    providers: ProviderService = Depends(get_provider_service),
):
    _owned(provider_id, providers, identity)
    provider = providers.update_witness_details(provider_id, data.witnesses)
    return {"success": True, "data": provider, "message": "Witness details updated successfully"}


# Ratings

@router.get("/{provider_id}/ratings", response_model=Envelope[ProviderRatings])
def provider_ratings(
    provider_id: str,
    identity: Identity = Depends(get_current_identity),
    providers: ProviderService = Depends(get_provider_service),
):
    ratings = providers.get_client_ratings(provider_id)
    data = {
        "average_rating": providers.get_provider_average_rating(provider_id),
        "total_ratings": len(ratings),
        "ratings": ratings,
    }
    return {"success": True, "data": data}


@router.post("/{provider_id}/ratings", response_model=Envelope[ClientRatingResponse], status_code=status.HTTP_201_CREATED)
def rate_provider_client(
    provider_id: str,
    data: ClientRatingCreate,
    identity: Identity = Depends(get_current_identity),
    providers: ProviderService = Depends(get_provider_service),
):
    provider = _load(provider_id, providers)
    if provider.user_id == identity.user_id:
        raise SelfRatingError("Cannot rate your own profile")
    rating = providers.add_client_rating(provider_id, data.model_copy(update={"client_id": identity.user_id}))
    return {"success": True, "data": rating, "message": "Rating added successfully"}


# Service requests

@router.get("/{provider_id}/requests", response_model=Envelope[List[ProviderRequestResponse]])
def provider_requests(
    provider_id: str,
    status_filter: Optional[str] = Query(None, alias="status"),
    identity: Identity = Depends(get_current_identity),
    providers: ProviderService = Depends(get_provider_service),
):
    _owned(provider_id, providers, identity)
    return {"success": True, "data": providers.get_service_requests(provider_id, status_filter)}


@router.post("/{provider_id}/requests", response_model=Envelope[ProviderRequestResponse], status_code=status.HTTP_201_CREATED)
def file_provider_request(
    provider_id: str,
    data: ProviderRequestCreate,
    identity: Identity = Depends(get_current_identity),
    providers: ProviderService = Depends(get_provider_service),
    clients: ClientService = Depends(get_client_service),
):
    # only callers with a client profile may file requests
    if not clients.get_client_by_user_id(identity.user_id):
        raise AccessDeniedError("Only clients can file service requests")
    request = providers.add_service_request(provider_id, data.model_copy(update={"client_id": identity.user_id}))
    return {"success": True, "data": request, "message": "Service request added successfully"}


@router.patch("/{provider_id}/requests/{request_id}", response_model=Envelope[ProviderRequestResponse])
def update_provider_request(
    provider_id: str,
    request_id: str,
    data: StatusUpdate,
    identity: Identity = Depends(get_current_identity),
    providers: ProviderService = Depends(get_provider_service),
):
    _owned(provider_id, providers, identity)
    request = providers.update_service_request_status(provider_id, request_id, data.status)
    return {"success": True, "data": request, "message": "Service request status updated successfully"}


@router.get("/{provider_id}/stats", response_model=Envelope[ProviderStats])
def provider_stats(
    provider_id: str,
    identity: Identity = Depends(get_current_identity),
    providers: ProviderService = Depends(get_provider_service),
):
    _owned(provider_id, providers, identity)
    return {"success": True, "data": providers.get_provider_stats(provider_id)}
