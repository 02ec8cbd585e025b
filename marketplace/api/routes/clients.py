# marketplace/api/routes/clients.py

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from marketplace.api.deps import get_client_service, page_params
from marketplace.core.errors import NotFoundError
from marketplace.core.pagination import PageRequest
from marketplace.core.security import Identity, get_current_identity, require_owner
from marketplace.db.models.client import Client
from marketplace.schemas.client import (
    ClientCreate,
    ClientExists,
    ClientRequestCreate,
    ClientRequestResponse,
    ClientResponse,
    ClientStats,
    ClientUpdate,
    ProviderRatingCreate,
    ProviderRatingResponse,
)
from marketplace.schemas.common import Deleted, Envelope, Page
from marketplace.schemas.provider import StatusUpdate
from marketplace.services.client_service import ClientService

router = APIRouter(prefix="/clients", tags=["clients"])


def _owned(client_id: str, clients: ClientService, identity: Identity) -> Client:
    client = clients.get_client_by_id(client_id)
    if not client:
        raise NotFoundError("Client not found")
    require_owner(client.user_id, identity)
    return client


# Client creates their profile

@router.post("", response_model=Envelope[ClientResponse], status_code=status.HTTP_201_CREATED)
def create_client(
    data: ClientCreate,
    identity: Identity = Depends(get_current_identity),
    clients: ClientService = Depends(get_client_service),
):
    client = clients.create_client(identity.user_id, data)
    return {"success": True, "data": client, "message": "Client profile created successfully"}


# Browse clients

@router.get("", response_model=Envelope[Page[ClientResponse]])
def list_clients(
    search: Optional[str] = Query(None),
    region: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
    district: Optional[str] = Query(None),
    page_request: PageRequest = Depends(page_params),
    identity: Identity = Depends(get_current_identity),
    clients: ClientService = Depends(get_client_service),
):
    result = clients.list_clients(page_request, search=search, region=region, city=city, district=district)
    return {"success": True, "data": result}


@router.get("/search/location", response_model=Envelope[List[ClientResponse]])
def clients_by_location(
    region: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
    district: Optional[str] = Query(None),
    locality: Optional[str] = Query(None),
    identity: Identity = Depends(get_current_identity),
    clients: ClientService = Depends(get_client_service),
):
    return {"success": True, "data": clients.search_clients_by_location(region, city, district, locality)}


@router.get("/me", response_model=Envelope[ClientResponse])
def my_client_profile(
    identity: Identity = Depends(get_current_identity),
    clients: ClientService = Depends(get_client_service),
):
    client = clients.get_client_by_user_id(identity.user_id)
    if not client:
        raise NotFoundError("Client profile not found")
    return {"success": True, "data": client}


@router.get("/check-exists", response_model=Envelope[ClientExists])
def client_exists(
    identity: Identity = Depends(get_current_identity),
    clients: ClientService = Depends(get_client_service),
):
    client = clients.get_client_by_user_id(identity.user_id)
    return {"success": True, "data": {"exists": client is not None, "client_id": client.id if client else None}}


@router.get("/{client_id}", response_model=Envelope[ClientResponse])
def get_client(
    client_id: str,
    identity: Identity = Depends(get_current_identity),
    clients: ClientService = Depends(get_client_service),
):
    return {"success": True, "data": _owned(client_id, clients, identity)}


@router.put("/{client_id}", response_model=Envelope[ClientResponse])
def update_client(
    client_id: str,
    data: ClientUpdate,
    identity: Identity = Depends(get_current_identity),
    clients: ClientService = Depends(get_client_service),
):
    _owned(client_id, clients, identity)
    client = clients.update_client(client_id, data)
    return {"success": True, "data": client, "message": "Client updated successfully"}


@router.delete("/{client_id}", response_model=Envelope[Deleted])
def delete_client(
    client_id: str,
    identity: Identity = Depends(get_current_identity),
    clients: ClientService = Depends(get_client_service),
):
    _owned(client_id, clients, identity)
    clients.delete_client(client_id)
    return {"success": True, "data": {"id": client_id}, "message": "Client deleted successfully"}


# Service request history

@router.get("/{client_id}/service-requests", response_model=Envelope[Page[ClientRequestResponse]])
def request_history(
    client_id: str,
    status_filter: Optional[str] = Query(None, alias="status"),
    page_request: PageRequest = Depends(page_params),
    identity: Identity = Depends(get_current_identity),
    clients: ClientService = Depends(get_client_service),
):
    _owned(client_id, clients, identity)
    history = clients.get_service_request_history(client_id, page_request, status_filter or None)
    return {"success": True, "data": history}


@router.post(
    "/{client_id}/service-requests",
    response_model=Envelope[ClientRequestResponse],
    status_code=status.HTTP_201_CREATED,
)
def file_request(
    client_id: str,
    data: ClientRequestCreate,
    identity: Identity = Depends(get_current_identity),
    clients: ClientService = Depends(get_client_service),
):
    _owned(client_id, clients, identity)
    request = clients.add_service_request(client_id, data)
    return {"success": True, "data": request, "message": "Service request added successfully"}


@router.patch("/{client_id}/service-requests/{request_id}", response_model=Envelope[ClientRequestResponse])
def update_request_status(
    client_id: str,
    request_id: str,
    data: StatusUpdate,
    identity: Identity = Depends(get_current_identity),
    clients: ClientService = Depends(get_client_service),
):
    _owned(client_id, clients, identity)
    request = clients.update_service_request_status(client_id, request_id, data.status)
    return {"success": True, "data": request, "message": "Service request status updated successfully"}


# Client rates a provider

@router.post("/{client_id}/ratings", response_model=Envelope[ProviderRatingResponse], status_code=status.HTTP_201_CREATED)
def rate_provider(
    client_id: str,
    data: ProviderRatingCreate,
    identity: Identity = Depends(get_current_identity),
    clients: ClientService = Depends(get_client_service),
):
    _owned(client_id, clients, identity)
    rating = clients.add_service_provider_rating(client_id, data)
    return {"success": True, "data": rating, "message": "Rating added successfully"}


@router.get("/{client_id}/stats", response_model=Envelope[ClientStats])
def client_stats(
    client_id: str,
    identity: Identity = Depends(get_current_identity),
    clients: ClientService = Depends(get_client_service),
):
    _owned(client_id, clients, identity)
    return {"success": True, "data": clients.get_client_stats(client_id)}
