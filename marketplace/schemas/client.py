# marketplace/schemas/client.py

from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field

from marketplace.schemas.common import CamelModel


class ClientContact(CamelModel):
    primary_contact: str = Field(min_length=1, max_length=50)
    secondary_contact: Optional[str] = Field(default=None, max_length=50)
    email: EmailStr


class ClientLocation(CamelModel):
    gps_address: Optional[str] = Field(default=None, max_length=100)
    nearby_landmark: Optional[str] = Field(default=None, max_length=200)
    region: Optional[str] = None
    city: Optional[str] = None
    district: Optional[str] = None
    locality: Optional[str] = None


class IdDetails(CamelModel):
    id_type: Optional[str] = None
    id_number: Optional[str] = None


class ClientCreate(CamelModel):
    full_name: str = Field(min_length=1, max_length=200)
    contact_details: ClientContact
    location: ClientLocation = Field(default_factory=ClientLocation)
    id_details: IdDetails = Field(default_factory=IdDetails)


class ClientUpdate(CamelModel):
    full_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    contact_details: Optional[ClientContact] = None
    location: Optional[ClientLocation] = None
    id_details: Optional[IdDetails] = None


class ClientResponse(CamelModel):
    id: str
    user_id: str
    full_name: str
    contact_details: ClientContact
    location: ClientLocation
    id_details: IdDetails
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ClientExists(CamelModel):
    exists: bool
    client_id: Optional[str] = None


# Requests a client files with providers
class ClientRequestCreate(CamelModel):
    provider_id: str = Field(min_length=1)
    service_id: str = Field(min_length=1)
    status: Optional[str] = None


class ProviderSnapshot(CamelModel):
    provider_id: str
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None


class ClientRequestResponse(CamelModel):
    request_id: str
    request_number: str
    service_id: str
    request_date: Optional[datetime] = None
    status: str
    service_provider: ProviderSnapshot
    updated_at: Optional[datetime] = None


# Ratings a client gives to providers
class ProviderRatingCreate(CamelModel):
    provider_id: str = Field(min_length=1)
    service_id: Optional[str] = None
    rating: int
    review: Optional[str] = Field(default=None, max_length=1000)


class ProviderRatingResponse(CamelModel):
    id: int
    provider_id: str
    service_id: Optional[str] = None
    rating: int
    review: Optional[str] = None
    date: Optional[datetime] = None


class ClientStats(CamelModel):
    total_requests: int
    pending: int
    in_progress: int
    completed: int
    cancelled: int
    average_rating_given: float
    total_ratings_given: int
