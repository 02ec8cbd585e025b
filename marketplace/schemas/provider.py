# marketplace/schemas/provider.py

from datetime import datetime
from typing import List, Optional

from pydantic import EmailStr, Field, field_validator

from marketplace.schemas.common import CamelModel, as_list, clean_strings
from marketplace.schemas.service import ServiceResponse


class ProviderContact(CamelModel):
    primary_contact: str = Field(min_length=1, max_length=50)
    secondary_contact: Optional[str] = Field(default=None, max_length=50)
    email: EmailStr
    emergency_contact: Optional[str] = Field(default=None, max_length=50)


class ProviderLocation(CamelModel):
    region: Optional[str] = None
    city: Optional[str] = None
    district: Optional[str] = None


class Witness(CamelModel):
    full_name: str = Field(min_length=1, max_length=200)
    contact: str = Field(min_length=1, max_length=50)
    id_type: str = Field(min_length=1, max_length=50)
    id_number: str = Field(min_length=1, max_length=100)
    relationship_to_provider: str = Field(alias="relationship", min_length=1, max_length=100)


class ProviderCreate(CamelModel):
    full_name: str = Field(min_length=1, max_length=200)
    contact_details: ProviderContact
    location: ProviderLocation = Field(default_factory=ProviderLocation)
    witnesses: List[Witness] = Field(default_factory=list)
    service_ids: List[str] = Field(default_factory=list)

    @field_validator("service_ids")
    @classmethod
    def unique_service_ids(cls, value: List[str]) -> List[str]:
        return clean_strings(value)


class ProviderUpdate(CamelModel):
    full_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    contact_details: Optional[ProviderContact] = None
    location: Optional[ProviderLocation] = None
    service_ids: Optional[List[str]] = None

    @field_validator("service_ids")
    @classmethod
    def unique_service_ids(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        return clean_strings(value)


class WitnessUpdate(CamelModel):
    witnesses: List[Witness]


class ProviderResponse(CamelModel):
    id: str
    user_id: str
    full_name: str
    contact_details: ProviderContact
    location: ProviderLocation
    witnesses: List[Witness]
    service_ids: List[str]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("witnesses", "service_ids", mode="before")
    @classmethod
    def proxy_to_list(cls, value):
        return as_list(value)


class WitnessDetails(CamelModel):
    provider_id: str
    witnesses: List[Witness]


class ProviderWithServices(CamelModel):
    provider: ProviderResponse
    services: List[ServiceResponse]


class ProvidersByService(CamelModel):
    service_id: str
    total: int
    providers: List[ProviderResponse]


# Ratings a provider receives from clients
class ClientRatingCreate(CamelModel):
    client_id: Optional[str] = None
    request_id: Optional[str] = None
    service_id: Optional[str] = None
    rating: int
    review: Optional[str] = Field(default=None, max_length=1000)


class ClientRatingResponse(CamelModel):
    id: int
    client_id: str
    request_id: Optional[str] = None
    service_id: Optional[str] = None
    rating: int
    review: Optional[str] = None
    date: Optional[datetime] = None


class ProviderRatings(CamelModel):
    average_rating: float
    total_ratings: int
    ratings: List[ClientRatingResponse]


# Requests filed with a provider
class ProviderRequestCreate(CamelModel):
    service_id: str = Field(min_length=1)
    client_id: Optional[str] = None
    status: Optional[str] = None


class StatusUpdate(CamelModel):
    status: str


class ProviderRequestResponse(CamelModel):
    request_id: str
    request_number: str
    service_id: str
    client_id: str
    request_date: Optional[datetime] = None
    status: str
    updated_at: Optional[datetime] = None


class ProviderStats(CamelModel):
    total_requests: int
    pending: int
    in_progress: int
    completed: int
    cancelled: int
    average_rating: float
    total_ratings: int
