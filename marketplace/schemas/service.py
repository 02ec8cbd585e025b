# marketplace/schemas/service.py

from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from marketplace.db.models.enums import Currency
from marketplace.schemas.common import CamelModel, as_list, clean_strings


class AdditionalFee(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    amount: float = Field(ge=0)
    description: Optional[str] = None


class Pricing(CamelModel):
    base_price: float = Field(ge=0)
    currency: Currency = Currency.USD
    percentage_charge: Optional[float] = Field(default=None, ge=0, le=100)
    additional_fees: List[AdditionalFee] = Field(default_factory=list)
    notes: Optional[str] = None


def _required_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


# Shared fields
class ServiceBase(CamelModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1, max_length=500)
    long_description: Optional[str] = None
    icon: Optional[str] = None
    locations: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)

    @field_validator("title", "description")
    @classmethod
    def strip_text(cls, value: str) -> str:
        return _required_text(value)

    @field_validator("locations")
    @classmethod
    def clean_locations(cls, value: List[str]) -> List[str]:
        return clean_strings(value)

    @field_validator("tags")
    @classmethod
    def lower_tags(cls, value: List[str]) -> List[str]:
        return clean_strings(value, lower=True)


class ServiceCreate(ServiceBase):
    category_id: str = Field(min_length=1)
    pricing: Pricing
    is_active: bool = True
    popular: bool = False


class ServiceUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, min_length=1, max_length=500)
    long_description: Optional[str] = None
    icon: Optional[str] = None
    category_id: Optional[str] = Field(default=None, min_length=1)
    pricing: Optional[Pricing] = None
    locations: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    is_active: Optional[bool] = None
    popular: Optional[bool] = None

    @field_validator("title", "description")
    @classmethod
    def strip_text(cls, value: Optional[str]) -> Optional[str]:
        return _required_text(value)

    @field_validator("locations")
    @classmethod
    def clean_locations(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        return clean_strings(value)

    @field_validator("tags")
    @classmethod
    def lower_tags(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        return clean_strings(value, lower=True)


class ServiceFilters(CamelModel):
    category_id: Optional[str] = None
    is_active: Optional[bool] = None
    popular: Optional[bool] = None
    locations: Optional[List[str]] = None
    search: Optional[str] = None
    min_price: Optional[float] = Field(default=None, ge=0)
    max_price: Optional[float] = Field(default=None, ge=0)


# What API returns
class ServiceResponse(CamelModel):
    id: str
    category_id: str
    title: str
    description: str
    long_description: Optional[str] = None
    icon: Optional[str] = None
    pricing: Pricing
    locations: List[str]
    tags: List[str]
    is_active: bool
    popular: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("locations", "tags", mode="before")
    @classmethod
    def proxy_to_list(cls, value):
        return as_list(value)


class ServiceStats(CamelModel):
    total: int
    active: int
    inactive: int
    popular: int
