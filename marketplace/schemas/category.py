# marketplace/schemas/category.py

from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator, model_validator

from marketplace.db.models.enums import ChildMode
from marketplace.schemas.common import CamelModel, as_list, clean_strings
from marketplace.schemas.service import ServiceResponse


class SubcategoryCreate(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    icon: Optional[str] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class SubcategoryUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    icon: Optional[str] = None


class SubcategoryResponse(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    icon: Optional[str] = None
    position: int


class CategoryCreate(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    icon: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    child_mode: ChildMode = ChildMode.REFERENCED
    subcategories: List[SubcategoryCreate] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("tags")
    @classmethod
    def lower_tags(cls, value: List[str]) -> List[str]:
        return clean_strings(value, lower=True)

    @model_validator(mode="after")
    def subcategories_need_embedded_mode(self):
        if self.subcategories and self.child_mode != ChildMode.EMBEDDED:
            raise ValueError("subcategories are only allowed on embedded categories")
        return self


class CategoryUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    icon: Optional[str] = None
    tags: Optional[List[str]] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("tags")
    @classmethod
    def lower_tags(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        return clean_strings(value, lower=True)


class CategoryResponse(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    icon: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    child_mode: ChildMode
    service_count: int
    service_ids: List[str]
    subcategories: List[SubcategoryResponse] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("subcategories", "tags", mode="before")
    @classmethod
    def collection_to_list(cls, value):
        return as_list(value) or []


class CategoryWithServices(CategoryResponse):
    services: Optional[List[ServiceResponse]] = None


class CategoryDeletionInfo(CamelModel):
    category_exists: bool = True
    service_count: int
    affected_service_ids: List[str]
    can_safely_delete: bool
    affected_provider_ids: List[str] = Field(default_factory=list)
    affected_request_count: int = 0


class CategoryCount(CamelModel):
    category: CategoryResponse
    live_service_count: int
    # stored ref count minus live count; non-zero means the index drifted
    drift: int


class OrphanedServices(CamelModel):
    category_id: str
    service_ids: List[str]


class ReconcileResult(CamelModel):
    category_id: str
    added: List[str]
    removed: List[str]
