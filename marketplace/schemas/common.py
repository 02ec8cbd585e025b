# marketplace/schemas/common.py

from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base for every API model: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


def as_list(value):
    # association proxies and ORM collections are not plain lists
    if value is None or isinstance(value, (list, str, dict)):
        return value
    return list(value)


def clean_strings(values: Optional[List[str]], *, lower: bool = False) -> Optional[List[str]]:
    """Trim, drop blanks and de-duplicate while keeping order."""
    if values is None:
        return None
    cleaned = []
    for value in values:
        item = value.strip()
        if lower:
            item = item.lower()
        if item and item not in cleaned:
            cleaned.append(item)
    return cleaned


class Envelope(CamelModel, Generic[T]):
    success: bool = True
    data: Optional[T] = None
    message: Optional[str] = None


class Page(CamelModel, Generic[T]):
    items: List[T]
    total: int
    page: int
    limit: int
    total_pages: int
    has_next: bool
    has_prev: bool


class Deleted(CamelModel):
    id: str
    deleted: bool = True
