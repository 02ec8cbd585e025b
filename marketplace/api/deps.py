# marketplace/api/deps.py
# Per-request wiring: every component gets the request's Session.

from typing import Optional

from fastapi import Depends, Query
from sqlalchemy.orm import Session

from marketplace.core.config import Settings, get_settings
from marketplace.core.pagination import PageRequest, normalize_page
from marketplace.db.base import get_db
from marketplace.services.category_service import CategoryService
from marketplace.services.client_service import ClientService
from marketplace.services.provider_service import ProviderService
from marketplace.services.service_lifecycle import ServiceLifecycleService


def get_category_service(db: Session = Depends(get_db)) -> CategoryService:
    return CategoryService(db)


def get_service_lifecycle(db: Session = Depends(get_db)) -> ServiceLifecycleService:
    return ServiceLifecycleService(db)


def get_provider_service(db: Session = Depends(get_db)) -> ProviderService:
    return ProviderService(db)


def get_client_service(db: Session = Depends(get_db)) -> ClientService:
    return ClientService(db)


def page_params(
    page: int = Query(1),
    limit: Optional[int] = Query(None),
    settings: Settings = Depends(get_settings),
) -> PageRequest:
    return normalize_page(page, limit, default_limit=settings.default_page_size, max_limit=settings.max_page_size)
