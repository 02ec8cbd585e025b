# marketplace/api/routes/categories.py

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from marketplace.api.deps import get_category_service, page_params
from marketplace.core.errors import NotFoundError, StorageError
from marketplace.core.pagination import PageRequest
from marketplace.schemas.category import (
    CategoryCount,
    CategoryCreate,
    CategoryDeletionInfo,
    CategoryResponse,
    CategoryUpdate,
    CategoryWithServices,
    OrphanedServices,
    ReconcileResult,
    SubcategoryCreate,
    SubcategoryResponse,
    SubcategoryUpdate,
)
from marketplace.schemas.common import Deleted, Envelope, Page
from marketplace.schemas.service import ServiceResponse
from marketplace.services.category_service import CategoryService

router = APIRouter(prefix="/categories", tags=["categories"])


def _with_services(category, include_services: bool) -> dict:
    payload = CategoryResponse.model_validate(category).model_dump()
    payload["services"] = (
        [ServiceResponse.model_validate(s) for s in category.services] if include_services else None
    )
    return payload


# List categories

@router.get("", response_model=Envelope[Page[CategoryResponse]])
def list_categories(
    search: Optional[str] = Query(None),
    tags: Optional[str] = Query(None, description="Comma separated tags"),
    sort_by: str = Query("name", alias="sortBy"),
    sort_order: str = Query("asc", alias="sortOrder"),
    page_request: PageRequest = Depends(page_params),
    categories: CategoryService = Depends(get_category_service),
):
    tag_list = [t.strip() for t in tags.split(",") if t.strip()] if tags else None
    result = categories.list_categories(page_request, search=search, tags=tag_list, sort_by=sort_by, sort_order=sort_order)
    return {"success": True, "data": result}


# Create category

@router.post("", response_model=Envelope[CategoryResponse], status_code=status.HTTP_201_CREATED)
def create_category(data: CategoryCreate, categories: CategoryService = Depends(get_category_service)):
    category = categories.create_category(
        name=data.name,
        description=data.description,
        icon=data.icon,
        tags=data.tags,
        child_mode=data.child_mode,
        subcategories=data.subcategories,
    )
    return {"success": True, "data": category, "message": "Category created successfully"}


@router.get("/search", response_model=Envelope[List[CategoryResponse]])
def search_categories(q: str = Query(..., min_length=1), categories: CategoryService = Depends(get_category_service)):
    return {"success": True, "data": categories.search_categories(q)}


# Live counts next to the stored index, for diagnostics

@router.get("/stats", response_model=Envelope[List[CategoryCount]])
def category_stats(categories: CategoryService = Depends(get_category_service)):
    return {"success": True, "data": categories.get_categories_with_counts()}


# Services left behind by deleted categories

@router.get("/orphans", response_model=Envelope[List[OrphanedServices]])
def orphaned_services(categories: CategoryService = Depends(get_category_service)):
    return {"success": True, "data": categories.get_orphaned_services()}


@router.post("/reconcile", response_model=Envelope[List[ReconcileResult]])
def reconcile_categories(
    category_id: Optional[str] = Query(None, alias="categoryId"),
    categories: CategoryService = Depends(get_category_service),
):
    return {"success": True, "data": categories.reconcile_service_refs(category_id)}


@router.get("/{category_id}", response_model=Envelope[CategoryWithServices])
def get_category(
    category_id: str,
    include_services: bool = Query(False, alias="includeServices"),
    categories: CategoryService = Depends(get_category_service),
):
    category = categories.get_category_by_id(category_id, include_services=include_services)
    if not category:
        raise NotFoundError("Category not found")
    return {"success": True, "data": _with_services(category, include_services)}


@router.put("/{category_id}", response_model=Envelope[CategoryResponse])
def update_category(
    category_id: str,
    data: CategoryUpdate,
    categories: CategoryService = Depends(get_category_service),
):
    category = categories.update_category(category_id, data)
    if not category:
        raise NotFoundError("Category not found")
    return {"success": True, "data": category, "message": "Category updated successfully"}


@router.get("/{category_id}/deletion-info", response_model=Envelope[CategoryDeletionInfo])
def category_deletion_info(category_id: str, categories: CategoryService = Depends(get_category_service)):
    try:
        info = categories.get_category_deletion_info(category_id)
    except StorageError as exc:
        raise StorageError("Storage is unavailable", status_code=status.HTTP_503_SERVICE_UNAVAILABLE) from exc
    return {"success": True, "data": info}


# Delete category (services are kept, their categoryId dangles)

@router.delete("/{category_id}", response_model=Envelope[Deleted])
def delete_category(category_id: str, categories: CategoryService = Depends(get_category_service)):
    if not categories.delete_category(category_id):
        raise NotFoundError("Category not found")
    return {"success": True, "data": {"id": category_id}, "message": "Category deleted successfully"}


# Embedded subcategories

@router.post(
    "/{category_id}/subcategories",
    response_model=Envelope[SubcategoryResponse],
    status_code=status.HTTP_201_CREATED,
)
def add_subcategory(
    category_id: str,
    data: SubcategoryCreate,
    categories: CategoryService = Depends(get_category_service),
):
    return {"success": True, "data": categories.add_subcategory(category_id, data)}


@router.put("/{category_id}/subcategories/{subcategory_id}", response_model=Envelope[SubcategoryResponse])
def update_subcategory(
    category_id: str,
    subcategory_id: str,
    data: SubcategoryUpdate,
    categories: CategoryService = Depends(get_category_service),
):
    subcategory = categories.update_subcategory(category_id, subcategory_id, data)
    if not subcategory:
        raise NotFoundError("Subcategory not found")
    return {"success": True, "data": subcategory}


@router.delete("/{category_id}/subcategories/{subcategory_id}", response_model=Envelope[Deleted])
def remove_subcategory(
    category_id: str,
    subcategory_id: str,
    categories: CategoryService = Depends(get_category_service),
):
    if not categories.remove_subcategory(category_id, subcategory_id):
        raise NotFoundError("Subcategory not found")
    return {"success": True, "data": {"id": subcategory_id}}
