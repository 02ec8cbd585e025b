# marketplace/services/category_service.py
# Category aggregation: the service-ref index, subcategories, stats and
# deletion-impact reports.

from typing import Optional

from loguru import logger
from sqlalchemy import asc, desc, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from marketplace.core.errors import DuplicateNameError, NotFoundError, ValidationError
from marketplace.core.pagination import PageRequest, page_result
from marketplace.db.models.category import Category, CategoryServiceRef, Subcategory
from marketplace.db.models.enums import ChildMode
from marketplace.db.models.provider import ProviderRenderedService, ProviderServiceRequest
from marketplace.db.models.service import Service
from marketplace.services.base import BaseService, require_id

CATEGORY_SORT_FIELDS = {"name": Category.name, "created_at": Category.created_at, "updated_at": Category.updated_at}
UPDATABLE_FIELDS = ("name", "description", "icon", "tags")


def _as_dict(partial) -> dict:
    if hasattr(partial, "model_dump"):
        return partial.model_dump(exclude_unset=True)
    return dict(partial or {})


class CategoryService(BaseService):

    # Create category

    def create_category(
        self,
        name: str,
        description: Optional[str] = None,
        icon: Optional[str] = None,
        tags: Optional[list] = None,
        child_mode: str = ChildMode.REFERENCED.value,
        subcategories: Optional[list] = None,
    ) -> Category:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Category name is required")
        try:
            mode = ChildMode(child_mode).value
        except ValueError:
            raise ValidationError(f"Invalid child mode: {child_mode}") from None
        if subcategories and mode != ChildMode.EMBEDDED.value:
            raise ValidationError("Only embedded categories can hold subcategories")
        sub_names = [_as_dict(sub).get("name") for sub in subcategories or []]
        if len(sub_names) != len(set(sub_names)):
            raise DuplicateNameError("Subcategory with this name already exists")

        with self.storage("create_category"):
            if self.db.query(Category.id).filter(Category.name == name).first():
                raise DuplicateNameError()

            category = Category(
                name=name,
                description=description,
                icon=icon,
                tags=list(tags or []),
                child_mode=mode,
            )
            for sub in subcategories or []:
                category.subcategories.append(Subcategory(**_as_dict(sub)))
            self.db.add(category)
            try:
                self.db.commit()
            except IntegrityError as exc:
                # lost a race on the unique name index
                self.db.rollback()
                raise DuplicateNameError() from exc

        logger.info("Created category {} ({}) in {} mode", category.id, category.name, mode)
        return category

    # Read

    def get_category_by_id(self, category_id: str, include_services: bool = False) -> Optional[Category]:
        category_id = require_id(category_id, "category")
        with self.storage("get_category_by_id"):
            query = self.db.query(Category)
            if include_services:
                query = query.options(selectinload(Category.services))
            return query.filter(Category.id == category_id).first()

    def list_categories(
        self,
        page_request: PageRequest,
        search: Optional[str] = None,
        tags: Optional[list] = None,
        sort_by: str = "name",
        sort_order: str = "asc",
    ) -> dict:
        column = CATEGORY_SORT_FIELDS.get(sort_by)
        if column is None:
            raise ValidationError(f"Unsupported sort field '{sort_by}'")
        if sort_order not in ("asc", "desc"):
            raise ValidationError("sort order must be 'asc' or 'desc'")

        with self.storage("list_categories"):
            query = self.db.query(Category)
            if search:
                like = f"%{search.strip()}%"
                query = query.filter(or_(Category.name.ilike(like), Category.description.ilike(like)))
            categories = query.order_by(asc(column) if sort_order == "asc" else desc(column)).all()

        # tags live in a JSON column, filtered here to stay portable across backends
        if tags:
            wanted = {tag.lower() for tag in tags}
            categories = [c for c in categories if wanted.intersection(c.tags or [])]

        total = len(categories)
        items = categories[page_request.offset:page_request.offset + page_request.limit]
        return page_result(items, total, page_request)

    def search_categories(self, query: str) -> list[Category]:
        term = (query or "").strip().lower()
        if not term:
            raise ValidationError("Search query is required")
        like = f"%{term}%"
        with self.storage("search_categories"):
            matches = (
                self.db.query(Category)
                .filter(or_(func.lower(Category.name).like(like), func.lower(Category.description).like(like)))
                .all()
            )
            tagged = [c for c in self.db.query(Category).all() if any(term in tag for tag in c.tags or [])]
        found = {c.id: c for c in matches + tagged}
        return sorted(found.values(), key=lambda c: c.name)

    # Update

    def update_category(self, category_id: str, partial) -> Optional[Category]:
        category_id = require_id(category_id, "category")
        changes = {k: v for k, v in _as_dict(partial).items() if k in UPDATABLE_FIELDS}

        with self.storage("update_category"):
            category = self.db.query(Category).filter(Category.id == category_id).first()
            if not category:
                return None

            if "name" in changes:
                name = (changes["name"] or "").strip()
                if not name:
                    raise ValidationError("Category name is required")
                clash = (
                    self.db.query(Category.id)
                    .filter(Category.name == name, Category.id != category_id)
                    .first()
                )
                if clash:
                    raise DuplicateNameError()
                changes["name"] = name

            for field, value in changes.items():
                if field == "tags":
                    value = list(value or [])
                setattr(category, field, value)

            try:
                self.db.commit()
            except IntegrityError as exc:
                self.db.rollback()
                raise DuplicateNameError() from exc
            self.db.refresh(category)
        return category

    # Deletion impact

    def get_category_deletion_info(self, category_id: str) -> dict:
        """
        Report what deleting the category would orphan, computed from live
        Service rows rather than the ref index. Read-only.
        """
        category_id = require_id(category_id, "category")
        with self.storage("get_category_deletion_info"):
            exists = self.db.query(Category.id).filter(Category.id == category_id).first() is not None
            service_ids = [
                row.id
                for row in self.db.query(Service.id)
                .filter(Service.category_id == category_id)
                .order_by(Service.id)
                .all()
            ]
            # services outlive their category, so a deleted id can still have dependents
            if not exists and not service_ids:
                raise NotFoundError("Category not found")

            provider_ids: set = set()
            request_count = 0
            if service_ids:
                rendered = (
                    self.db.query(ProviderRenderedService.provider_id)
                    .filter(ProviderRenderedService.value.in_(service_ids))
                    .all()
                )
                requested = (
                    self.db.query(ProviderServiceRequest.provider_id)
                    .filter(ProviderServiceRequest.service_id.in_(service_ids))
                    .all()
                )
                provider_ids = {row.provider_id for row in rendered} | {row.provider_id for row in requested}
                request_count = len(requested)

        return {
            "category_exists": exists,
            "service_count": len(service_ids),
            "affected_service_ids": service_ids,
            "can_safely_delete": not service_ids,
            "affected_provider_ids": sorted(provider_ids),
            "affected_request_count": request_count,
        }

    # Delete category (services keep their dangling category_id)

    def delete_category(self, category_id: str) -> bool:
        category_id = require_id(category_id, "category")
        with self.storage("delete_category"):
            category = self.db.query(Category).filter(Category.id == category_id).first()
            if not category:
                return False
            self.db.delete(category)
            self.db.commit()
        logger.info("Deleted category {}", category_id)
        return True

    # Stats

    def get_categories_with_counts(self) -> list[dict]:
        """Live service counts per category next to the stored index size."""
        with self.storage("get_categories_with_counts"):
            live = dict(
                self.db.query(Service.category_id, func.count(Service.id))
                .group_by(Service.category_id)
                .all()
            )
            categories = self.db.query(Category).all()

        rows = []
        for category in categories:
            live_count = live.get(category.id, 0)
            drift = category.service_count - live_count
            if drift:
                logger.warning(
                    "Category {} ref index drifted: stored={} live={}",
                    category.id,
                    category.service_count,
                    live_count,
                )
            rows.append({"category": category, "live_service_count": live_count, "drift": drift})
        rows.sort(key=lambda row: (-row["live_service_count"], row["category"].name))
        return rows

    def get_orphaned_services(self) -> list[dict]:
        """Services whose category_id no longer resolves, grouped by that id."""
        with self.storage("get_orphaned_services"):
            rows = (
                self.db.query(Service.category_id, Service.id)
                .outerjoin(Category, Category.id == Service.category_id)
                .filter(Category.id.is_(None))
                .order_by(Service.category_id, Service.id)
                .all()
            )

        grouped: dict = {}
        for category_id, service_id in rows:
            grouped.setdefault(category_id, []).append(service_id)
        if grouped:
            logger.warning("Found {} services pointing at {} deleted categories", len(rows), len(grouped))
        return [{"category_id": key, "service_ids": ids} for key, ids in grouped.items()]

    # Service ref index

    def add_service_ref(self, category_id: str, service_id: str) -> bool:
        """Stage a set-add on the ref index without committing. False when nothing changes."""
        category = self.db.query(Category).filter(Category.id == category_id).first()
        if not category:
            logger.warning("Category {} not found, skipping ref add for service {}", category_id, service_id)
            return False
        if category.is_embedded:
            logger.warning("Category {} holds subcategories, skipping ref add for service {}", category_id, service_id)
            return False
        if any(ref.service_id == service_id for ref in category.service_refs):
            return False
        category.service_refs.append(CategoryServiceRef(service_id=service_id))
        return True

    def remove_service_ref(self, category_id: str, service_id: str) -> bool:
        """Stage a set-remove on the ref index without committing. False when nothing changes."""
        category = self.db.query(Category).filter(Category.id == category_id).first()
        if not category:
            logger.warning("Category {} not found, skipping ref removal for service {}", category_id, service_id)
            return False
        for ref in list(category.service_refs):
            if ref.service_id == service_id:
                category.service_refs.remove(ref)
                return True
        return False

    def increment_service_count(self, category_id: str, service_id: str) -> bool:
        with self.storage("increment_service_count"):
            changed = self.add_service_ref(category_id, service_id)
            if changed:
                try:
                    self.db.commit()
                except IntegrityError:
                    # a concurrent writer added the same pair first
                    self.db.rollback()
                    return False
        return changed

    def decrement_service_count(self, category_id: str, service_id: str) -> bool:
        with self.storage("decrement_service_count"):
            changed = self.remove_service_ref(category_id, service_id)
            if changed:
                self.db.commit()
        return changed

    def reconcile_service_refs(self, category_id: Optional[str] = None) -> list[dict]:
        """Rebuild ref indexes from live Service rows and report what changed."""
        with self.storage("reconcile_service_refs"):
            query = self.db.query(Category).filter(Category.child_mode == ChildMode.REFERENCED.value)
            if category_id is not None:
                category_id = require_id(category_id, "category")
                query = query.filter(Category.id == category_id)
            categories = query.all()
            if category_id is not None and not categories:
                raise NotFoundError("Category not found")

            report = []
            for category in categories:
                live = {
                    row.id for row in self.db.query(Service.id).filter(Service.category_id == category.id).all()
                }
                stored = set(category.service_ids)
                added = sorted(live - stored)
                removed = sorted(stored - live)
                for ref in [ref for ref in category.service_refs if ref.service_id in removed]:
                    category.service_refs.remove(ref)
                for service_id in added:
                    category.service_refs.append(CategoryServiceRef(service_id=service_id))
                if added or removed:
                    logger.info(
                        "Reconciled category {}: added={} removed={}", category.id, added, removed
                    )
                report.append({"category_id": category.id, "added": added, "removed": removed})
            self.db.commit()
        return report

    # Embedded subcategories

    def _embedded_category(self, category_id: str) -> Category:
        category_id = require_id(category_id, "category")
        category = self.db.query(Category).filter(Category.id == category_id).first()
        if not category:
            raise NotFoundError("Category not found")
        if not category.is_embedded:
            raise ValidationError("Category references services and cannot hold subcategories")
        return category

    def add_subcategory(self, category_id: str, data) -> Subcategory:
        values = _as_dict(data)
        with self.storage("add_subcategory"):
            category = self._embedded_category(category_id)
            if any(sub.name == values.get("name") for sub in category.subcategories):
                raise DuplicateNameError("Subcategory with this name already exists")
            subcategory = Subcategory(**values)
            category.subcategories.append(subcategory)
            self.db.commit()
        return subcategory

    def update_subcategory(self, category_id: str, subcategory_id: str, data) -> Optional[Subcategory]:
        values = _as_dict(data)
        with self.storage("update_subcategory"):
            category = self._embedded_category(category_id)
            subcategory = next((s for s in category.subcategories if s.id == subcategory_id), None)
            if not subcategory:
                return None
            new_name = values.get("name")
            if new_name and any(s.name == new_name and s.id != subcategory_id for s in category.subcategories):
                raise DuplicateNameError("Subcategory with this name already exists")
            for field, value in values.items():
                if field == "name" and not value:
                    continue
                setattr(subcategory, field, value)
            self.db.commit()
        return subcategory

    def remove_subcategory(self, category_id: str, subcategory_id: str) -> bool:
        with self.storage("remove_subcategory"):
            category = self._embedded_category(category_id)
            subcategory = next((s for s in category.subcategories if s.id == subcategory_id), None)
            if not subcategory:
                return False
            category.subcategories.remove(subcategory)
            category.subcategories.reorder()
            self.db.commit()
        return True
