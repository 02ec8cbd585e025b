# marketplace/services/service_lifecycle.py

from typing import Optional

from loguru import logger
from sqlalchemy import desc, or_

from marketplace.core.errors import InvalidCategoryError, ValidationError
from marketplace.core.pagination import PageRequest, page_result
from marketplace.db.base import new_id
from marketplace.db.models.category import Category
from marketplace.db.models.enums import CounterOp
from marketplace.db.models.service import Service, ServiceLocation, ServiceTag, sync_value_rows
from marketplace.schemas.service import ServiceCreate, ServiceFilters, ServiceUpdate
from marketplace.services.base import BaseService, require_id
from marketplace.services.category_service import CategoryService
from marketplace.services.counter_outbox import CounterOutbox

# columns that may not be cleared through a partial update
REQUIRED_FIELDS = ("title", "description", "is_active", "popular")


class ServiceLifecycleService(BaseService):
    def __init__(self, db, categories: CategoryService | None = None):
        super().__init__(db)
        self.categories = categories or CategoryService(db)
        self.outbox = CounterOutbox(db, self.categories)

    def _valid_category(self, category_id: str) -> Category:
        category = self.db.query(Category).filter(Category.id == category_id).first()
        if not category:
            raise InvalidCategoryError("Invalid category ID")
        if category.is_embedded:
            raise InvalidCategoryError("Category holds subcategories and cannot own services")
        return category

    def _search_clause(self, term: str):
        like = f"%{term.strip()}%"
        return or_(
            Service.title.ilike(like),
            Service.description.ilike(like),
            Service.tag_rows.any(ServiceTag.value.ilike(like)),
        )

    # Create service

    def create_service(self, data: ServiceCreate) -> Service:
        category_id = require_id(data.category_id, "category")
        with self.storage("create_service"):
            self._valid_category(category_id)

            service = Service(
                id=new_id(),
                category_id=category_id,
                title=data.title,
                description=data.description,
                long_description=data.long_description,
                icon=data.icon,
                is_active=data.is_active,
                popular=data.popular,
            )
            service.apply_pricing(data.pricing.model_dump(mode="json"))
            sync_value_rows(service.location_rows, data.locations, ServiceLocation)
            sync_value_rows(service.tag_rows, data.tags, ServiceTag)

            self.db.add(service)
            self.outbox.enqueue(category_id, service.id, CounterOp.INCREMENT)
            self.db.commit()

        logger.info("Created service {} in category {}", service.id, category_id)
        self.outbox.flush()
        return service

    # Read

    def get_service_by_id(self, service_id: str) -> Optional[Service]:
        service_id = require_id(service_id, "service")
        with self.storage("get_service_by_id"):
            return self.db.query(Service).filter(Service.id == service_id).first()

    def get_services_by_category(self, category_id: str, page_request: PageRequest) -> dict:
        category_id = require_id(category_id, "category")
        with self.storage("get_services_by_category"):
            query = (
                self.db.query(Service)
                .filter(Service.category_id == category_id, Service.is_active == True)  # noqa: E712
                .order_by(desc(Service.created_at), Service.id)
            )
            total = query.count()
            items = query.offset(page_request.offset).limit(page_request.limit).all()
        return page_result(items, total, page_request)

    def get_popular_services(self, limit: int = 6) -> list[Service]:
        if limit < 1:
            raise ValidationError("limit must be >= 1")
        with self.storage("get_popular_services"):
            return (
                self.db.query(Service)
                .filter(Service.popular == True, Service.is_active == True)  # noqa: E712
                .order_by(desc(Service.created_at), Service.id)
                .limit(limit)
                .all()
            )

    def search_services(self, query: str, limit: int = 20) -> list[Service]:
        if not query or not query.strip():
            raise ValidationError("Search query is required")
        with self.storage("search_services"):
            return (
                self.db.query(Service)
                .filter(Service.is_active == True, self._search_clause(query))  # noqa: E712
                .order_by(Service.title)
                .limit(limit)
                .all()
            )

    def get_all_services(self, page_request: PageRequest, filters: ServiceFilters | None = None) -> dict:
        filters = filters or ServiceFilters()
        if (
            filters.min_price is not None
            and filters.max_price is not None
            and filters.min_price > filters.max_price
        ):
            raise ValidationError("minPrice cannot be greater than maxPrice")

        with self.storage("get_all_services"):
            query = self.db.query(Service)
            if filters.category_id:
                query = query.filter(Service.category_id == filters.category_id)
            if filters.is_active is not None:
                query = query.filter(Service.is_active == filters.is_active)
            if filters.popular is not None:
                query = query.filter(Service.popular == filters.popular)
            if filters.locations:
                query = query.filter(Service.location_rows.any(ServiceLocation.value.in_(filters.locations)))
            if filters.search and filters.search.strip():
                query = query.filter(self._search_clause(filters.search))
            if filters.min_price is not None:
                query = query.filter(Service.base_price >= filters.min_price)
            if filters.max_price is not None:
                query = query.filter(Service.base_price <= filters.max_price)

            total = query.count()
            items = (
                query.order_by(desc(Service.created_at), Service.id)
                .offset(page_request.offset)
                .limit(page_request.limit)
                .all()
            )
        return page_result(items, total, page_request)

    # Update service

    def update_service(self, service_id: str, partial: ServiceUpdate) -> Optional[Service]:
        service_id = require_id(service_id, "service")
        changes = partial.model_dump(exclude_unset=True, mode="json")

        with self.storage("update_service"):
            service = self.db.query(Service).filter(Service.id == service_id).first()
            if not service:
                return None

            new_category_id = changes.pop("category_id", None)
            if new_category_id and new_category_id != service.category_id:
                self._valid_category(new_category_id)
                # the service moves: drop it from the old index, add it to the new one
                self.outbox.enqueue(service.category_id, service.id, CounterOp.DECREMENT)
                self.outbox.enqueue(new_category_id, service.id, CounterOp.INCREMENT)
                logger.info("Moving service {} from category {} to {}", service.id, service.category_id, new_category_id)
                service.category_id = new_category_id

            if "pricing" in changes:
                if changes["pricing"] is not None:
                    service.apply_pricing(changes["pricing"])
                del changes["pricing"]
            if "locations" in changes:
                sync_value_rows(service.location_rows, changes.pop("locations"), ServiceLocation)
            if "tags" in changes:
                sync_value_rows(service.tag_rows, changes.pop("tags"), ServiceTag)

            for field, value in changes.items():
                if value is None and field in REQUIRED_FIELDS:
                    continue
                setattr(service, field, value)

            self.db.commit()
            self.db.refresh(service)

        self.outbox.flush()
        return service

    def toggle_active(self, service_id: str) -> Optional[Service]:
        return self._toggle(service_id, "is_active")

    def toggle_popular(self, service_id: str) -> Optional[Service]:
        return self._toggle(service_id, "popular")

    def _toggle(self, service_id: str, field: str) -> Optional[Service]:
        service_id = require_id(service_id, "service")
        with self.storage(f"toggle {field}"):
            service = self.db.query(Service).filter(Service.id == service_id).first()
            if not service:
                return None
            setattr(service, field, not getattr(service, field))
            self.db.commit()
            self.db.refresh(service)
        return service

    # Delete service

    def delete_service(self, service_id: str) -> bool:
        service_id = require_id(service_id, "service")
        with self.storage("delete_service"):
            service = self.db.query(Service).filter(Service.id == service_id).first()
            if not service:
                return False
            self.outbox.enqueue(service.category_id, service.id, CounterOp.DECREMENT)
            self.db.delete(service)
            self.db.commit()

        logger.info("Deleted service {}", service_id)
        self.outbox.flush()
        return True

    def get_service_stats(self) -> dict:
        with self.storage("get_service_stats"):
            total = self.db.query(Service).count()
            active = self.db.query(Service).filter(Service.is_active == True).count()  # noqa: E712
            popular = self.db.query(Service).filter(Service.popular == True).count()  # noqa: E712
        return {"total": total, "active": active, "inactive": total - active, "popular": popular}
