# marketplace/services/provider_service.py
# Provider profiles plus their request ledger and the append-only ratings
# they receive from clients.

from typing import Optional

from loguru import logger
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from marketplace.core.errors import ConflictError, NotFoundError, SelfRatingError, ValidationError
from marketplace.core.pagination import PageRequest, page_result
from marketplace.db.models.enums import RequestStatus
from marketplace.db.models.provider import (
    Provider,
    ProviderClientRating,
    ProviderRenderedService,
    ProviderServiceRequest,
    ProviderWitness,
)
from marketplace.db.models.service import Service, sync_value_rows
from marketplace.schemas.provider import (
    ClientRatingCreate,
    ProviderCreate,
    ProviderRequestCreate,
    ProviderUpdate,
)
from marketplace.services.base import BaseService, require_id
from marketplace.services import bookkeeping


def _witness_rows(witnesses) -> list[ProviderWitness]:
    rows = []
    seen = set()
    for witness in witnesses:
        if witness.id_number in seen:
            raise ValidationError(f"Duplicate witness ID number: {witness.id_number}")
        seen.add(witness.id_number)
        rows.append(
            ProviderWitness(
                full_name=witness.full_name,
                contact=witness.contact,
                id_type=witness.id_type,
                id_number=witness.id_number,
                relationship_to_provider=witness.relationship_to_provider,
            )
        )
    return rows


class ProviderService(BaseService):

    def _get(self, provider_id: str) -> Provider:
        provider_id = require_id(provider_id, "provider")
        provider = self.db.query(Provider).filter(Provider.id == provider_id).first()
        if not provider:
            raise NotFoundError("Provider not found")
        return provider

    # Create provider

    def create_provider(self, user_id: str, data: ProviderCreate) -> Provider:
        user_id = require_id(user_id, "user")
        with self.storage("create_provider"):
            if self.db.query(Provider.id).filter(Provider.user_id == user_id).first():
                raise ConflictError("Provider profile already exists")
            if self.db.query(Provider.id).filter(Provider.email == data.contact_details.email).first():
                raise ConflictError("Email is already registered to another provider")

            provider = Provider(user_id=user_id, full_name=data.full_name.strip())
            self._apply_contact(provider, data.contact_details)
            self._apply_location(provider, data.location)
            provider.witnesses = _witness_rows(data.witnesses)
            sync_value_rows(provider.rendered_service_rows, data.service_ids, ProviderRenderedService)

            self.db.add(provider)
            try:
                self.db.commit()
            except IntegrityError as exc:
                self.db.rollback()
                raise ConflictError("Provider profile already exists") from exc

        logger.info("Created provider {} for user {}", provider.id, user_id)
        return provider

    @staticmethod
    def _apply_contact(provider: Provider, contact) -> None:
        provider.primary_contact = contact.primary_contact
        provider.secondary_contact = contact.secondary_contact
        provider.email = str(contact.email)
        provider.emergency_contact = contact.emergency_contact

    @staticmethod
    def _apply_location(provider: Provider, location) -> None:
        provider.region = location.region
        provider.city = location.city
        provider.district = location.district

    # Read

    def get_provider_by_id(self, provider_id: str) -> Optional[Provider]:
        provider_id = require_id(provider_id, "provider")
        with self.storage("get_provider_by_id"):
            return self.db.query(Provider).filter(Provider.id == provider_id).first()

    def get_provider_by_user_id(self, user_id: str) -> Optional[Provider]:
        with self.storage("get_provider_by_user_id"):
            return self.db.query(Provider).filter(Provider.user_id == user_id).first()

    def search_providers(self, term: str) -> list[Provider]:
        if not term or not term.strip():
            raise ValidationError("Search term is required")
        like = f"%{term.strip()}%"
        with self.storage("search_providers"):
            return (
                self.db.query(Provider)
                .filter(
                    or_(
                        Provider.full_name.ilike(like),
                        Provider.email.ilike(like),
                        Provider.region.ilike(like),
                        Provider.city.ilike(like),
                        Provider.district.ilike(like),
                    )
                )
                .order_by(Provider.full_name)
                .all()
            )

    def get_providers_by_location(
        self, region: Optional[str] = None, city: Optional[str] = None, district: Optional[str] = None
    ) -> list[Provider]:
        if not (region or city or district):
            raise ValidationError("At least one of region, city or district is required")
        with self.storage("get_providers_by_location"):
            query = self.db.query(Provider)
            if region:
                query = query.filter(Provider.region.ilike(region.strip()))
            if city:
                query = query.filter(Provider.city.ilike(city.strip()))
            if district:
                query = query.filter(Provider.district.ilike(district.strip()))
            return query.order_by(Provider.full_name).all()

    def list_providers(
        self,
        page_request: PageRequest,
        region: Optional[str] = None,
        city: Optional[str] = None,
        service_id: Optional[str] = None,
        min_rating: Optional[float] = None,
    ) -> dict:
        with self.storage("list_providers"):
            query = self.db.query(Provider)
            if region:
                query = query.filter(Provider.region.ilike(f"%{region.strip()}%"))
            if city:
                query = query.filter(Provider.city.ilike(f"%{city.strip()}%"))
            if service_id:
                query = query.join(ProviderRenderedService).filter(ProviderRenderedService.value == service_id)
            providers = query.order_by(Provider.full_name, Provider.id).all()

        # averages are derived from the rating rows, so this filter runs after the query
        if min_rating is not None:
            providers = [p for p in providers if bookkeeping.average_rating(p.client_ratings) >= min_rating]

        total = len(providers)
        items = providers[page_request.offset:page_request.offset + page_request.limit]
        return page_result(items, total, page_request)

    def get_providers_by_service(self, service_id: str) -> list[Provider]:
        service_id = require_id(service_id, "service")
        with self.storage("get_providers_by_service"):
            return (
                self.db.query(Provider)
                .join(ProviderRenderedService)
                .filter(ProviderRenderedService.value == service_id)
                .order_by(Provider.full_name)
                .all()
            )

    def get_provider_with_services(self, user_id: str) -> Optional[dict]:
        """
        Provider profile for a user together with the Service rows it renders.
        Ids that no longer resolve to a service are left out of `services`.
        """
        with self.storage("get_provider_with_services"):
            provider = self.db.query(Provider).filter(Provider.user_id == user_id).first()
            if not provider:
                return None
            ids = list(provider.service_ids)
            services = self.db.query(Service).filter(Service.id.in_(ids)).order_by(Service.title).all() if ids else []
        return {"provider": provider, "services": services}

    # Update provider

    def update_provider(self, provider_id: str, data: ProviderUpdate) -> Optional[Provider]:
        provider_id = require_id(provider_id, "provider")
        changes = data.model_dump(exclude_unset=True)
        with self.storage("update_provider"):
            provider = self.db.query(Provider).filter(Provider.id == provider_id).first()
            if not provider:
                return None

            if changes.get("full_name"):
                provider.full_name = data.full_name.strip()
            if data.contact_details is not None:
                self._apply_contact(provider, data.contact_details)
            if data.location is not None:
                self._apply_location(provider, data.location)
            if data.service_ids is not None:
                sync_value_rows(provider.rendered_service_rows, data.service_ids, ProviderRenderedService)

            try:
                self.db.commit()
            except IntegrityError as exc:
                self.db.rollback()
                raise ConflictError("Email is already registered to another provider") from exc
            self.db.refresh(provider)
        return provider

    def get_witness_details(self, provider_id: str) -> list[ProviderWitness]:
        with self.storage("get_witness_details"):
            return list(self._get(provider_id).witnesses)

    def update_witness_details(self, provider_id: str, witnesses) -> Provider:
        rows = _witness_rows(witnesses)
        with self.storage("update_witness_details"):
            provider = self._get(provider_id)
            # replace the whole list; flush the removals before the new rows hit the unique index
            provider.witnesses = []
            self.db.flush()
            provider.witnesses = rows
            self.db.commit()
        return provider

    def delete_provider(self, provider_id: str) -> bool:
        provider_id = require_id(provider_id, "provider")
        with self.storage("delete_provider"):
            provider = self.db.query(Provider).filter(Provider.id == provider_id).first()
            if not provider:
                return False
            self.db.delete(provider)
            self.db.commit()
        logger.info("Deleted provider {}", provider_id)
        return True

    # Ratings

    def add_client_rating(self, provider_id: str, rating: ClientRatingCreate) -> ProviderClientRating:
        value = bookkeeping.validate_rating(rating.rating)
        if not rating.client_id:
            raise ValidationError("Client ID is required")
        with self.storage("add_client_rating"):
            provider = self._get(provider_id)
            if rating.client_id == provider.user_id:
                raise SelfRatingError("Cannot rate your own profile")

            entry = ProviderClientRating(
                client_id=rating.client_id,
                request_id=rating.request_id,
                service_id=rating.service_id,
                rating=value,
                review=rating.review,
            )
            provider.client_ratings.append(entry)
            self.db.commit()
        logger.info("Provider {} rated {} by client {}", provider.id, value, rating.client_id)
        return entry

    def get_client_ratings(self, provider_id: str) -> list[ProviderClientRating]:
        with self.storage("get_client_ratings"):
            return list(self._get(provider_id).client_ratings)

    def get_provider_average_rating(self, provider_id: str) -> float:
        with self.storage("get_provider_average_rating"):
            provider = self._get(provider_id)
            return bookkeeping.average_rating(provider.client_ratings)

    # Service requests

    def add_service_request(self, provider_id: str, request: ProviderRequestCreate) -> ProviderServiceRequest:
        if not request.client_id:
            raise ValidationError("Client ID is required")
        status = bookkeeping.validate_status(request.status or RequestStatus.PENDING.value)
        with self.storage("add_service_request"):
            provider = self._get(provider_id)
            entry = ProviderServiceRequest(
                request_number=bookkeeping.generate_request_number(),
                service_id=request.service_id,
                client_id=request.client_id,
                status=status,
            )
            provider.service_requests.append(entry)
            self.db.commit()
            self.db.refresh(entry)
        logger.info("Request {} filed with provider {}", entry.request_number, provider.id)
        return entry

    def get_service_requests(self, provider_id: str, status: Optional[str] = None) -> list[ProviderServiceRequest]:
        if status is not None:
            status = bookkeeping.validate_status(status)
        with self.storage("get_service_requests"):
            requests = self._get(provider_id).service_requests
        return [r for r in requests if status is None or r.status == status]

    def update_service_request_status(self, provider_id: str, request_id: str, status) -> ProviderServiceRequest:
        status = bookkeeping.validate_status(status)
        with self.storage("update_service_request_status"):
            provider = self._get(provider_id)
            entry = next((r for r in provider.service_requests if r.request_id == request_id), None)
            if entry is None:
                raise NotFoundError("Service request not found")
            bookkeeping.ensure_not_terminal(entry.status)
            entry.status = status
            self.db.commit()
            self.db.refresh(entry)
        logger.info("Request {} of provider {} is now {}", request_id, provider.id, status)
        return entry

    def get_provider_stats(self, provider_id: str) -> dict:
        with self.storage("get_provider_stats"):
            provider = self._get(provider_id)
            stats = bookkeeping.count_by_status(provider.service_requests)
            stats["average_rating"] = bookkeeping.average_rating(provider.client_ratings)
            stats["total_ratings"] = len(provider.client_ratings)
        return stats
