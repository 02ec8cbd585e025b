# marketplace/services/client_service.py

from typing import Optional

from loguru import logger
from sqlalchemy import desc, or_
from sqlalchemy.exc import IntegrityError

from marketplace.core.errors import ConflictError, NotFoundError, SelfRatingError, ValidationError
from marketplace.core.pagination import PageRequest, page_result
from marketplace.db.models.client import Client, ClientProviderRating, ClientServiceRequest
from marketplace.db.models.enums import RequestStatus
from marketplace.db.models.provider import Provider
from marketplace.schemas.client import ClientCreate, ClientRequestCreate, ClientUpdate, ProviderRatingCreate
from marketplace.services.base import BaseService, require_id
from marketplace.services import bookkeeping


class ClientService(BaseService):

    def _get(self, client_id: str) -> Client:
        client_id = require_id(client_id, "client")
        client = self.db.query(Client).filter(Client.id == client_id).first()
        if not client:
            raise NotFoundError("Client not found")
        return client

    def _provider(self, provider_id: str) -> Provider:
        provider_id = require_id(provider_id, "provider")
        provider = self.db.query(Provider).filter(Provider.id == provider_id).first()
        if not provider:
            raise NotFoundError("Service provider not found")
        return provider

    @staticmethod
    def _apply_profile(client: Client, data) -> None:
        if data.contact_details is not None:
            client.primary_contact = data.contact_details.primary_contact
            client.secondary_contact = data.contact_details.secondary_contact
            client.email = str(data.contact_details.email)
        if data.location is not None:
            for field, value in data.location.model_dump().items():
                setattr(client, field, value)
        if data.id_details is not None:
            client.id_type = data.id_details.id_type
            client.id_number = data.id_details.id_number

    # Create client

    def create_client(self, user_id: str, data: ClientCreate) -> Client:
        user_id = require_id(user_id, "user")
        with self.storage("create_client"):
            if self.db.query(Client.id).filter(Client.user_id == user_id).first():
                raise ConflictError("Client profile already exists")
            if self.db.query(Client.id).filter(Client.email == data.contact_details.email).first():
                raise ConflictError("Email is already registered to another client")

            client = Client(user_id=user_id, full_name=data.full_name.strip())
            self._apply_profile(client, data)
            self.db.add(client)
            try:
                self.db.commit()
            except IntegrityError as exc:
                self.db.rollback()
                raise ConflictError("Client profile already exists") from exc

        logger.info("Created client {} for user {}", client.id, user_id)
        return client

    # Read

    def get_client_by_id(self, client_id: str) -> Optional[Client]:
        client_id = require_id(client_id, "client")
        with self.storage("get_client_by_id"):
            return self.db.query(Client).filter(Client.id == client_id).first()

    def get_client_by_user_id(self, user_id: str) -> Optional[Client]:
        with self.storage("get_client_by_user_id"):
            return self.db.query(Client).filter(Client.user_id == user_id).first()

    def list_clients(
        self,
        page_request: PageRequest,
        search: Optional[str] = None,
        region: Optional[str] = None,
        city: Optional[str] = None,
        district: Optional[str] = None,
    ) -> dict:
        with self.storage("list_clients"):
            query = self.db.query(Client)
            if search and search.strip():
                like = f"%{search.strip()}%"
                query = query.filter(
                    or_(Client.full_name.ilike(like), Client.email.ilike(like), Client.primary_contact.ilike(like))
                )
            if region:
                query = query.filter(Client.region.ilike(region.strip()))
            if city:
                query = query.filter(Client.city.ilike(city.strip()))
            if district:
                query = query.filter(Client.district.ilike(district.strip()))

            total = query.count()
            items = (
                query.order_by(desc(Client.created_at), Client.id)
                .offset(page_request.offset)
                .limit(page_request.limit)
                .all()
            )
        return page_result(items, total, page_request)

    def search_clients_by_location(
        self,
        region: Optional[str] = None,
        city: Optional[str] = None,
        district: Optional[str] = None,
        locality: Optional[str] = None,
    ) -> list[Client]:
        filters = {"region": region, "city": city, "district": district, "locality": locality}
        if not any(filters.values()):
            raise ValidationError("At least one location field is required")
        with self.storage("search_clients_by_location"):
            query = self.db.query(Client)
            for field, value in filters.items():
                if value:
                    query = query.filter(getattr(Client, field).ilike(f"%{value.strip()}%"))
            return query.order_by(Client.full_name).all()

    # Update / delete

    def update_client(self, client_id: str, data: ClientUpdate) -> Optional[Client]:
        client_id = require_id(client_id, "client")
        with self.storage("update_client"):
            client = self.db.query(Client).filter(Client.id == client_id).first()
            if not client:
                return None
            if data.full_name:
                client.full_name = data.full_name.strip()
            self._apply_profile(client, data)
            try:
                self.db.commit()
            except IntegrityError as exc:
                self.db.rollback()
                raise ConflictError("Email is already registered to another client") from exc
            self.db.refresh(client)
        return client

    def delete_client(self, client_id: str) -> bool:
        client_id = require_id(client_id, "client")
        with self.storage("delete_client"):
            client = self.db.query(Client).filter(Client.id == client_id).first()
            if not client:
                return False
            self.db.delete(client)
            self.db.commit()
        logger.info("Deleted client {}", client_id)
        return True

    # Service requests

    def add_service_request(self, client_id: str, request: ClientRequestCreate) -> ClientServiceRequest:
        status = bookkeeping.validate_status(request.status or RequestStatus.PENDING.value)
        with self.storage("add_service_request"):
            client = self._get(client_id)
            provider = self._provider(request.provider_id)
            entry = ClientServiceRequest(
                request_number=bookkeeping.generate_request_number(),
                service_id=request.service_id,
                status=status,
                provider_id=provider.id,
                provider_name=provider.full_name,
                provider_phone=provider.primary_contact,
                provider_email=provider.email,
            )
            client.service_requests.append(entry)
            self.db.commit()
            self.db.refresh(entry)
        logger.info("Client {} filed request {} with provider {}", client.id, entry.request_number, provider.id)
        return entry

    def update_service_request_status(self, client_id: str, request_id: str, status) -> ClientServiceRequest:
        status = bookkeeping.validate_status(status)
        with self.storage("update_service_request_status"):
            client = self._get(client_id)
            entry = next((r for r in client.service_requests if r.request_id == request_id), None)
            if entry is None:
                raise NotFoundError("Service request not found")
            bookkeeping.ensure_not_terminal(entry.status)
            entry.status = status
            self.db.commit()
            self.db.refresh(entry)
        return entry

    def get_service_request_history(
        self, client_id: str, page_request: PageRequest, status: Optional[str] = None
    ) -> dict:
        if status is not None:
            status = bookkeeping.validate_status(status)
        with self.storage("get_service_request_history"):
            client = self._get(client_id)
            query = self.db.query(ClientServiceRequest).filter(ClientServiceRequest.client_id == client.id)
            if status is not None:
                query = query.filter(ClientServiceRequest.status == status)
            total = query.count()
            items = (
                query.order_by(desc(ClientServiceRequest.request_date), ClientServiceRequest.request_id)
                .offset(page_request.offset)
                .limit(page_request.limit)
                .all()
            )
        return page_result(items, total, page_request)

    # Ratings

    def add_service_provider_rating(self, client_id: str, rating: ProviderRatingCreate) -> ClientProviderRating:
        value = bookkeeping.validate_rating(rating.rating)
        with self.storage("add_service_provider_rating"):
            client = self._get(client_id)
            provider = self._provider(rating.provider_id)
            if provider.user_id == client.user_id:
                raise SelfRatingError("Cannot rate your own provider profile")

            entry = ClientProviderRating(
                provider_id=provider.id,
                service_id=rating.service_id,
                rating=value,
                review=rating.review,
            )
            client.provider_ratings.append(entry)
            self.db.commit()
        logger.info("Client {} rated provider {} with {}", client.id, provider.id, value)
        return entry

    def get_client_stats(self, client_id: str) -> dict:
        with self.storage("get_client_stats"):
            client = self._get(client_id)
            stats = bookkeeping.count_by_status(client.service_requests)
            stats["average_rating_given"] = bookkeeping.average_rating(client.provider_ratings)
            stats["total_ratings_given"] = len(client.provider_ratings)
        return stats
