# marketplace/db/models/provider.py
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.ext.associationproxy import association_proxy
from sqlalchemy.orm import relationship

from marketplace.db.base import Base, new_id
from marketplace.db.models.enums import RequestStatus


class Provider(Base):
    __tablename__ = "providers"

    id = Column(String(32), primary_key=True, default=new_id)
    user_id = Column(String(64), nullable=False, unique=True, index=True)
    full_name = Column(String(200), nullable=False, index=True)

    # contact details
    primary_contact = Column(String(50), nullable=False)
    secondary_contact = Column(String(50), nullable=True)
    email = Column(String(254), nullable=False, unique=True)
    emergency_contact = Column(String(50), nullable=True)

    # location
    region = Column(String(100), nullable=True, index=True)
    city = Column(String(100), nullable=True, index=True)
    district = Column(String(100), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    witnesses = relationship(
        "ProviderWitness",
        order_by="ProviderWitness.id",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )
    rendered_service_rows = relationship(
        "ProviderRenderedService", cascade="all, delete-orphan", passive_deletes=True, lazy="selectin"
    )
    service_requests = relationship(
        "ProviderServiceRequest",
        back_populates="provider",
        order_by="ProviderServiceRequest.request_date",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )
    client_ratings = relationship(
        "ProviderClientRating",
        back_populates="provider",
        order_by="ProviderClientRating.date",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )

    service_ids = association_proxy("rendered_service_rows", "value")

    @property
    def contact_details(self) -> dict:
        return {
            "primary_contact": self.primary_contact,
            "secondary_contact": self.secondary_contact,
            "email": self.email,
            "emergency_contact": self.emergency_contact,
        }

    @property
    def location(self) -> dict:
        return {"region": self.region, "city": self.city, "district": self.district}


class ProviderWitness(Base):
    __tablename__ = "provider_witnesses"
    __table_args__ = (UniqueConstraint("provider_id", "id_number", name="uq_provider_witness_id_number"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    provider_id = Column(String(32), ForeignKey("providers.id", ondelete="CASCADE"), nullable=False, index=True)
    full_name = Column(String(200), nullable=False)
    contact = Column(String(50), nullable=False)
    id_type = Column(String(50), nullable=False)
    id_number = Column(String(100), nullable=False)
    relationship_to_provider = Column("relationship", String(100), nullable=False)


class ProviderRenderedService(Base):
    """Services a provider offers. Service ids are weak references."""
    __tablename__ = "provider_services"

    provider_id = Column(String(32), ForeignKey("providers.id", ondelete="CASCADE"), primary_key=True)
    value = Column("service_id", String(32), primary_key=True, index=True)


class ProviderServiceRequest(Base):
    __tablename__ = "provider_service_requests"
    __table_args__ = (UniqueConstraint("provider_id", "request_number", name="uq_provider_request_number"),)

    request_id = Column(String(32), primary_key=True, default=new_id)
    provider_id = Column(String(32), ForeignKey("providers.id", ondelete="CASCADE"), nullable=False, index=True)
    request_number = Column(String(40), nullable=False)
    service_id = Column(String(32), nullable=False, index=True)
    client_id = Column(String(64), nullable=False, index=True)
    request_date = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    status = Column(String(20), nullable=False, default=RequestStatus.PENDING.value, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    provider = relationship("Provider", back_populates="service_requests")


class ProviderClientRating(Base):
    """Append-only: no update or delete path exists for these rows."""
    __tablename__ = "provider_client_ratings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    provider_id = Column(String(32), ForeignKey("providers.id", ondelete="CASCADE"), nullable=False, index=True)
    client_id = Column(String(64), nullable=False, index=True)
    request_id = Column(String(32), nullable=True)
    service_id = Column(String(32), nullable=True)
    rating = Column(Integer, nullable=False)  # 1..5
    review = Column(Text, nullable=True)
    date = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    provider = relationship("Provider", back_populates="client_ratings")
