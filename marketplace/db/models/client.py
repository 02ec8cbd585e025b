# marketplace/db/models/client.py
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import relationship

from marketplace.db.base import Base, new_id
from marketplace.db.models.enums import RequestStatus


class Client(Base):
    __tablename__ = "clients"

    id = Column(String(32), primary_key=True, default=new_id)
    user_id = Column(String(64), nullable=False, unique=True, index=True)
    full_name = Column(String(200), nullable=False, index=True)

    # contact details
    primary_contact = Column(String(50), nullable=False)
    secondary_contact = Column(String(50), nullable=True)
    email = Column(String(254), nullable=False, unique=True)

    # location
    gps_address = Column(String(100), nullable=True)
    nearby_landmark = Column(String(200), nullable=True)
    region = Column(String(100), nullable=True, index=True)
    city = Column(String(100), nullable=True, index=True)
    district = Column(String(100), nullable=True)
    locality = Column(String(100), nullable=True)

    # identification
    id_type = Column(String(50), nullable=True)
    id_number = Column(String(100), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    service_requests = relationship(
        "ClientServiceRequest",
        back_populates="client",
        order_by="ClientServiceRequest.request_date",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )
    provider_ratings = relationship(
        "ClientProviderRating",
        back_populates="client",
        order_by="ClientProviderRating.date",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )

    @property
    def contact_details(self) -> dict:
        return {
            "primary_contact": self.primary_contact,
            "secondary_contact": self.secondary_contact,
            "email": self.email,
        }

    @property
    def location(self) -> dict:
        return {
            "gps_address": self.gps_address,
            "nearby_landmark": self.nearby_landmark,
            "region": self.region,
            "city": self.city,
            "district": self.district,
            "locality": self.locality,
        }

    @property
    def id_details(self) -> dict:
        return {"id_type": self.id_type, "id_number": self.id_number}


class ClientServiceRequest(Base):
    __tablename__ = "client_service_requests"
    __table_args__ = (UniqueConstraint("client_id", "request_number", name="uq_client_request_number"),)

    request_id = Column(String(32), primary_key=True, default=new_id)
    client_id = Column(String(32), ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True)
    request_number = Column(String(40), nullable=False)
    service_id = Column(String(32), nullable=False, index=True)
    request_date = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    status = Column(String(20), nullable=False, default=RequestStatus.PENDING.value, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # provider snapshot taken when the request was filed
    provider_id = Column(String(32), nullable=False, index=True)
    provider_name = Column(String(200), nullable=False)
    provider_phone = Column(String(50), nullable=True)
    provider_email = Column(String(254), nullable=True)

    client = relationship("Client", back_populates="service_requests")

    @property
    def service_provider(self) -> dict:
        return {
            "provider_id": self.provider_id,
            "name": self.provider_name,
            "phone": self.provider_phone,
            "email": self.provider_email,
        }


class ClientProviderRating(Base):
    __tablename__ = "client_provider_ratings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    client_id = Column(String(32), ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True)
    provider_id = Column(String(32), nullable=False, index=True)
    service_id = Column(String(32), nullable=True)
    rating = Column(Integer, nullable=False)  # 1..5
    review = Column(Text, nullable=True)
    date = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    client = relationship("Client", back_populates="provider_ratings")
