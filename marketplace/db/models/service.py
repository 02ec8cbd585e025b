# marketplace/db/models/service.py

from sqlalchemy import JSON, Boolean, Column, DateTime, Float, ForeignKey, String, Text, func
from sqlalchemy.ext.associationproxy import association_proxy
from sqlalchemy.orm import relationship

from marketplace.db.base import Base, new_id
from marketplace.db.models.enums import Currency


class Service(Base):
    __tablename__ = "services"

    id = Column(String(32), primary_key=True, default=new_id)

    # Plain column, not a FK: a deleted category leaves this dangling on purpose
    category_id = Column(String(32), nullable=False, index=True)

    # Basic details
    title = Column(String(200), nullable=False)
    description = Column(String(500), nullable=False)
    long_description = Column(Text, nullable=True)
    icon = Column(String, nullable=True)

    # Pricing
    base_price = Column(Float, nullable=False, default=0.0)
    currency = Column(String(3), nullable=False, default=Currency.USD.value)
    percentage_charge = Column(Float, nullable=True)
    additional_fees = Column(JSON, nullable=False, default=list)
    pricing_notes = Column(String, nullable=True)

    # Status
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    popular = Column(Boolean, nullable=False, default=False, index=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    location_rows = relationship(
        "ServiceLocation",
        order_by="ServiceLocation.value",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )
    tag_rows = relationship(
        "ServiceTag", order_by="ServiceTag.value", cascade="all, delete-orphan", passive_deletes=True, lazy="selectin"
    )

    locations = association_proxy("location_rows", "value", creator=lambda value: ServiceLocation(value=value))
    tags = association_proxy("tag_rows", "value", creator=lambda value: ServiceTag(value=value))

    @property
    def pricing(self) -> dict:
        return {
            "base_price": self.base_price,
            "currency": self.currency,
            "percentage_charge": self.percentage_charge,
            "additional_fees": list(self.additional_fees or []),
            "notes": self.pricing_notes,
        }

    def apply_pricing(self, pricing: dict) -> None:
        self.base_price = pricing["base_price"]
        self.currency = pricing.get("currency") or Currency.USD.value
        self.percentage_charge = pricing.get("percentage_charge")
        self.additional_fees = list(pricing.get("additional_fees") or [])
        self.pricing_notes = pricing.get("notes")


class ServiceLocation(Base):
    __tablename__ = "service_locations"

    service_id = Column(String(32), ForeignKey("services.id", ondelete="CASCADE"), primary_key=True)
    value = Column(String(200), primary_key=True, index=True)


class ServiceTag(Base):
    __tablename__ = "service_tags"

    service_id = Column(String(32), ForeignKey("services.id", ondelete="CASCADE"), primary_key=True)
    value = Column(String(100), primary_key=True, index=True)


def sync_value_rows(rows: list, values, row_class) -> None:
    """Make a set-like child collection hold exactly `values`, touching only the differences."""
    wanted = list(dict.fromkeys(values or []))
    for row in [row for row in rows if row.value not in wanted]:
        rows.remove(row)
    present = {row.value for row in rows}
    for value in wanted:
        if value not in present:
            rows.append(row_class(value=value))
