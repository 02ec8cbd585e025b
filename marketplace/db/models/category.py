# marketplace/db/models/category.py
from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.orm import relationship

from marketplace.db.base import Base, new_id
from marketplace.db.models.enums import ChildMode


class Category(Base):
    """
    A grouping of services.

    child_mode decides what the category owns:
    - referenced: a set of Service ids (category_service_refs); the Service
      rows themselves live independently and are loaded on demand.
    - embedded: an ordered list of Subcategory rows that die with the category.
    """
    __tablename__ = "categories"

    id = Column(String(32), primary_key=True, default=new_id)
    name = Column(String(100), nullable=False, unique=True, index=True)
    description = Column(String(500), nullable=True)
    icon = Column(String, nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    child_mode = Column(String(16), nullable=False, default=ChildMode.REFERENCED.value)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    service_refs = relationship(
        "CategoryServiceRef",
        back_populates="category",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )

    subcategories = relationship(
        "Subcategory",
        back_populates="category",
        order_by="Subcategory.position",
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )

    # read-only view over the ref index; never written through
    services = relationship(
        "Service",
        secondary="category_service_refs",
        primaryjoin="Category.id == CategoryServiceRef.category_id",
        secondaryjoin="foreign(CategoryServiceRef.service_id) == Service.id",
        viewonly=True,
        lazy="select",
    )

    @property
    def service_ids(self) -> list[str]:
        return sorted(ref.service_id for ref in self.service_refs)

    @property
    def service_count(self) -> int:
        return len(self.service_refs)

    @property
    def is_embedded(self) -> bool:
        return self.child_mode == ChildMode.EMBEDDED.value


class CategoryServiceRef(Base):
    """One (category, service) pair of the denormalized index. The pair key makes it a set."""
    __tablename__ = "category_service_refs"

    category_id = Column(String(32), ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True)
    # no FK: services may be removed without touching the index, reconciliation catches it
    service_id = Column(String(32), primary_key=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    category = relationship("Category", back_populates="service_refs")


class Subcategory(Base):
    __tablename__ = "subcategories"
    __table_args__ = (UniqueConstraint("category_id", "name", name="uq_subcategory_name"),)

    id = Column(String(32), primary_key=True, default=new_id)
    category_id = Column(String(32), ForeignKey("categories.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    name = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)
    icon = Column(String, nullable=True)

    category = relationship("Category", back_populates="subcategories")
