"""Supplier models — suppliers, their catalog offers, and fulfilment jobs."""

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .base import Base


class Supplier(Base):
    __tablename__ = "suppliers"
    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    company_name = Column(String(255))
    email = Column(String(255))
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    offers = relationship("SupplierOffer", back_populates="supplier")

    @property
    def display_name(self) -> str:
        return self.company_name or self.name


class SupplierOffer(Base):
    """A supplier's price and lead time for one catalog unit."""

    __tablename__ = "supplier_offers"
    id = Column(Integer, primary_key=True)
    supplier_id = Column(
        Integer, ForeignKey("suppliers.id", ondelete="CASCADE"), nullable=False
    )
    catalog_unit_id = Column(
        Integer, ForeignKey("catalog_units.id", ondelete="CASCADE"), nullable=False
    )
    price_per_unit = Column(Numeric(12, 2), nullable=False)
    delivery_days = Column(Integer)
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    supplier = relationship("Supplier", back_populates="offers")

    __table_args__ = (
        UniqueConstraint("supplier_id", "catalog_unit_id", name="uq_offer_supplier_unit"),
        Index("ix_supplier_offers_unit", "catalog_unit_id"),
    )


class SupplierJob(Base):
    """Fulfilment of one assigned quote item. Feeds supplier performance."""

    __tablename__ = "supplier_jobs"
    id = Column(Integer, primary_key=True)
    supplier_id = Column(Integer, ForeignKey("suppliers.id"), nullable=False)
    quote_id = Column(Integer, ForeignKey("quotes.id", ondelete="SET NULL"))
    quote_item_id = Column(Integer, ForeignKey("quote_items.id", ondelete="SET NULL"))
    catalog_unit_id = Column(Integer, ForeignKey("catalog_units.id"))
    quantity = Column(Integer, default=1)
    price_per_unit = Column(Numeric(12, 2))

    status = Column(String(20), default="pending")
    # pending | in_progress | ready | delivered | cancelled
    promised_delivery_days = Column(Integer)
    supplier_rating = Column(Float)  # 1-5, set by staff once ready
    cancelled_reason = Column(Text)

    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    supplier_ready_at = Column(DateTime)
    cancelled_at = Column(DateTime)

    supplier = relationship("Supplier", foreign_keys=[supplier_id])

    __table_args__ = (
        Index("ix_supplier_jobs_supplier", "supplier_id"),
        Index("ix_supplier_jobs_quote", "quote_id"),
        Index("ix_supplier_jobs_status", "status"),
    )
