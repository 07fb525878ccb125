"""Catalog and pricelist models — catalog units, pricelists, pricelist entries."""

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .base import Base


class CatalogUnit(Base):
    """A size+quantity SKU (e.g. business cards, 9x5cm, 500 units)."""

    __tablename__ = "catalog_units"
    id = Column(Integer, primary_key=True)
    product_name = Column(String(255), nullable=False)
    size_name = Column(String(255))
    units = Column(Integer, default=1)
    category = Column(String(100), default="general")
    base_price = Column(Numeric(12, 2), nullable=False, default=0)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    @property
    def display_name(self) -> str:
        if self.size_name:
            return f"{self.product_name} - {self.size_name}"
        return self.product_name


class Pricelist(Base):
    """Named set of per-unit customer prices, selectable per quote."""

    __tablename__ = "pricelists"
    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    description = Column(String(500))
    is_default = Column(Boolean, default=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    entries = relationship(
        "PricelistEntry", back_populates="pricelist", cascade="all, delete-orphan"
    )


class PricelistEntry(Base):
    __tablename__ = "pricelist_entries"
    id = Column(Integer, primary_key=True)
    pricelist_id = Column(
        Integer, ForeignKey("pricelists.id", ondelete="CASCADE"), nullable=False
    )
    catalog_unit_id = Column(Integer, ForeignKey("catalog_units.id"), nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)

    pricelist = relationship("Pricelist", back_populates="entries")

    __table_args__ = (
        UniqueConstraint("pricelist_id", "catalog_unit_id", name="uq_pricelist_unit"),
        Index("ix_pricelist_entries_unit", "catalog_unit_id"),
    )
