"""Quote models — quotes, line items, supplier assignment audit, transition log."""

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ..lifecycle import QuoteStatus
from .base import Base


class Quote(Base):
    """One version of a customer quote. Revisions share a lineage_id."""

    __tablename__ = "quotes"
    id = Column(Integer, primary_key=True)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    employee_id = Column(Integer, ForeignKey("users.id"))

    status = Column(String(20), nullable=False, default=QuoteStatus.DRAFT.value)
    version = Column(Integer, nullable=False, default=1)
    parent_quote_id = Column(Integer, ForeignKey("quotes.id"))
    lineage_id = Column(Integer)  # id of the version-1 quote

    pricelist_id = Column(Integer, ForeignKey("pricelists.id"))
    auto_production = Column(Boolean, default=False)

    final_value = Column(Numeric(12, 2), default=0)
    total_supplier_cost = Column(Numeric(12, 2), default=0)
    rejection_reason = Column(Text)
    deal_rating = Column(Integer)  # 1-10

    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    items = relationship(
        "QuoteItem",
        back_populates="quote",
        order_by="QuoteItem.id",
        cascade="all, delete-orphan",
    )
    customer = relationship("User", foreign_keys=[customer_id])
    employee = relationship("User", foreign_keys=[employee_id])
    pricelist = relationship("Pricelist", foreign_keys=[pricelist_id])
    parent = relationship("Quote", remote_side=[id], foreign_keys=[parent_quote_id])

    __table_args__ = (
        UniqueConstraint("lineage_id", "version", name="uq_quotes_lineage_version"),
        Index("ix_quotes_status", "status"),
        Index("ix_quotes_customer", "customer_id"),
        Index("ix_quotes_lineage", "lineage_id"),
    )


class QuoteItem(Base):
    """A product/size/quantity line of a quote."""

    __tablename__ = "quote_items"
    id = Column(Integer, primary_key=True)
    quote_id = Column(Integer, ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False)
    catalog_unit_id = Column(Integer, ForeignKey("catalog_units.id"), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)

    # Customer-facing line price, frozen at quote time
    price_at_quote = Column(Numeric(12, 2))
    is_manual_price = Column(Boolean, default=False, nullable=False)
    manual_price = Column(Numeric(12, 2))

    # Current assignment (history lives in supplier_assignments)
    supplier_id = Column(Integer, ForeignKey("suppliers.id"))
    supplier_cost = Column(Numeric(12, 2))  # per unit
    delivery_days = Column(Integer)

    quote = relationship("Quote", back_populates="items")
    catalog_unit = relationship("CatalogUnit")
    supplier = relationship("Supplier", foreign_keys=[supplier_id])
    assignments = relationship(
        "SupplierAssignment", back_populates="quote_item", order_by="SupplierAssignment.id"
    )

    __table_args__ = (
        Index("ix_quote_items_quote", "quote_id"),
        Index("ix_quote_items_supplier", "supplier_id"),
    )


class SupplierAssignment(Base):
    """Append-only audit of supplier assignments. Rows are closed, never deleted."""

    __tablename__ = "supplier_assignments"
    id = Column(Integer, primary_key=True)
    quote_item_id = Column(
        Integer, ForeignKey("quote_items.id", ondelete="CASCADE"), nullable=False
    )
    supplier_id = Column(Integer, ForeignKey("suppliers.id"), nullable=False)
    supplier_cost = Column(Numeric(12, 2))
    delivery_days = Column(Integer)

    assigned_by_id = Column(Integer, ForeignKey("users.id"))
    assigned_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    cancelled_by_id = Column(Integer, ForeignKey("users.id"))
    cancelled_at = Column(DateTime)
    cancel_reason = Column(Text)

    quote_item = relationship("QuoteItem", back_populates="assignments")

    __table_args__ = (Index("ix_assignments_item", "quote_item_id"),)

    @property
    def is_active(self) -> bool:
        return self.cancelled_at is None


class QuoteTransition(Base):
    """One row per persisted status change."""

    __tablename__ = "quote_transitions"
    id = Column(Integer, primary_key=True)
    quote_id = Column(Integer, ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False)
    from_status = Column(String(20), nullable=False)
    to_status = Column(String(20), nullable=False)
    event = Column(String(30), nullable=False)
    actor_id = Column(Integer, ForeignKey("users.id"))
    details = Column(JSON, default=dict)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (Index("ix_quote_transitions_quote", "quote_id"),)
