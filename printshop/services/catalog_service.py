"""
Pricing Catalog Accessor — read-only view of offers, performance and prices.

The ranker and the pricing resolver only need four lookups. They are typed by
the PricingCatalog protocol so tests can hand in a plain in-memory object.

Business Rules:
- Only offers from active suppliers are visible
- An offer without delivery days is treated as the configured default (3 days)
- Offers are converted to domain.Offer so nothing downstream touches the ORM

Called by: services/recommendation_service.py, services/pricing_service.py
Depends on: models, services/performance_service.py
"""

import logging
from decimal import Decimal
from typing import Iterable, Optional, Protocol

from sqlalchemy.orm import Session

from ..config import settings
from ..domain import CatalogSnapshot, Offer, SupplierPerformance
from ..exceptions import NotFound
from ..models import CatalogUnit, Pricelist, PricelistEntry, Supplier, SupplierOffer
from .performance_service import compute_performance_for_suppliers, compute_supplier_performance

log = logging.getLogger(__name__)


class PricingCatalog(Protocol):
    def get_offers_for_unit(self, catalog_unit_id: int) -> list[Offer]: ...

    def get_supplier_performance(self, supplier_id: int) -> SupplierPerformance: ...

    def get_pricelist_entry(
        self, pricelist_id: int, catalog_unit_id: int
    ) -> Optional[Decimal]: ...

    def get_catalog_base_price(self, catalog_unit_id: int) -> Decimal: ...


def _to_offer(row: SupplierOffer) -> Offer:
    return Offer(
        supplier_id=row.supplier_id,
        catalog_unit_id=row.catalog_unit_id,
        price_per_unit=float(row.price_per_unit),
        delivery_days=(
            settings.default_delivery_days if row.delivery_days is None else row.delivery_days
        ),
    )


class SqlPricingCatalog:
    """PricingCatalog over a SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    def get_offers_for_unit(self, catalog_unit_id: int) -> list[Offer]:
        rows = (
            self.db.query(SupplierOffer)
            .join(Supplier, Supplier.id == SupplierOffer.supplier_id)
            .filter(
                SupplierOffer.catalog_unit_id == catalog_unit_id,
                Supplier.is_active.is_(True),
            )
            .order_by(SupplierOffer.supplier_id)
            .all()
        )
        return [_to_offer(r) for r in rows]

    def get_supplier_performance(self, supplier_id: int) -> SupplierPerformance:
        return compute_supplier_performance(self.db, supplier_id)

    def get_pricelist_entry(self, pricelist_id: int, catalog_unit_id: int) -> Optional[Decimal]:
        if pricelist_id is None:
            return None
        entry = (
            self.db.query(PricelistEntry)
            .filter(
                PricelistEntry.pricelist_id == pricelist_id,
                PricelistEntry.catalog_unit_id == catalog_unit_id,
            )
            .first()
        )
        return Decimal(entry.unit_price) if entry else None

    def get_catalog_base_price(self, catalog_unit_id: int) -> Decimal:
        unit = self.db.get(CatalogUnit, catalog_unit_id)
        if not unit:
            raise NotFound(f"Catalog unit {catalog_unit_id} not found")
        return Decimal(unit.base_price or 0)

    def get_default_pricelist_id(self) -> Optional[int]:
        row = (
            self.db.query(Pricelist)
            .filter(Pricelist.is_default.is_(True), Pricelist.is_active.is_(True))
            .order_by(Pricelist.id)
            .first()
        )
        return row.id if row else None

    def snapshot(self, catalog_unit_ids: Iterable[int]) -> CatalogSnapshot:
        """Read offers and performance for every unit once, for one ranking call."""
        offers_by_unit = {uid: self.get_offers_for_unit(uid) for uid in set(catalog_unit_ids)}
        supplier_ids = {o.supplier_id for offers in offers_by_unit.values() for o in offers}
        return CatalogSnapshot(
            offers_by_unit=offers_by_unit,
            performance=compute_performance_for_suppliers(self.db, supplier_ids),
            default_reliability_pct=settings.default_reliability_pct,
        )
