"""
domain.py — Plain value objects shared by the scoring, bonus and ranking modules.

These are deliberately detached from the ORM: the recommendation service
reads the database once, builds a CatalogSnapshot, and the pure modules only
ever see these types.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class Offer:
    """A supplier's price and lead time for one catalog unit."""

    supplier_id: int
    catalog_unit_id: int
    price_per_unit: float
    delivery_days: int


@dataclass(frozen=True)
class SupplierPerformance:
    supplier_id: int
    avg_rating: float = 0.0  # 0-5
    rated_jobs: int = 0
    reliability_pct: float = 0.0  # 0-100
    completed_jobs: int = 0

    @property
    def is_new_supplier(self) -> bool:
        return self.completed_jobs < 5


@dataclass(frozen=True)
class LineItem:
    item_id: int
    catalog_unit_id: int
    quantity: int
    category: Optional[str] = None
    name: str = ""


@dataclass
class CatalogSnapshot:
    """Offers and performance read once for one ranking request."""

    offers_by_unit: dict[int, list[Offer]] = field(default_factory=dict)
    performance: dict[int, SupplierPerformance] = field(default_factory=dict)
    default_reliability_pct: float = 80.0

    def offers_for(self, catalog_unit_id: int) -> list[Offer]:
        return self.offers_by_unit.get(catalog_unit_id, [])

    def offer(self, supplier_id: int, catalog_unit_id: int) -> Optional[Offer]:
        for o in self.offers_for(catalog_unit_id):
            if o.supplier_id == supplier_id:
                return o
        return None

    def performance_for(self, supplier_id: int) -> SupplierPerformance:
        perf = self.performance.get(supplier_id)
        if perf is None:
            return SupplierPerformance(
                supplier_id=supplier_id, reliability_pct=self.default_reliability_pct
            )
        return perf
