"""
Cross-Item Bonus — rewards a supplier that can also fulfil other items of the quote.

Business Rules:
- Count the OTHER line items (by item id, not by catalog unit) whose catalog
  unit the supplier has an offer for
- bonus = min(count × step, cap) points, step 5 and cap 20 by default
- The result does not depend on the order of the line items

Called by: ranking.rank_for_item
Depends on: domain (LineItem, Offer)
"""
from dataclasses import dataclass
from typing import Iterable, Mapping

from .domain import LineItem, Offer

DEFAULT_STEP = 5
DEFAULT_CAP = 20


@dataclass(frozen=True)
class BonusResult:
    bonus_percent: float
    other_items_coverable: int

    def to_dict(self) -> dict:
        return {
            "bonus_percent": self.bonus_percent,
            "other_items_coverable": self.other_items_coverable,
        }


def bonus(
    supplier_id: int,
    line_item: LineItem,
    all_line_items: Iterable[LineItem],
    offers_by_unit: Mapping[int, Iterable[Offer]],
    step: float = DEFAULT_STEP,
    cap: float = DEFAULT_CAP,
) -> BonusResult:
    covered_units = {
        unit_id
        for unit_id, offers in offers_by_unit.items()
        if any(o.supplier_id == supplier_id for o in offers)
    }
    others = {
        item.item_id
        for item in all_line_items
        if item.item_id != line_item.item_id and item.catalog_unit_id in covered_units
    }
    count = len(others)
    return BonusResult(bonus_percent=min(count * step, cap), other_items_coverable=count)
