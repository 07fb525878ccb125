"""
Pricing Resolution — customer-facing line prices and quote totals.

Business Rules:
- A manual override always wins and is never recomputed automatically
- Otherwise line price = pricelist unit price × quantity, falling back to the
  catalog unit's base price when the pricelist has no entry
- Switching pricelist recomputes every non-manual line; manual lines keep
  their price
- Resetting a manual price re-resolves the line from the current pricelist
- Prices can only change while the quote is a draft
- After every change: final_value = Σ line prices,
  total_supplier_cost = Σ supplier cost × quantity, profit = difference

Called by: routers/pricing.py, services/quote_service.py
Depends on: models, services/catalog_service.py, lifecycle
"""

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from sqlalchemy.orm import Session

from ..exceptions import InvalidConfiguration, InvalidTransition, ManualOverrideConflict, NotFound
from ..lifecycle import EDITABLE_STATUSES, coerce_status
from ..models import Pricelist, Quote, QuoteItem
from .catalog_service import SqlPricingCatalog

log = logging.getLogger(__name__)

CENTS = Decimal("0.01")

SOURCE_MANUAL = "manual"
SOURCE_PRICELIST = "pricelist"
SOURCE_BASE_PRICE = "base_price"


def _money(value) -> Decimal:
    return Decimal(value if value is not None else 0).quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PriceResolution:
    customer_price: Decimal
    is_manual: bool
    source: str

    def to_dict(self) -> dict:
        return {
            "customer_price": float(self.customer_price),
            "is_manual": self.is_manual,
            "source": self.source,
        }


def resolve_price(
    quantity: int,
    pricelist_unit_price: Optional[Decimal],
    base_price: Decimal,
    manual_override: Optional[Decimal] = None,
) -> PriceResolution:
    """Line price for one item. ``manual_override`` is a line total."""
    if manual_override is not None:
        return PriceResolution(_money(manual_override), True, SOURCE_MANUAL)
    if pricelist_unit_price is not None:
        return PriceResolution(
            _money(Decimal(pricelist_unit_price) * quantity), False, SOURCE_PRICELIST
        )
    return PriceResolution(_money(Decimal(base_price) * quantity), False, SOURCE_BASE_PRICE)


# ── Internal helpers ─────────────────────────────────────────────────


def _resolve_item(catalog: SqlPricingCatalog, item: QuoteItem, pricelist_id) -> PriceResolution:
    manual = item.manual_price if item.is_manual_price else None
    return resolve_price(
        item.quantity,
        catalog.get_pricelist_entry(pricelist_id, item.catalog_unit_id),
        catalog.get_catalog_base_price(item.catalog_unit_id),
        manual_override=manual,
    )


def _apply_resolved_price(item: QuoteItem, resolution: PriceResolution) -> None:
    """Write an automatic price onto an item. Callers must skip manual lines."""
    if item.is_manual_price and not resolution.is_manual:
        raise ManualOverrideConflict(
            f"Item {item.id} has a manual price and cannot be auto-priced",
            item_id=item.id,
        )
    item.price_at_quote = resolution.customer_price


def _require_editable(quote: Quote) -> None:
    status = coerce_status(quote.status)
    if status not in EDITABLE_STATUSES:
        raise InvalidTransition(
            f"Prices cannot be changed on a quote that is {status.value}",
            status=status.value,
        )


def _get_item(db: Session, item_id: int) -> QuoteItem:
    item = db.get(QuoteItem, item_id)
    if not item:
        raise NotFound(f"Quote item {item_id} not found")
    return item


def recalculate_quote_totals(db: Session, quote: Quote) -> dict:
    """Recompute final_value and total_supplier_cost. Caller commits."""
    final_value = sum((_money(i.price_at_quote) for i in quote.items), Decimal("0"))
    supplier_cost = sum(
        (_money(Decimal(i.supplier_cost) * i.quantity) for i in quote.items if i.supplier_cost is not None),
        Decimal("0"),
    )
    quote.final_value = final_value
    quote.total_supplier_cost = supplier_cost
    return {
        "final_value": float(final_value),
        "total_supplier_cost": float(supplier_cost),
        "profit": float(final_value - supplier_cost),
    }


def price_new_item(db: Session, item: QuoteItem, pricelist_id) -> None:
    """Price a freshly built line (used by quote creation)."""
    _apply_resolved_price(item, _resolve_item(SqlPricingCatalog(db), item, pricelist_id))


# ── Public operations ────────────────────────────────────────────────


def resolve_line_price(db: Session, item_id: int) -> PriceResolution:
    item = _get_item(db, item_id)
    return _resolve_item(SqlPricingCatalog(db), item, item.quote.pricelist_id)


def switch_pricelist(db: Session, quote_id: int, pricelist_id: int) -> dict:
    quote = db.get(Quote, quote_id)
    if not quote:
        raise NotFound(f"Quote {quote_id} not found")
    _require_editable(quote)
    pricelist = db.get(Pricelist, pricelist_id)
    if not pricelist or not pricelist.is_active:
        raise NotFound(f"Pricelist {pricelist_id} not found")

    catalog = SqlPricingCatalog(db)
    try:
        quote.pricelist_id = pricelist.id
        repriced = 0
        for item in quote.items:
            if item.is_manual_price:
                continue
            _apply_resolved_price(item, _resolve_item(catalog, item, pricelist.id))
            repriced += 1
        totals = recalculate_quote_totals(db, quote)
        db.commit()
    except Exception:
        db.rollback()
        raise
    log.info(f"Quote {quote.id} switched to pricelist {pricelist.id} ({repriced} lines repriced)")
    return {"quote_id": quote.id, "pricelist_id": pricelist.id, "repriced_items": repriced, **totals}


def set_manual_price(db: Session, item_id: int, price) -> dict:
    item = _get_item(db, item_id)
    _require_editable(item.quote)
    price = Decimal(str(price))
    if price < 0:
        raise InvalidConfiguration("Manual price cannot be negative", item_id=item_id)

    item.is_manual_price = True
    item.manual_price = _money(price)
    _apply_resolved_price(item, _resolve_item(SqlPricingCatalog(db), item, item.quote.pricelist_id))
    totals = recalculate_quote_totals(db, item.quote)
    db.commit()
    log.info(f"Manual price {item.manual_price} set on quote item {item.id}")
    return {"item_id": item.id, "price_at_quote": float(item.price_at_quote), "is_manual_price": True, **totals}


def reset_manual_price(db: Session, item_id: int) -> dict:
    item = _get_item(db, item_id)
    _require_editable(item.quote)

    item.is_manual_price = False
    item.manual_price = None
    _apply_resolved_price(item, _resolve_item(SqlPricingCatalog(db), item, item.quote.pricelist_id))
    totals = recalculate_quote_totals(db, item.quote)
    db.commit()
    log.info(f"Manual price cleared on quote item {item.id}")
    return {"item_id": item.id, "price_at_quote": float(item.price_at_quote), "is_manual_price": False, **totals}
