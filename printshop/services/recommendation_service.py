"""
Supplier recommendations — loads one catalog snapshot and hands it to the ranker.

Business Rules:
- Weights are read once per request; a bad stored value aborts the request
  with InvalidConfiguration before anything is ranked
- Per item: top N (item_recommendation_limit, default 5) with bonus breakdown
- Whole quote: only suppliers covering every item. If the quote has items and
  offers exist but no single supplier covers them all, NoEligibleSupplier.
  A quote with no items, or no offers at all, just returns an empty list.
- By category: top N (category_recommendation_limit, default 3) per category

Called by: routers/recommendations.py
Depends on: ranking, services/catalog_service.py, services/settings_service.py
"""

import logging

from sqlalchemy.orm import Session

from ..config import settings
from ..domain import LineItem
from ..exceptions import NoEligibleSupplier, NotFound
from ..models import Quote, QuoteItem, Supplier
from ..ranking import rank_by_category, rank_for_item, rank_for_whole_quote
from .catalog_service import SqlPricingCatalog
from .settings_service import get_scoring_weights

log = logging.getLogger(__name__)


def _line_items(quote: Quote) -> list[LineItem]:
    return [
        LineItem(
            item_id=i.id,
            catalog_unit_id=i.catalog_unit_id,
            quantity=i.quantity,
            category=i.catalog_unit.category if i.catalog_unit else None,
            name=i.catalog_unit.display_name if i.catalog_unit else "",
        )
        for i in quote.items
    ]


def _supplier_names(db: Session, supplier_ids) -> dict[int, str]:
    if not supplier_ids:
        return {}
    rows = db.query(Supplier).filter(Supplier.id.in_(set(supplier_ids))).all()
    return {s.id: s.display_name for s in rows}


def _load_quote(db: Session, quote_id: int) -> Quote:
    quote = db.get(Quote, quote_id)
    if not quote:
        raise NotFound(f"Quote {quote_id} not found")
    return quote


def rank_suppliers_for_item(db: Session, item_id: int, limit: int | None = None) -> dict:
    item = db.get(QuoteItem, item_id)
    if not item:
        raise NotFound(f"Quote item {item_id} not found")
    weights = get_scoring_weights(db)
    line_items = _line_items(item.quote)
    line_item = next(li for li in line_items if li.item_id == item.id)

    snapshot = SqlPricingCatalog(db).snapshot(li.catalog_unit_id for li in line_items)
    ranked = rank_for_item(
        line_item,
        line_items,
        snapshot,
        weights,
        limit=settings.item_recommendation_limit if limit is None else limit,
        bonus_step=settings.multi_item_bonus_step,
        bonus_cap=settings.multi_item_bonus_cap,
    )
    names = _supplier_names(db, [r.supplier_id for r in ranked])
    log.debug(f"Ranked {len(ranked)} suppliers for quote item {item.id}")
    return {
        "item_id": item.id,
        "quote_id": item.quote_id,
        "weights": weights.to_dict(),
        "suppliers": [
            {**r.to_dict(), "supplier_name": names.get(r.supplier_id)} for r in ranked
        ],
    }


def rank_suppliers_for_quote(db: Session, quote_id: int, limit: int | None = None) -> dict:
    quote = _load_quote(db, quote_id)
    weights = get_scoring_weights(db)
    line_items = _line_items(quote)

    snapshot = SqlPricingCatalog(db).snapshot(li.catalog_unit_id for li in line_items)
    ranked = rank_for_whole_quote(line_items, snapshot, weights, limit=limit)
    has_offers = any(snapshot.offers_by_unit.values())
    if line_items and has_offers and not ranked:
        raise NoEligibleSupplier(
            f"No single supplier can fulfil every item of quote {quote.id}",
            quote_id=quote.id,
        )
    names = _supplier_names(db, [r.supplier_id for r in ranked])
    log.debug(f"Ranked {len(ranked)} whole-quote suppliers for quote {quote.id}")
    return {
        "quote_id": quote.id,
        "weights": weights.to_dict(),
        "suppliers": [
            {**r.to_dict(), "supplier_name": names.get(r.supplier_id)} for r in ranked
        ],
    }


def rank_suppliers_by_category(db: Session, quote_id: int, limit: int | None = None) -> dict:
    quote = _load_quote(db, quote_id)
    weights = get_scoring_weights(db)
    line_items = _line_items(quote)

    snapshot = SqlPricingCatalog(db).snapshot(li.catalog_unit_id for li in line_items)
    groups = rank_by_category(
        line_items, snapshot, weights,
        limit=settings.category_recommendation_limit if limit is None else limit,
    )
    names = _supplier_names(
        db, [s.supplier_id for g in groups for s in g.suppliers]
    )
    categories = []
    for group in groups:
        data = group.to_dict()
        for s in data["suppliers"]:
            s["supplier_name"] = names.get(s["supplier_id"])
        categories.append(data)
    return {"quote_id": quote.id, "weights": weights.to_dict(), "categories": categories}
