"""
Recommendation Ranker — orders candidate suppliers for a line item or a whole quote.

Business Rules:
- Per item: every offer for the item's catalog unit is scored (scoring.score_offer)
  against the other offers for that unit, then the cross-item bonus is added.
  Sorted by base + bonus desc, then lowest price per unit, then supplier id.
- Whole quote: only suppliers with an offer for EVERY item are eligible. Score
  is the quantity-weighted mean of the per-item base scores, with no bonus.
  Ties go to the lowest total price, then supplier id.
- By category: items are grouped by catalog category and each group is ranked
  like a whole quote.
- Weights are validated before anything is scored. No items or no offers → [].

Called by: services/recommendation_service.py
Depends on: scoring, bonus, domain
"""
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Optional, Sequence

from .bonus import DEFAULT_CAP, DEFAULT_STEP, BonusResult, bonus
from .domain import CatalogSnapshot, LineItem, Offer
from .scoring import ScoreBreakdown, ScoringWeights, ValueRange, score_offer

DEFAULT_CATEGORY = "general"


@dataclass
class SupplierRanking:
    supplier_id: int
    offer: Offer
    breakdown: ScoreBreakdown
    bonus: BonusResult
    quantity: int = 1

    @property
    def base_score(self) -> float:
        return self.breakdown.final_score

    @property
    def total_score(self) -> float:
        return self.base_score + self.bonus.bonus_percent

    @property
    def estimated_cost(self) -> float:
        return self.offer.price_per_unit * self.quantity

    def to_dict(self) -> dict:
        return {
            "supplier_id": self.supplier_id,
            "price_per_unit": self.offer.price_per_unit,
            "delivery_days": self.offer.delivery_days,
            "estimated_cost": round(self.estimated_cost, 2),
            "base_score": round(self.base_score, 1),
            "bonus": self.bonus.to_dict(),
            "total_score": round(self.total_score, 1),
            "breakdown": self.breakdown.to_dict(),
        }


@dataclass
class WholeQuoteRanking:
    supplier_id: int
    score: float
    total_price: float
    max_delivery_days: int
    item_scores: dict[int, float] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "supplier_id": self.supplier_id,
            "score": round(self.score, 1),
            "total_price": round(self.total_price, 2),
            "max_delivery_days": self.max_delivery_days,
            "item_scores": {k: round(v, 1) for k, v in self.item_scores.items()},
        }


@dataclass
class CategoryRanking:
    category: str
    item_ids: list[int]
    suppliers: list[WholeQuoteRanking]

    def to_dict(self) -> dict:
        return {
            "category": self.category,
            "item_ids": self.item_ids,
            "suppliers": [s.to_dict() for s in self.suppliers],
        }


# ── Helpers ─────────────────────────────────────────────────────────────


def _best_offers(offers: Sequence[Offer]) -> list[Offer]:
    """One offer per supplier: the cheapest, then the fastest."""
    best: dict[int, Offer] = {}
    for o in offers:
        current = best.get(o.supplier_id)
        if current is None or (o.price_per_unit, o.delivery_days) < (
            current.price_per_unit,
            current.delivery_days,
        ):
            best[o.supplier_id] = o
    return list(best.values())


def _score_unit_offers(
    offers: list[Offer], snapshot: CatalogSnapshot, weights: ScoringWeights
) -> dict[int, ScoreBreakdown]:
    price_range = ValueRange.of(o.price_per_unit for o in offers)
    delivery_range = ValueRange.of(o.delivery_days for o in offers)
    return {
        o.supplier_id: score_offer(
            o,
            snapshot.performance_for(o.supplier_id),
            price_range,
            delivery_range,
            weights,
        )
        for o in offers
    }


# ── Per item ────────────────────────────────────────────────────────────


def rank_for_item(
    line_item: LineItem,
    quote_items: Sequence[LineItem],
    snapshot: CatalogSnapshot,
    weights: ScoringWeights,
    limit: Optional[int] = None,
    bonus_step: float = DEFAULT_STEP,
    bonus_cap: float = DEFAULT_CAP,
) -> list[SupplierRanking]:
    weights.validate()
    offers = _best_offers(snapshot.offers_for(line_item.catalog_unit_id))
    if not offers:
        return []

    breakdowns = _score_unit_offers(offers, snapshot, weights)
    ranked = [
        SupplierRanking(
            supplier_id=o.supplier_id,
            offer=o,
            breakdown=breakdowns[o.supplier_id],
            bonus=bonus(
                o.supplier_id,
                line_item,
                quote_items,
                snapshot.offers_by_unit,
                step=bonus_step,
                cap=bonus_cap,
            ),
            quantity=line_item.quantity,
        )
        for o in offers
    ]
    ranked.sort(key=lambda r: (-r.total_score, r.offer.price_per_unit, r.supplier_id))
    return ranked[:limit] if limit is not None else ranked


# ── Whole quote ─────────────────────────────────────────────────────────


def rank_for_whole_quote(
    quote_items: Sequence[LineItem],
    snapshot: CatalogSnapshot,
    weights: ScoringWeights,
    limit: Optional[int] = None,
) -> list[WholeQuoteRanking]:
    weights.validate()
    if not quote_items:
        return []

    per_item: dict[int, dict[int, ScoreBreakdown]] = {}
    per_item_offers: dict[int, dict[int, Offer]] = {}
    for item in quote_items:
        offers = _best_offers(snapshot.offers_for(item.catalog_unit_id))
        per_item[item.item_id] = _score_unit_offers(offers, snapshot, weights)
        per_item_offers[item.item_id] = {o.supplier_id: o for o in offers}

    candidates = set.intersection(*(set(s) for s in per_item.values()))
    total_qty = sum(max(item.quantity, 0) for item in quote_items)

    ranked = []
    for supplier_id in candidates:
        item_scores = {
            item.item_id: per_item[item.item_id][supplier_id].final_score
            for item in quote_items
        }
        if total_qty:
            avg = sum(item_scores[i.item_id] * max(i.quantity, 0) for i in quote_items) / total_qty
        else:
            avg = sum(item_scores.values()) / len(item_scores)
        offers = [per_item_offers[i.item_id][supplier_id] for i in quote_items]
        ranked.append(
            WholeQuoteRanking(
                supplier_id=supplier_id,
                score=avg,
                total_price=sum(
                    o.price_per_unit * i.quantity for o, i in zip(offers, quote_items)
                ),
                max_delivery_days=max(o.delivery_days for o in offers),
                item_scores=item_scores,
            )
        )
    ranked.sort(key=lambda r: (-r.score, r.total_price, r.supplier_id))
    return ranked[:limit] if limit is not None else ranked


# ── By category ─────────────────────────────────────────────────────────


def rank_by_category(
    quote_items: Sequence[LineItem],
    snapshot: CatalogSnapshot,
    weights: ScoringWeights,
    limit: Optional[int] = 3,
) -> list[CategoryRanking]:
    """Whole-coverage ranking per catalog category, categories in name order."""
    weights.validate()
    groups: dict[str, list[LineItem]] = defaultdict(list)
    for item in quote_items:
        groups[item.category or DEFAULT_CATEGORY].append(item)

    return [
        CategoryRanking(
            category=category,
            item_ids=[i.item_id for i in items],
            suppliers=rank_for_whole_quote(items, snapshot, weights, limit=limit),
        )
        for category, items in sorted(groups.items())
    ]
