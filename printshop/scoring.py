"""
Scoring Engine — scores a supplier offer for one line item on 4 weighted factors.

Final Score = (Price×w_price + Rating×w_rating + Delivery×w_delivery +
               Reliability×w_reliability) / 100

Each factor produces a 0-100 sub-score. Weights are admin-configurable and
must add to exactly 100; anything else is a configuration bug and fails fast.
"""
from dataclasses import asdict, dataclass
from typing import Iterable

from .domain import Offer, SupplierPerformance
from .exceptions import InvalidConfiguration

NEUTRAL_RATING_SCORE = 50.0
MAX_RATING = 5.0


# --- Weights ---

@dataclass(frozen=True)
class ScoringWeights:
    price: int = 40
    rating: int = 30
    delivery_time: int = 20
    reliability: int = 10

    @property
    def total(self):
        return self.price + self.rating + self.delivery_time + self.reliability

    def validate(self) -> "ScoringWeights":
        for name, value in asdict(self).items():
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidConfiguration(
                    f"Weight '{name}' must be a whole number", weights=asdict(self)
                )
            if value < 0 or value > 100:
                raise InvalidConfiguration(
                    f"Weight '{name}' must be between 0 and 100", weights=asdict(self)
                )
        if self.total != 100:
            raise InvalidConfiguration(
                f"Scoring weights must sum to 100 (currently {self.total})",
                weights=asdict(self),
            )
        return self

    @classmethod
    def from_dict(cls, data: dict) -> "ScoringWeights":
        """Accepts snake_case or the camelCase keys the admin UI stores."""
        delivery = data.get("delivery_time", data.get("deliveryTime"))
        return cls(
            price=data.get("price"),
            rating=data.get("rating"),
            delivery_time=delivery,
            reliability=data.get("reliability"),
        )

    def to_dict(self) -> dict:
        return asdict(self)


# --- Observed range of a factor across all offers for one line item ---

@dataclass(frozen=True)
class ValueRange:
    min: float
    max: float

    @classmethod
    def of(cls, values: Iterable[float]) -> "ValueRange":
        values = list(values)
        if not values:
            return cls(0.0, 0.0)
        return cls(float(min(values)), float(max(values)))

    def inverse_linear(self, value: float) -> float:
        """Lowest value → 100, highest → 0. Degenerate range → 100 for all."""
        if self.max == self.min:
            return 100.0
        return _clamp((self.max - value) / (self.max - self.min) * 100)


# --- Score breakdown (returned with every ranking entry) ---

@dataclass
class ScoreBreakdown:
    price: float = 0
    rating: float = 0
    delivery_time: float = 0
    reliability: float = 0
    final_score: float = 0

    def to_dict(self) -> dict:
        return {
            "components": {
                "price": round(self.price, 1),
                "rating": round(self.rating, 1),
                "delivery_time": round(self.delivery_time, 1),
                "reliability": round(self.reliability, 1),
            },
            "final_score": round(self.final_score, 1),
        }


# --- Individual scoring functions ---

def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def score_price(price: float, price_range: ValueRange) -> float:
    return price_range.inverse_linear(price)


def score_rating(performance: SupplierPerformance) -> float:
    """avg/5×100; suppliers nobody has rated yet get the neutral midpoint."""
    if not performance.rated_jobs:
        return NEUTRAL_RATING_SCORE
    return _clamp(performance.avg_rating / MAX_RATING * 100)


def score_delivery(days: float, delivery_range: ValueRange) -> float:
    return delivery_range.inverse_linear(days)


def score_reliability(performance: SupplierPerformance) -> float:
    return _clamp(performance.reliability_pct)


# --- Main entry points ---

def score_offer(
    offer: Offer,
    performance: SupplierPerformance,
    price_range: ValueRange,
    delivery_range: ValueRange,
    weights: ScoringWeights,
) -> ScoreBreakdown:
    """Score one offer against the other offers for the same line item."""
    weights.validate()

    b = ScoreBreakdown(
        price=score_price(offer.price_per_unit, price_range),
        rating=score_rating(performance),
        delivery_time=score_delivery(offer.delivery_days, delivery_range),
        reliability=score_reliability(performance),
    )
    weighted = (
        b.price * weights.price
        + b.rating * weights.rating
        + b.delivery_time * weights.delivery_time
        + b.reliability * weights.reliability
    )
    b.final_score = _clamp(weighted / 100)
    return b


def score(
    offer: Offer,
    performance: SupplierPerformance,
    price_range: ValueRange,
    delivery_range: ValueRange,
    weights: ScoringWeights,
) -> float:
    """Final 0-100 suitability score for a (supplier offer, line item) pair."""
    return score_offer(offer, performance, price_range, delivery_range, weights).final_score
