"""
test_scoring.py — Tests for printshop/scoring.py

Covers each sub-score, the weighted final score, degenerate ranges,
the neutral rating for unrated suppliers, and weight validation.

Called by: pytest
Depends on: printshop/scoring.py
"""

import pytest

from printshop.domain import Offer, SupplierPerformance
from printshop.exceptions import InvalidConfiguration
from printshop.scoring import (
    NEUTRAL_RATING_SCORE,
    ScoreBreakdown,
    ScoringWeights,
    ValueRange,
    score,
    score_delivery,
    score_offer,
    score_price,
    score_rating,
    score_reliability,
)

DEFAULT = ScoringWeights()


def _offer(price, days=3, supplier_id=1):
    return Offer(supplier_id=supplier_id, catalog_unit_id=10, price_per_unit=price, delivery_days=days)


def _perf(avg=4.0, rated=10, reliability=90.0, supplier_id=1):
    return SupplierPerformance(
        supplier_id=supplier_id,
        avg_rating=avg,
        rated_jobs=rated,
        reliability_pct=reliability,
        completed_jobs=rated,
    )


class TestWeights:
    def test_defaults_sum_to_100(self):
        assert DEFAULT.total == 100
        assert DEFAULT.validate() is DEFAULT

    def test_sum_not_100_rejected(self):
        with pytest.raises(InvalidConfiguration, match="sum to 100"):
            ScoringWeights(price=50, rating=30, delivery_time=20, reliability=10).validate()

    def test_negative_weight_rejected(self):
        with pytest.raises(InvalidConfiguration):
            ScoringWeights(price=120, rating=-20, delivery_time=0, reliability=0).validate()

    def test_missing_weight_rejected(self):
        with pytest.raises(InvalidConfiguration, match="whole number"):
            ScoringWeights.from_dict({"price": 40, "rating": 30, "reliability": 30}).validate()

    def test_from_dict_accepts_camel_case(self):
        w = ScoringWeights.from_dict({"price": 25, "rating": 25, "deliveryTime": 25, "reliability": 25})
        assert w.delivery_time == 25
        assert w.validate().total == 100

    def test_score_never_normalizes_bad_weights(self):
        bad = ScoringWeights(price=10, rating=10, delivery_time=10, reliability=10)
        with pytest.raises(InvalidConfiguration):
            score(_offer(5), _perf(), ValueRange(5, 5), ValueRange(3, 3), bad)


class TestSubScores:
    def test_price_cheapest_100_dearest_0(self):
        r = ValueRange(10, 20)
        assert score_price(10, r) == 100
        assert score_price(20, r) == 0
        assert score_price(15, r) == pytest.approx(50)

    def test_price_degenerate_range_is_100(self):
        assert score_price(12, ValueRange(12, 12)) == 100

    def test_delivery_fastest_100(self):
        r = ValueRange(2, 6)
        assert score_delivery(2, r) == 100
        assert score_delivery(6, r) == 0
        assert score_delivery(4, r) == pytest.approx(50)

    def test_rating_scaled_from_five(self):
        assert score_rating(_perf(avg=4.0)) == pytest.approx(80)
        assert score_rating(_perf(avg=5.0)) == 100

    def test_unrated_supplier_gets_neutral_rating(self):
        assert score_rating(_perf(avg=0, rated=0)) == NEUTRAL_RATING_SCORE == 50

    def test_reliability_used_directly(self):
        assert score_reliability(_perf(reliability=72.5)) == 72.5

    def test_value_range_of_empty(self):
        assert ValueRange.of([]) == ValueRange(0.0, 0.0)


class TestScoreOffer:
    def test_weighted_final_score(self):
        # price 100, rating 80, delivery 100, reliability 90
        b = score_offer(_offer(10, 2), _perf(), ValueRange(10, 20), ValueRange(2, 6), DEFAULT)
        expected = (100 * 40 + 80 * 30 + 100 * 20 + 90 * 10) / 100
        assert b.final_score == pytest.approx(expected)
        assert score(_offer(10, 2), _perf(), ValueRange(10, 20), ValueRange(2, 6), DEFAULT) == pytest.approx(expected)

    def test_single_offer_scores_full_on_price_and_delivery(self):
        b = score_offer(_offer(7, 4), _perf(avg=0, rated=0, reliability=80), ValueRange(7, 7), ValueRange(4, 4), DEFAULT)
        assert b.price == 100
        assert b.delivery_time == 100
        assert b.final_score == pytest.approx((4000 + 50 * 30 + 2000 + 800) / 100)

    def test_score_is_bounded(self):
        for price in (10, 12.5, 20):
            s = score(_offer(price), _perf(avg=5, reliability=100), ValueRange(10, 20), ValueRange(3, 3), DEFAULT)
            assert 0 <= s <= 100

    def test_lower_price_never_scores_lower(self):
        r = ValueRange(10, 30)
        perf = _perf()
        scores = [score(_offer(p), perf, r, ValueRange(3, 3), DEFAULT) for p in (10, 15, 20, 25, 30)]
        assert scores == sorted(scores, reverse=True)

    def test_deterministic(self):
        args = (_offer(12, 5), _perf(), ValueRange(10, 20), ValueRange(2, 6), DEFAULT)
        assert score_offer(*args) == score_offer(*args)


class TestScoreBreakdown:
    def test_to_dict_rounds(self):
        b = ScoreBreakdown(price=33.333, rating=50, delivery_time=66.666, reliability=80, final_score=51.2345)
        d = b.to_dict()
        assert d["components"]["price"] == 33.3
        assert d["components"]["delivery_time"] == 66.7
        assert d["final_score"] == 51.2
