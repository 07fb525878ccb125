"""
test_routers_recommendations.py — Tests for printshop/routers/recommendations.py

Called by: pytest
Depends on: printshop/routers/recommendations.py, tests/conftest.py
"""

from types import SimpleNamespace

import pytest


@pytest.fixture()
def market(make_unit, make_supplier, make_offer, make_quote):
    cards = make_unit("Business cards", category="cards")
    banners = make_unit("Banner", size="100x200cm", units=1, category="large_format")
    alpha, beta = make_supplier("Alpha"), make_supplier("Beta")
    make_offer(alpha, cards, "4.00", 3)
    make_offer(alpha, banners, "60.00", 5)
    make_offer(beta, cards, "3.50", 2)
    quote = make_quote([(cards, 2), (banners, 1)])
    return SimpleNamespace(quote=quote, alpha=alpha, beta=beta)


class TestRecommendationsApi:
    def test_item_ranking(self, client, market):
        resp = client.get(f"/api/quote-items/{market.quote.items[0].id}/suppliers")
        assert resp.status_code == 200
        ranked = resp.json()["suppliers"]
        assert [r["supplier_id"] for r in ranked] == [market.beta.id, market.alpha.id]
        assert ranked[1]["bonus"]["other_items_coverable"] == 1

    def test_item_ranking_limit(self, client, market):
        resp = client.get(f"/api/quote-items/{market.quote.items[0].id}/suppliers", params={"limit": 1})
        assert len(resp.json()["suppliers"]) == 1

    def test_whole_quote(self, client, market):
        ranked = client.get(f"/api/quotes/{market.quote.id}/suppliers").json()["suppliers"]
        assert [r["supplier_id"] for r in ranked] == [market.alpha.id]
        assert ranked[0]["total_price"] == 68.0

    def test_no_eligible_supplier_is_404(self, client, db_session, market):
        market.alpha.is_active = False
        db_session.commit()
        resp = client.get(f"/api/quotes/{market.quote.id}/suppliers")
        assert resp.status_code == 404
        assert resp.json()["code"] == "no_eligible_supplier"

    def test_by_category(self, client, market):
        data = client.get(f"/api/quotes/{market.quote.id}/suppliers/by-category").json()
        assert [c["category"] for c in data["categories"]] == ["cards", "large_format"]

    def test_supplier_performance(self, client, market):
        card = client.get(f"/api/suppliers/{market.alpha.id}/performance").json()
        assert card["is_new_supplier"] is True
        assert card["reliability_pct"] == 80

    def test_customer_forbidden(self, customer_client, market):
        assert customer_client.get(f"/api/quotes/{market.quote.id}/suppliers").status_code == 403
