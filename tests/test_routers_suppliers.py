"""
test_routers_suppliers.py — Tests for printshop/routers/suppliers.py

Runs a job through the quote lifecycle, rates it over HTTP and checks the
rating reaches the recommendation score.

Called by: pytest
Depends on: printshop/routers/suppliers.py, tests/conftest.py
"""

from types import SimpleNamespace

import pytest

from printshop.models import SupplierJob
from printshop.services.quote_service import assign_supplier, transition_quote


@pytest.fixture()
def finished_job(db_session, make_unit, make_supplier, make_offer, make_quote, customer_user, staff_user):
    cards = make_unit("Business cards")
    alpha = make_supplier("Alpha")
    make_offer(alpha, cards, "4.00", 3)
    quote = make_quote([(cards, 1)])
    transition_quote(db_session, quote.id, "send", actor=staff_user)
    transition_quote(db_session, quote.id, "approve", actor=customer_user)
    assign_supplier(db_session, quote.items[0].id, alpha.id, actor=staff_user)
    transition_quote(db_session, quote.id, "start_production", actor=staff_user)
    transition_quote(db_session, quote.id, "mark_ready", actor=staff_user)
    job = db_session.query(SupplierJob).filter_by(quote_id=quote.id).one()
    return SimpleNamespace(job=job, supplier=alpha, cards=cards)


def _rating_component(client, make_quote, cards):
    quote = make_quote([(cards, 1)])
    ranked = client.get(f"/api/quote-items/{quote.items[0].id}/suppliers").json()["suppliers"]
    return ranked[0]["breakdown"]["components"]["rating"]


class TestSupplierJobsApi:
    def test_rating_moves_the_rating_score(self, client, finished_job, make_quote):
        assert _rating_component(client, make_quote, finished_job.cards) == 50.0

        resp = client.put(
            f"/api/supplier-jobs/{finished_job.job.id}/rating",
            json={"rating": 5, "mark_delivered": True},
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "delivered"
        assert resp.json()["supplier_rating"] == 5.0

        assert _rating_component(client, make_quote, finished_job.cards) == 100.0

    def test_rating_out_of_range(self, client, finished_job):
        resp = client.put(f"/api/supplier-jobs/{finished_job.job.id}/rating", json={"rating": 6})
        assert resp.status_code == 422

    def test_unknown_job(self, client):
        resp = client.put("/api/supplier-jobs/4040/rating", json={"rating": 3})
        assert resp.status_code == 404

    def test_job_history(self, client, finished_job):
        data = client.get(f"/api/suppliers/{finished_job.supplier.id}/jobs").json()
        assert [j["status"] for j in data["jobs"]] == ["ready"]

    def test_customer_cannot_rate(self, customer_client, finished_job):
        resp = customer_client.put(f"/api/supplier-jobs/{finished_job.job.id}/rating", json={"rating": 3})
        assert resp.status_code == 403
