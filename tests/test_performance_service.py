"""
test_performance_service.py — Tests for printshop/services/performance_service.py

Rating average, on-time reliability and the defaults for new suppliers.

Called by: pytest
Depends on: printshop/services/performance_service.py, tests/conftest.py
"""

from datetime import datetime, timedelta, timezone

import pytest

from printshop.models import SupplierJob
from printshop.exceptions import InvalidTransition, NotFound
from printshop.services.performance_service import (
    compute_supplier_performance,
    get_supplier_scorecard,
    list_supplier_jobs,
    rate_supplier_job,
)


@pytest.fixture()
def supplier(make_supplier):
    return make_supplier("Alpha")


def _job(db, supplier, status="delivered", promised=3, took_days=None, rating=None):
    created = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)
    job = SupplierJob(
        supplier_id=supplier.id,
        status=status,
        promised_delivery_days=promised,
        supplier_rating=rating,
        created_at=created,
        supplier_ready_at=created + timedelta(days=took_days) if took_days is not None else None,
    )
    db.add(job)
    db.commit()
    return job


class TestSupplierPerformance:
    def test_new_supplier_defaults(self, db_session, supplier):
        perf = compute_supplier_performance(db_session, supplier.id)
        assert perf.rated_jobs == 0
        assert perf.avg_rating == 0
        assert perf.reliability_pct == 80
        assert perf.completed_jobs == 0
        assert perf.is_new_supplier

    def test_average_rating_over_rated_jobs(self, db_session, supplier):
        _job(db_session, supplier, took_days=1, rating=4)
        _job(db_session, supplier, took_days=1, rating=5)
        _job(db_session, supplier, took_days=1)
        perf = compute_supplier_performance(db_session, supplier.id)
        assert perf.rated_jobs == 2
        assert perf.avg_rating == pytest.approx(4.5)

    def test_reliability_is_on_time_share(self, db_session, supplier):
        _job(db_session, supplier, promised=3, took_days=2)
        _job(db_session, supplier, promised=3, took_days=3)
        _job(db_session, supplier, status="ready", promised=3, took_days=5)
        _job(db_session, supplier, promised=2, took_days=4)
        perf = compute_supplier_performance(db_session, supplier.id)
        assert perf.completed_jobs == 4
        assert perf.reliability_pct == pytest.approx(50)

    def test_open_and_cancelled_jobs_ignored_for_reliability(self, db_session, supplier):
        _job(db_session, supplier, promised=3, took_days=1)
        _job(db_session, supplier, status="pending")
        _job(db_session, supplier, status="cancelled")
        perf = compute_supplier_performance(db_session, supplier.id)
        assert perf.completed_jobs == 1
        assert perf.reliability_pct == 100

    def test_scorecard(self, db_session, supplier):
        _job(db_session, supplier, promised=3, took_days=1, rating=4)
        _job(db_session, supplier, status="in_progress")
        card = get_supplier_scorecard(db_session, supplier.id)
        assert card["open_jobs"] == 1
        assert card["completed_jobs"] == 1
        assert card["avg_rating"] == 4.0


class TestRateSupplierJob:
    def test_rating_feeds_average(self, db_session, supplier):
        job = _job(db_session, supplier, status="ready", took_days=1)
        rate_supplier_job(db_session, job.id, 2)
        perf = compute_supplier_performance(db_session, supplier.id)
        assert perf.rated_jobs == 1
        assert perf.avg_rating == pytest.approx(2.0)

    def test_mark_delivered(self, db_session, supplier):
        job = _job(db_session, supplier, status="ready", promised=3, took_days=1)
        rate_supplier_job(db_session, job.id, 4.5, mark_delivered=True)
        assert job.status == "delivered"
        perf = compute_supplier_performance(db_session, supplier.id)
        assert perf.completed_jobs == 1
        assert perf.reliability_pct == 100

    def test_open_job_cannot_be_rated(self, db_session, supplier):
        job = _job(db_session, supplier, status="pending")
        with pytest.raises(InvalidTransition):
            rate_supplier_job(db_session, job.id, 3)
        assert job.supplier_rating is None

    @pytest.mark.parametrize("rating", [0, 5.5, True])
    def test_out_of_range(self, db_session, supplier, rating):
        job = _job(db_session, supplier, status="ready", took_days=1)
        with pytest.raises(ValueError):
            rate_supplier_job(db_session, job.id, rating)

    def test_unknown_job(self, db_session):
        with pytest.raises(NotFound):
            rate_supplier_job(db_session, 4040, 3)

    def test_job_history_newest_first(self, db_session, supplier):
        first = _job(db_session, supplier, status="ready", took_days=1)
        second = _job(db_session, supplier, status="pending")
        assert [j["id"] for j in list_supplier_jobs(db_session, supplier.id)] == [second.id, first.id]
