"""
Supplier Performance — rating and on-time reliability aggregated from supplier jobs.

Business Rules:
- avg_rating: mean of supplier_rating (1-5) over jobs that have a rating
- reliability_pct: share of completed jobs (ready or delivered) that were ready
  within the promised delivery days
- Suppliers with no completed jobs get DEFAULT reliability (80% unless configured)
  so a new supplier isn't ranked last by default
- Staff rate a job 1-5 once it is ready or delivered; marking it delivered is
  optional and does not change its on-time result

Called by: services/catalog_service.py, routers/recommendations.py, routers/suppliers.py
Depends on: models (SupplierJob), config
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import func as sqlfunc
from sqlalchemy.orm import Session

from ..config import settings
from ..domain import SupplierPerformance
from ..exceptions import InvalidTransition, NotFound
from ..models import Supplier, SupplierJob

log = logging.getLogger(__name__)

# ── Constants ──────────────────────────────────────────────────────────
COMPLETED_JOB_STATUSES = ("ready", "delivered")
OPEN_JOB_STATUSES = ("pending", "in_progress")
SECONDS_PER_DAY = 86400


def _aware(dt: datetime | None) -> datetime | None:
    if dt is not None and dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def _on_time(job: SupplierJob) -> bool:
    ready_at, created_at = _aware(job.supplier_ready_at), _aware(job.created_at)
    if ready_at is None or created_at is None:
        return False
    if job.promised_delivery_days is None:
        return True
    elapsed_days = (ready_at - created_at).total_seconds() / SECONDS_PER_DAY
    return elapsed_days <= job.promised_delivery_days


def compute_supplier_performance(db: Session, supplier_id: int) -> SupplierPerformance:
    avg_rating, rated_jobs = (
        db.query(sqlfunc.avg(SupplierJob.supplier_rating), sqlfunc.count(SupplierJob.id))
        .filter(
            SupplierJob.supplier_id == supplier_id,
            SupplierJob.supplier_rating.isnot(None),
        )
        .one()
    )

    completed = (
        db.query(SupplierJob)
        .filter(
            SupplierJob.supplier_id == supplier_id,
            SupplierJob.status.in_(COMPLETED_JOB_STATUSES),
        )
        .all()
    )
    if completed:
        on_time = sum(1 for j in completed if _on_time(j))
        reliability = on_time / len(completed) * 100
    else:
        reliability = settings.default_reliability_pct

    return SupplierPerformance(
        supplier_id=supplier_id,
        avg_rating=float(avg_rating or 0),
        rated_jobs=rated_jobs or 0,
        reliability_pct=reliability,
        completed_jobs=len(completed),
    )


def compute_performance_for_suppliers(
    db: Session, supplier_ids
) -> dict[int, SupplierPerformance]:
    return {sid: compute_supplier_performance(db, sid) for sid in set(supplier_ids)}


def get_supplier_scorecard(db: Session, supplier_id: int) -> dict:
    """Performance summary for one supplier, as shown next to a recommendation."""
    perf = compute_supplier_performance(db, supplier_id)
    open_jobs = (
        db.query(sqlfunc.count(SupplierJob.id))
        .filter(
            SupplierJob.supplier_id == supplier_id,
            SupplierJob.status.in_(OPEN_JOB_STATUSES),
        )
        .scalar()
    )
    return {
        "supplier_id": supplier_id,
        "avg_rating": round(perf.avg_rating, 2),
        "rated_jobs": perf.rated_jobs,
        "reliability_pct": round(perf.reliability_pct, 1),
        "completed_jobs": perf.completed_jobs,
        "open_jobs": open_jobs or 0,
        "is_new_supplier": perf.is_new_supplier,
    }


# ── Job feedback ───────────────────────────────────────────────────────

RATEABLE_JOB_STATUSES = ("ready", "delivered")
MIN_SUPPLIER_RATING, MAX_SUPPLIER_RATING = 1, 5


def job_to_dict(job: SupplierJob) -> dict:
    return {
        "id": job.id,
        "supplier_id": job.supplier_id,
        "quote_id": job.quote_id,
        "quote_item_id": job.quote_item_id,
        "status": job.status,
        "quantity": job.quantity,
        "promised_delivery_days": job.promised_delivery_days,
        "supplier_rating": job.supplier_rating,
        "created_at": job.created_at.isoformat() if job.created_at else None,
        "supplier_ready_at": job.supplier_ready_at.isoformat() if job.supplier_ready_at else None,
    }


def list_supplier_jobs(db: Session, supplier_id: int) -> list[dict]:
    """Job history for one supplier, newest first."""
    if not db.get(Supplier, supplier_id):
        raise NotFound(f"Supplier {supplier_id} not found")
    jobs = (
        db.query(SupplierJob)
        .filter(SupplierJob.supplier_id == supplier_id)
        .order_by(SupplierJob.id.desc())
        .all()
    )
    return [job_to_dict(j) for j in jobs]


def rate_supplier_job(
    db: Session, job_id: int, rating: float, mark_delivered: bool = False
) -> SupplierJob:
    """Staff's 1-5 rating of a finished job. Feeds the rating sub-score.

    A ready job can be closed as delivered in the same call.
    """
    if (
        isinstance(rating, bool)
        or not isinstance(rating, (int, float))
        or not MIN_SUPPLIER_RATING <= rating <= MAX_SUPPLIER_RATING
    ):
        raise ValueError("Supplier rating must be between 1 and 5")
    job = db.get(SupplierJob, job_id)
    if not job:
        raise NotFound(f"Supplier job {job_id} not found")
    if job.status not in RATEABLE_JOB_STATUSES:
        raise InvalidTransition(
            f"Job {job.id} is {job.status}; only ready or delivered jobs can be rated",
            job_status=job.status,
        )

    job.supplier_rating = float(rating)
    if mark_delivered:
        job.status = "delivered"
    db.commit()
    log.info(f"Supplier {job.supplier_id} job {job.id} rated {rating}/5 ({job.status})")
    return job
