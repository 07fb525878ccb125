"""Suppliers API — job history and job ratings."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import require_staff
from ..models import User
from ..schemas.suppliers import SupplierJobRating
from ..services import performance_service

router = APIRouter(tags=["suppliers"])


@router.get("/api/suppliers/{supplier_id}/jobs")
def supplier_jobs(
    supplier_id: int,
    user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return {"supplier_id": supplier_id, "jobs": performance_service.list_supplier_jobs(db, supplier_id)}


@router.put("/api/supplier-jobs/{job_id}/rating")
def rate_supplier_job(
    job_id: int,
    body: SupplierJobRating,
    user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    job = performance_service.rate_supplier_job(
        db, job_id, body.rating, mark_delivered=body.mark_delivered
    )
    return performance_service.job_to_dict(job)
