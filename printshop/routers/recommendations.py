"""Supplier Recommendations API — per item, whole quote, by category."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import require_staff
from ..models import User
from ..services import recommendation_service
from ..services.performance_service import get_supplier_scorecard

router = APIRouter(tags=["recommendations"])


@router.get("/api/quote-items/{item_id}/suppliers")
def item_suppliers(
    item_id: int,
    limit: int = Query(None, ge=1, le=50),
    user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return recommendation_service.rank_suppliers_for_item(db, item_id, limit=limit)


@router.get("/api/quotes/{quote_id}/suppliers")
def quote_suppliers(
    quote_id: int,
    limit: int = Query(None, ge=1, le=50),
    user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return recommendation_service.rank_suppliers_for_quote(db, quote_id, limit=limit)


@router.get("/api/quotes/{quote_id}/suppliers/by-category")
def quote_suppliers_by_category(
    quote_id: int,
    limit: int = Query(None, ge=1, le=50),
    user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return recommendation_service.rank_suppliers_by_category(db, quote_id, limit=limit)


@router.get("/api/suppliers/{supplier_id}/performance")
def supplier_performance(
    supplier_id: int,
    user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return get_supplier_scorecard(db, supplier_id)
