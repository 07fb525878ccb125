"""Pricing API — line price resolution, pricelist switch, manual overrides."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import require_staff
from ..models import User
from ..schemas.pricing import ManualPriceSet, PricelistSwitch
from ..services import pricing_service

router = APIRouter(tags=["pricing"])


@router.get("/api/quote-items/{item_id}/price")
def get_line_price(
    item_id: int,
    user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return {"item_id": item_id, **pricing_service.resolve_line_price(db, item_id).to_dict()}


@router.put("/api/quotes/{quote_id}/pricelist")
def switch_pricelist(
    quote_id: int,
    body: PricelistSwitch,
    user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return pricing_service.switch_pricelist(db, quote_id, body.pricelist_id)


@router.put("/api/quote-items/{item_id}/manual-price")
def set_manual_price(
    item_id: int,
    body: ManualPriceSet,
    user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return pricing_service.set_manual_price(db, item_id, body.price)


@router.delete("/api/quote-items/{item_id}/manual-price")
def reset_manual_price(
    item_id: int,
    user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return pricing_service.reset_manual_price(db, item_id)
