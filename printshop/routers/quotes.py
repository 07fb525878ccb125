"""Quotes API — creation, lifecycle events, supplier assignment, deal rating."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import require_staff, require_user
from ..exceptions import NotAuthorized
from ..lifecycle import QuoteEvent
from ..models import Quote, User
from ..schemas.quotes import (
    AssignQuoteSupplierRequest,
    AssignSupplierRequest,
    DealRating,
    QuoteCreate,
    TransitionRequest,
)
from ..services import quote_service

router = APIRouter(tags=["quotes"])

# Events a customer may fire on their own quote; everything else is staff-only
CUSTOMER_EVENTS = (QuoteEvent.APPROVE, QuoteEvent.REJECT)


def _check_can_view(quote: Quote, user: User) -> None:
    if not user.is_staff and quote.customer_id != user.id:
        raise NotAuthorized("You can only view your own quotes")


@router.post("/api/quotes", status_code=201)
def create_quote(
    body: QuoteCreate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    if user.is_staff:
        customer_id = body.customer_id or user.id
        employee_id = user.id
    else:
        if body.customer_id not in (None, user.id):
            raise NotAuthorized("Customers can only create quotes for themselves")
        customer_id, employee_id = user.id, None

    quote = quote_service.create_quote(
        db,
        customer_id=customer_id,
        items=[i.model_dump() for i in body.items],
        employee_id=employee_id,
        pricelist_id=body.pricelist_id,
        auto_production=body.auto_production,
    )
    return quote_service.quote_to_dict(quote)


@router.get("/api/quotes/{quote_id}")
def get_quote(
    quote_id: int,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    quote = quote_service.get_quote(db, quote_id)
    _check_can_view(quote, user)
    return {
        **quote_service.quote_to_dict(quote),
        "transitions": quote_service.get_quote_transitions(db, quote.id),
    }


@router.get("/api/quotes/{quote_id}/history")
def get_quote_history(
    quote_id: int,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    quote = quote_service.get_quote(db, quote_id)
    _check_can_view(quote, user)
    return {"quote_id": quote.id, "versions": quote_service.get_quote_history(db, quote.id)}


@router.post("/api/quotes/{quote_id}/transitions")
def transition_quote(
    quote_id: int,
    body: TransitionRequest,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    if not user.is_staff:
        quote = quote_service.get_quote(db, quote_id)
        if body.event not in CUSTOMER_EVENTS or quote.customer_id != user.id:
            raise NotAuthorized(f"Customers cannot {body.event.value} this quote")

    quote = quote_service.transition_quote(
        db,
        quote_id,
        body.event,
        payload=body.payload,
        actor=user,
        expected_status=body.expected_status,
    )
    return quote_service.quote_to_dict(quote)


@router.post("/api/quote-items/{item_id}/supplier")
def assign_item_supplier(
    item_id: int,
    body: AssignSupplierRequest,
    user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    item = quote_service.assign_supplier(
        db,
        item_id,
        body.supplier_id,
        actor=user,
        expected_supplier_id=body.expected_supplier_id,
    )
    return quote_service.item_to_dict(item)


@router.post("/api/quotes/{quote_id}/supplier")
def assign_quote_supplier(
    quote_id: int,
    body: AssignQuoteSupplierRequest,
    user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return quote_service.assign_supplier_to_quote(db, quote_id, body.supplier_id, actor=user)


@router.post("/api/quotes/{quote_id}/rating")
def rate_deal(
    quote_id: int,
    body: DealRating,
    user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    quote = quote_service.rate_deal(db, quote_id, body.rating)
    return {"quote_id": quote.id, "deal_rating": quote.deal_rating}
