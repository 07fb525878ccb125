"""
Quote service — creation, lifecycle transitions, revisions and supplier assignment.

Business Rules:
- Every status change goes through transition_quote(). The status is written
  with a compare-and-set on the status the quote was read with; if another
  request moved it first, the loser gets InvalidTransition and nothing changes.
- Each persisted transition writes a QuoteTransition row in the same
  transaction as the status write.
- revise: parent → superseded (compare-and-set), a new draft with version + 1
  and deep-copied items is created in the same lineage. (lineage_id, version)
  is unique, so two concurrent revisions cannot both succeed.
- Supplier assignment is a compare-and-set on the item's current supplier.
  Losing the race raises AlreadyAssigned. Once the quote has left draft an
  assignment is never replaced in place; cancel_supplier reopens the item.
- Assignment does not touch the customer price; only totals are recomputed.
- start_production opens a pending SupplierJob per assigned item,
  cancel_supplier cancels the open jobs of reopened items, mark_ready stamps
  the open jobs ready.

Called by: routers/quotes.py
Depends on: models, lifecycle, services/pricing_service.py
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import func as sqlfunc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..exceptions import AlreadyAssigned, InvalidTransition, NoEligibleSupplier, NotFound
from ..lifecycle import (
    ASSIGNABLE_STATUSES,
    QuoteEvent,
    QuoteStatus,
    allowed_events,
    cancel_supplier_target,
    coerce_event,
    coerce_status,
    guard_approve,
    guard_send,
    guard_start_production,
    next_status,
)
from ..models import (
    CatalogUnit,
    Pricelist,
    Quote,
    QuoteItem,
    QuoteTransition,
    Supplier,
    SupplierAssignment,
    SupplierJob,
    SupplierOffer,
    User,
)
from .catalog_service import SqlPricingCatalog
from .pricing_service import price_new_item, recalculate_quote_totals

log = logging.getLogger(__name__)

OPEN_JOB_STATUSES = ("pending", "in_progress")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(dt):
    return dt.isoformat() if dt else None


def _num(value):
    return float(value) if value is not None else None


# ── Reads ────────────────────────────────────────────────────────────


def get_quote(db: Session, quote_id: int) -> Quote:
    quote = db.get(Quote, quote_id)
    if not quote:
        raise NotFound(f"Quote {quote_id} not found")
    return quote


def item_to_dict(item: QuoteItem) -> dict:
    unit = item.catalog_unit
    return {
        "id": item.id,
        "catalog_unit_id": item.catalog_unit_id,
        "name": unit.display_name if unit else None,
        "category": unit.category if unit else None,
        "quantity": item.quantity,
        "price_at_quote": _num(item.price_at_quote),
        "is_manual_price": bool(item.is_manual_price),
        "supplier_id": item.supplier_id,
        "supplier_cost": _num(item.supplier_cost),
        "delivery_days": item.delivery_days,
    }


def quote_to_dict(quote: Quote, include_items: bool = True) -> dict:
    final_value = Decimal(quote.final_value or 0)
    supplier_cost = Decimal(quote.total_supplier_cost or 0)
    data = {
        "id": quote.id,
        "customer_id": quote.customer_id,
        "employee_id": quote.employee_id,
        "status": quote.status,
        "version": quote.version,
        "parent_quote_id": quote.parent_quote_id,
        "lineage_id": quote.lineage_id,
        "pricelist_id": quote.pricelist_id,
        "auto_production": bool(quote.auto_production),
        "final_value": float(final_value),
        "total_supplier_cost": float(supplier_cost),
        "profit": float(final_value - supplier_cost),
        "rejection_reason": quote.rejection_reason,
        "deal_rating": quote.deal_rating,
        "allowed_events": [e.value for e in allowed_events(quote.status)],
        "created_at": _iso(quote.created_at),
        "updated_at": _iso(quote.updated_at),
    }
    if include_items:
        data["items"] = [item_to_dict(i) for i in quote.items]
    return data


def get_quote_history(db: Session, quote_id: int) -> list[dict]:
    """Every version of the quote's lineage, oldest first."""
    quote = get_quote(db, quote_id)
    versions = (
        db.query(Quote)
        .filter(Quote.lineage_id == quote.lineage_id)
        .order_by(Quote.version)
        .all()
    )
    return [quote_to_dict(q, include_items=False) for q in versions]


def get_quote_transitions(db: Session, quote_id: int) -> list[dict]:
    rows = (
        db.query(QuoteTransition)
        .filter(QuoteTransition.quote_id == quote_id)
        .order_by(QuoteTransition.id)
        .all()
    )
    return [
        {
            "from_status": r.from_status,
            "to_status": r.to_status,
            "event": r.event,
            "actor_id": r.actor_id,
            "details": r.details or {},
            "created_at": _iso(r.created_at),
        }
        for r in rows
    ]


# ── Creation ─────────────────────────────────────────────────────────


def _default_pricelist_id(db: Session):
    return SqlPricingCatalog(db).get_default_pricelist_id()


def create_quote(
    db: Session,
    customer_id: int,
    items: list[dict],
    employee_id: int | None = None,
    pricelist_id: int | None = None,
    auto_production: bool = False,
) -> Quote:
    """Create a version-1 draft and price each line from the chosen (or default) pricelist."""
    if not db.get(User, customer_id):
        raise NotFound(f"Customer {customer_id} not found")
    if pricelist_id is not None:
        pricelist = db.get(Pricelist, pricelist_id)
        if not pricelist or not pricelist.is_active:
            raise NotFound(f"Pricelist {pricelist_id} not found")
    else:
        pricelist_id = _default_pricelist_id(db)

    try:
        quote = Quote(
            customer_id=customer_id,
            employee_id=employee_id,
            status=QuoteStatus.DRAFT.value,
            version=1,
            pricelist_id=pricelist_id,
            auto_production=auto_production,
        )
        db.add(quote)
        db.flush()
        quote.lineage_id = quote.id

        for line in items:
            unit_id = line["catalog_unit_id"]
            if not db.get(CatalogUnit, unit_id):
                raise NotFound(f"Catalog unit {unit_id} not found")
            item = QuoteItem(
                catalog_unit_id=unit_id,
                quantity=line.get("quantity") or 1,
            )
            if line.get("manual_price") is not None:
                item.is_manual_price = True
                item.manual_price = Decimal(str(line["manual_price"]))
            quote.items.append(item)
            price_new_item(db, item, pricelist_id)

        recalculate_quote_totals(db, quote)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(quote)
    log.info(f"Quote {quote.id} created for customer {customer_id} ({len(items)} items)")
    return quote


# ── Transition plumbing ──────────────────────────────────────────────


def persist_quote_transition(
    db: Session,
    quote_id: int,
    from_status,
    to_status,
    event,
    actor_id: int | None = None,
    metadata: dict | None = None,
) -> QuoteTransition:
    """Record a status change. Caller owns the transaction."""
    row = QuoteTransition(
        quote_id=quote_id,
        from_status=coerce_status(from_status).value,
        to_status=coerce_status(to_status).value,
        event=coerce_event(event).value,
        actor_id=actor_id,
        details=metadata or {},
    )
    db.add(row)
    return row


def _compare_and_set_status(
    db: Session, quote: Quote, expected: QuoteStatus, target: QuoteStatus, **values
) -> None:
    db.flush()
    columns = {getattr(Quote, k): v for k, v in values.items()}
    updated = (
        db.query(Quote)
        .filter(Quote.id == quote.id, Quote.status == expected.value)
        .update(
            {Quote.status: target.value, Quote.updated_at: _now(), **columns},
            synchronize_session=False,
        )
    )
    if updated != 1:
        raise InvalidTransition(
            f"Quote {quote.id} is no longer {expected.value}",
            status=expected.value,
        )
    db.refresh(quote)


def _actor_id(actor):
    return actor.id if actor is not None else None


def _open_jobs_query(db: Session, **filters):
    q = db.query(SupplierJob).filter(SupplierJob.status.in_(OPEN_JOB_STATUSES))
    for column, value in filters.items():
        q = q.filter(getattr(SupplierJob, column) == value)
    return q


def _open_job(db: Session, quote: Quote, item: QuoteItem) -> SupplierJob:
    job = SupplierJob(
        supplier_id=item.supplier_id,
        quote_id=quote.id,
        quote_item_id=item.id,
        catalog_unit_id=item.catalog_unit_id,
        quantity=item.quantity,
        price_per_unit=item.supplier_cost,
        status="pending",
        promised_delivery_days=item.delivery_days,
    )
    db.add(job)
    return job


# ── Event handlers ───────────────────────────────────────────────────
# Each handler runs inside transition_quote's transaction and returns the
# metadata stored on the QuoteTransition row.


def _payload_reason(payload: dict, event: QuoteEvent) -> str:
    reason = payload.get("reason") or ""
    if not isinstance(reason, str):
        raise InvalidTransition(f"{event.value} reason must be text", event=event.value)
    return reason.strip()


def _payload_item_ids(payload: dict) -> set[int] | None:
    wanted = payload.get("item_ids")
    if wanted is None:
        return None
    if not isinstance(wanted, (list, tuple, set)) or not all(
        isinstance(i, int) and not isinstance(i, bool) for i in wanted
    ):
        raise InvalidTransition(
            "cancel_supplier item_ids must be a list of item ids",
            event=QuoteEvent.CANCEL_SUPPLIER.value,
        )
    return set(wanted)


def _on_send(db, quote, current, target, payload, actor) -> dict:
    guard_send(quote.items)
    recalculate_quote_totals(db, quote)
    _compare_and_set_status(db, quote, current, target)
    return {"final_value": float(quote.final_value or 0)}


def _on_approve(db, quote, current, target, payload, actor) -> dict:
    guard_approve(quote, actor)
    _compare_and_set_status(db, quote, current, target)
    return {"by_customer": actor.id == quote.customer_id}


def _on_reject(db, quote, current, target, payload, actor) -> dict:
    reason = _payload_reason(payload, QuoteEvent.REJECT)
    _compare_and_set_status(db, quote, current, target, rejection_reason=reason)
    return {"reason": reason}


def _on_start_production(db, quote, current, target, payload, actor) -> dict:
    guard_start_production(quote, quote.items)
    _compare_and_set_status(db, quote, current, target)
    jobs = [_open_job(db, quote, i) for i in quote.items if i.supplier_id is not None]
    db.flush()
    return {"job_ids": [j.id for j in jobs]}


def _on_mark_ready(db, quote, current, target, payload, actor) -> dict:
    _compare_and_set_status(db, quote, current, target)
    now = _now()
    jobs = _open_jobs_query(db, quote_id=quote.id).all()
    for job in jobs:
        job.status = "ready"
        job.supplier_ready_at = now
    return {"jobs_ready": len(jobs)}


def _on_cancel_supplier(db, quote, current, target, payload, actor) -> dict:
    reason = _payload_reason(payload, QuoteEvent.CANCEL_SUPPLIER)
    wanted = _payload_item_ids(payload)
    items = [
        i
        for i in quote.items
        if i.supplier_id is not None and (not wanted or i.id in wanted)
    ]
    if not items:
        raise InvalidTransition(
            "No assigned items to cancel",
            status=current.value,
            event=QuoteEvent.CANCEL_SUPPLIER.value,
        )

    now = _now()
    cancelled = []
    for item in items:
        supplier_id = item.supplier_id
        updated = (
            db.query(QuoteItem)
            .filter(QuoteItem.id == item.id, QuoteItem.supplier_id == supplier_id)
            .update(
                {
                    QuoteItem.supplier_id: None,
                    QuoteItem.supplier_cost: None,
                    QuoteItem.delivery_days: None,
                },
                synchronize_session=False,
            )
        )
        if updated != 1:
            raise AlreadyAssigned(
                f"Item {item.id} changed supplier while cancelling", item_id=item.id
            )
        _close_assignments(db, item, actor, reason, now)
        for job in _open_jobs_query(db, quote_item_id=item.id).all():
            job.status = "cancelled"
            job.cancelled_at = now
            job.cancelled_reason = reason
        db.refresh(item)
        cancelled.append({"item_id": item.id, "supplier_id": supplier_id})

    all_unassigned = all(i.supplier_id is None for i in quote.items)
    final = cancel_supplier_target(current, all_unassigned)
    _compare_and_set_status(db, quote, current, final)
    recalculate_quote_totals(db, quote)
    return {"reason": reason, "cancelled": cancelled, "to_status": final.value}


def _on_revise(db, quote, current, target, payload, actor) -> dict:
    if quote.lineage_id is None:
        quote.lineage_id = quote.id
    _compare_and_set_status(db, quote, current, target)
    now = _now()
    for job in _open_jobs_query(db, quote_id=quote.id).all():
        job.status = "cancelled"
        job.cancelled_at = now
        job.cancelled_reason = "quote revised"

    latest = (
        db.query(sqlfunc.max(Quote.version))
        .filter(Quote.lineage_id == quote.lineage_id)
        .scalar()
    )
    revision = Quote(
        customer_id=quote.customer_id,
        employee_id=quote.employee_id if actor is None or not actor.is_staff else actor.id,
        status=QuoteStatus.DRAFT.value,
        version=(latest or quote.version) + 1,
        parent_quote_id=quote.id,
        lineage_id=quote.lineage_id,
        pricelist_id=quote.pricelist_id,
        auto_production=quote.auto_production,
        final_value=quote.final_value,
        total_supplier_cost=quote.total_supplier_cost,
    )
    for src in quote.items:
        copy = QuoteItem(
            catalog_unit_id=src.catalog_unit_id,
            quantity=src.quantity,
            price_at_quote=src.price_at_quote,
            is_manual_price=src.is_manual_price,
            manual_price=src.manual_price,
            supplier_id=src.supplier_id,
            supplier_cost=src.supplier_cost,
            delivery_days=src.delivery_days,
        )
        revision.items.append(copy)
    db.add(revision)
    try:
        db.flush()
    except IntegrityError:
        raise InvalidTransition(
            f"Quote {quote.id} was revised concurrently",
            status=current.value,
            event=QuoteEvent.REVISE.value,
        )
    for copy in revision.items:
        if copy.supplier_id is not None:
            db.add(
                SupplierAssignment(
                    quote_item_id=copy.id,
                    supplier_id=copy.supplier_id,
                    supplier_cost=copy.supplier_cost,
                    delivery_days=copy.delivery_days,
                    assigned_by_id=_actor_id(actor),
                )
            )
    return {"new_quote_id": revision.id, "new_version": revision.version}


_HANDLERS = {
    QuoteEvent.SEND: _on_send,
    QuoteEvent.APPROVE: _on_approve,
    QuoteEvent.REJECT: _on_reject,
    QuoteEvent.START_PRODUCTION: _on_start_production,
    QuoteEvent.MARK_READY: _on_mark_ready,
    QuoteEvent.CANCEL_SUPPLIER: _on_cancel_supplier,
    QuoteEvent.REVISE: _on_revise,
}


def transition_quote(
    db: Session,
    quote_id: int,
    event,
    payload: dict | None = None,
    actor: User | None = None,
    expected_status=None,
) -> Quote:
    """Fire ``event`` on a quote. Returns the quote to show next.

    For ``revise`` that is the new draft; for every other event it is the
    quote itself. ``expected_status`` is the status the caller last saw; if
    the quote has moved on the call fails without touching anything.
    """
    quote = get_quote(db, quote_id)
    event = coerce_event(event)
    current = coerce_status(quote.status)
    if expected_status is not None and coerce_status(expected_status) != current:
        raise InvalidTransition(
            f"Quote {quote.id} is {current.value}, not {coerce_status(expected_status).value}",
            status=current.value,
            event=event.value,
        )
    target = next_status(current, event)
    payload = dict(payload or {})

    try:
        metadata = _HANDLERS[event](db, quote, current, target, payload, actor)
        persist_quote_transition(
            db,
            quote.id,
            current,
            coerce_status(quote.status),
            event,
            actor_id=_actor_id(actor),
            metadata=metadata,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    log.info(f"Quote {quote.id}: {current.value} --{event.value}--> {quote.status}")
    if event == QuoteEvent.REVISE:
        revision = get_quote(db, metadata["new_quote_id"])
        log.info(f"Quote {quote.id} revised as quote {revision.id} (v{revision.version})")
        return revision
    db.refresh(quote)
    return quote


# ── Supplier assignment ──────────────────────────────────────────────


def _close_assignments(db: Session, item: QuoteItem, actor, reason: str, when: datetime) -> None:
    active = (
        db.query(SupplierAssignment)
        .filter(
            SupplierAssignment.quote_item_id == item.id,
            SupplierAssignment.cancelled_at.is_(None),
        )
        .all()
    )
    for row in active:
        row.cancelled_at = when
        row.cancelled_by_id = _actor_id(actor)
        row.cancel_reason = reason


def _find_offer(db: Session, supplier_id: int, catalog_unit_id: int):
    return (
        db.query(SupplierOffer)
        .filter(
            SupplierOffer.supplier_id == supplier_id,
            SupplierOffer.catalog_unit_id == catalog_unit_id,
        )
        .first()
    )


def _get_active_supplier(db: Session, supplier_id: int) -> Supplier:
    supplier = db.get(Supplier, supplier_id)
    if not supplier or not supplier.is_active:
        raise NotFound(f"Supplier {supplier_id} not found")
    return supplier


def _assign(
    db: Session,
    item: QuoteItem,
    supplier_id: int,
    offer: SupplierOffer,
    actor,
    expected_supplier_id: int | None,
) -> None:
    """Compare-and-set the item's supplier. Caller owns the transaction."""
    condition = (
        QuoteItem.supplier_id.is_(None)
        if expected_supplier_id is None
        else QuoteItem.supplier_id == expected_supplier_id
    )
    updated = (
        db.query(QuoteItem)
        .filter(QuoteItem.id == item.id, condition)
        .update(
            {
                QuoteItem.supplier_id: supplier_id,
                QuoteItem.supplier_cost: offer.price_per_unit,
                QuoteItem.delivery_days: offer.delivery_days,
            },
            synchronize_session=False,
        )
    )
    if updated != 1:
        raise AlreadyAssigned(
            f"Item {item.id} already has a different supplier",
            item_id=item.id,
            expected_supplier_id=expected_supplier_id,
        )
    now = _now()
    if expected_supplier_id is not None:
        _close_assignments(db, item, actor, "replaced", now)
    db.refresh(item)
    db.add(
        SupplierAssignment(
            quote_item_id=item.id,
            supplier_id=supplier_id,
            supplier_cost=offer.price_per_unit,
            delivery_days=offer.delivery_days,
            assigned_by_id=_actor_id(actor),
            assigned_at=now,
        )
    )
    if coerce_status(item.quote.status) == QuoteStatus.IN_PRODUCTION:
        _open_job(db, item.quote, item)


def _require_assignable(quote: Quote, expected_supplier_id) -> QuoteStatus:
    status = coerce_status(quote.status)
    if status not in ASSIGNABLE_STATUSES:
        raise InvalidTransition(
            f"Suppliers cannot be assigned on a quote that is {status.value}",
            status=status.value,
        )
    if expected_supplier_id is not None and status != QuoteStatus.DRAFT:
        raise InvalidTransition(
            "Cancel the current supplier before assigning another",
            status=status.value,
            event=QuoteEvent.CANCEL_SUPPLIER.value,
        )
    return status


def assign_supplier(
    db: Session,
    item_id: int,
    supplier_id: int,
    actor: User | None = None,
    expected_supplier_id: int | None = None,
) -> QuoteItem:
    """Assign a supplier to one line item.

    ``expected_supplier_id`` is the supplier the caller believes is currently
    assigned (None for an open item). Replacing an assignment is only allowed
    while the quote is a draft.
    """
    item = db.get(QuoteItem, item_id)
    if not item:
        raise NotFound(f"Quote item {item_id} not found")
    _require_assignable(item.quote, expected_supplier_id)
    _get_active_supplier(db, supplier_id)
    offer = _find_offer(db, supplier_id, item.catalog_unit_id)
    if not offer:
        raise NotFound(
            f"Supplier {supplier_id} has no offer for catalog unit {item.catalog_unit_id}"
        )

    try:
        _assign(db, item, supplier_id, offer, actor, expected_supplier_id)
        recalculate_quote_totals(db, item.quote)
        db.commit()
    except Exception:
        db.rollback()
        raise
    log.info(f"Supplier {supplier_id} assigned to quote item {item.id} (quote {item.quote_id})")
    return item


def assign_supplier_to_quote(
    db: Session, quote_id: int, supplier_id: int, actor: User | None = None
) -> dict:
    """Assign one supplier to every open item it has an offer for."""
    quote = get_quote(db, quote_id)
    _require_assignable(quote, None)
    _get_active_supplier(db, supplier_id)

    assigned, skipped = [], []
    try:
        for item in quote.items:
            if item.supplier_id is not None:
                skipped.append(item.id)
                continue
            offer = _find_offer(db, supplier_id, item.catalog_unit_id)
            if not offer:
                skipped.append(item.id)
                continue
            _assign(db, item, supplier_id, offer, actor, None)
            assigned.append(item.id)
        if not assigned:
            raise NoEligibleSupplier(
                f"Supplier {supplier_id} cannot fulfil any open item of quote {quote.id}",
                quote_id=quote.id,
                supplier_id=supplier_id,
            )
        totals = recalculate_quote_totals(db, quote)
        db.commit()
    except Exception:
        db.rollback()
        raise
    log.info(f"Supplier {supplier_id} assigned to {len(assigned)} items of quote {quote.id}")
    return {
        "quote_id": quote.id,
        "supplier_id": supplier_id,
        "assigned_item_ids": assigned,
        "skipped_item_ids": skipped,
        **totals,
    }


# ── Deal rating ──────────────────────────────────────────────────────


def rate_deal(db: Session, quote_id: int, rating: int) -> Quote:
    """Staff's 1-10 rating of how good the deal was."""
    if not isinstance(rating, int) or isinstance(rating, bool) or not 1 <= rating <= 10:
        raise ValueError("Deal rating must be a whole number between 1 and 10")
    quote = get_quote(db, quote_id)
    quote.deal_rating = rating
    db.commit()
    log.info(f"Quote {quote.id} rated {rating}/10")
    return quote
