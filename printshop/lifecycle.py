"""
Quote Lifecycle — the single transition table for quote statuses.

    draft ──send──▶ sent ──approve──▶ approved ──start_production──▶ in_production ──mark_ready──▶ ready
                     │                   ▲  │                              │
                     └──reject──▶ rejected  └──────cancel_supplier─────────┘

    revise (from draft / sent / approved / in_production): parent ──▶ superseded,
    a new draft with version + 1 is created by the quote service.

Terminal: rejected, ready. Superseded quotes are read-only.

This module is pure: it knows nothing about sessions or persistence. The quote
service asks it for the target status and runs the guards before writing.
"""

from enum import Enum

from .exceptions import InvalidTransition, NotAuthorized


class QuoteStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    APPROVED = "approved"
    REJECTED = "rejected"
    SUPERSEDED = "superseded"
    IN_PRODUCTION = "in_production"
    READY = "ready"


class QuoteEvent(str, Enum):
    SEND = "send"
    APPROVE = "approve"
    REJECT = "reject"
    START_PRODUCTION = "start_production"
    MARK_READY = "mark_ready"
    REVISE = "revise"
    CANCEL_SUPPLIER = "cancel_supplier"


TERMINAL_STATUSES = frozenset({QuoteStatus.REJECTED, QuoteStatus.READY})
READ_ONLY_STATUSES = TERMINAL_STATUSES | {QuoteStatus.SUPERSEDED}
REVISABLE_STATUSES = frozenset(
    {QuoteStatus.DRAFT, QuoteStatus.SENT, QuoteStatus.APPROVED, QuoteStatus.IN_PRODUCTION}
)
# Statuses in which line items (prices, quantities) may still be edited
EDITABLE_STATUSES = frozenset({QuoteStatus.DRAFT})
# Statuses in which a supplier may be assigned to a line item
ASSIGNABLE_STATUSES = frozenset(
    {QuoteStatus.DRAFT, QuoteStatus.APPROVED, QuoteStatus.IN_PRODUCTION}
)

# event -> {from_status: to_status}
# For REVISE the target is the parent's new status; for CANCEL_SUPPLIER the
# target is where the quote stays while some items remain assigned.
TRANSITIONS: dict[QuoteEvent, dict[QuoteStatus, QuoteStatus]] = {
    QuoteEvent.SEND: {QuoteStatus.DRAFT: QuoteStatus.SENT},
    QuoteEvent.APPROVE: {QuoteStatus.SENT: QuoteStatus.APPROVED},
    QuoteEvent.REJECT: {QuoteStatus.SENT: QuoteStatus.REJECTED},
    QuoteEvent.START_PRODUCTION: {QuoteStatus.APPROVED: QuoteStatus.IN_PRODUCTION},
    QuoteEvent.MARK_READY: {QuoteStatus.IN_PRODUCTION: QuoteStatus.READY},
    QuoteEvent.REVISE: {s: QuoteStatus.SUPERSEDED for s in REVISABLE_STATUSES},
    QuoteEvent.CANCEL_SUPPLIER: {
        QuoteStatus.APPROVED: QuoteStatus.APPROVED,
        QuoteStatus.IN_PRODUCTION: QuoteStatus.IN_PRODUCTION,
    },
}


def coerce_status(value) -> QuoteStatus:
    try:
        return QuoteStatus(value)
    except ValueError:
        raise InvalidTransition(f"Unknown quote status '{value}'", status=value)


def coerce_event(value) -> QuoteEvent:
    try:
        return QuoteEvent(value)
    except ValueError:
        raise InvalidTransition(f"Unknown quote event '{value}'", event=value)


def allowed_events(status) -> list[QuoteEvent]:
    """Events accepted from ``status``, in declaration order."""
    status = coerce_status(status)
    return [event for event, table in TRANSITIONS.items() if status in table]


def next_status(status, event) -> QuoteStatus:
    """Target status for ``event`` fired from ``status``.

    Raises InvalidTransition when the table has no such edge.
    """
    status = coerce_status(status)
    event = coerce_event(event)
    target = TRANSITIONS[event].get(status)
    if target is None:
        raise InvalidTransition(
            f"Cannot {event.value} a quote that is {status.value}",
            status=status.value,
            event=event.value,
        )
    return target


def cancel_supplier_target(status, all_items_unassigned: bool) -> QuoteStatus:
    """Status after cancel_supplier: back to approved once nothing is assigned."""
    stay = next_status(status, QuoteEvent.CANCEL_SUPPLIER)
    return QuoteStatus.APPROVED if all_items_unassigned else stay


# ── Guards ──────────────────────────────────────────────────────────────
# Guards receive ORM objects (or anything with the same attributes).


def guard_send(items) -> None:
    """A quote can be sent once it has items and every item is priced."""
    if not items:
        raise InvalidTransition(
            "Cannot send an empty quote", status="draft", event="send"
        )
    unpriced = [i for i in items if i.price_at_quote is None or i.price_at_quote <= 0]
    if unpriced:
        raise InvalidTransition(
            "All items must have prices before sending to the customer",
            status="draft",
            event="send",
            unpriced_item_ids=[i.id for i in unpriced],
        )


def guard_approve(quote, actor) -> None:
    """Only the quote's customer or a staff proxy may approve."""
    if actor is None:
        raise NotAuthorized("Approval requires an authenticated caller")
    if actor.id == quote.customer_id or actor.is_staff:
        return
    raise NotAuthorized("Only the quote's customer or staff can approve it")


def guard_start_production(quote, items) -> None:
    if quote.auto_production:
        return
    if any(i.supplier_id is not None for i in items):
        return
    raise InvalidTransition(
        "Assign a supplier to at least one item before starting production",
        status="approved",
        event="start_production",
    )
