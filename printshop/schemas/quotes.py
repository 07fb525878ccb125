"""
schemas/quotes.py — Pydantic models for quote endpoints

Validates quote creation, lifecycle events, supplier assignment and deal rating.

Business Rules:
- A quote needs at least one item; quantities are positive
- Events and expected statuses must be known lifecycle values
- reject and cancel_supplier payloads are checked against their own models
- Deal rating is 1-10

Called by: routers/quotes.py
Depends on: pydantic, lifecycle
"""

from __future__ import annotations

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from ..lifecycle import QuoteEvent, QuoteStatus


class QuoteItemIn(BaseModel):
    catalog_unit_id: int
    quantity: int = Field(1, gt=0)
    manual_price: float | None = Field(None, ge=0)


class QuoteCreate(BaseModel):
    customer_id: int | None = None
    pricelist_id: int | None = None
    auto_production: bool = False
    items: list[QuoteItemIn]

    @field_validator("items")
    @classmethod
    def items_not_empty(cls, v: list[QuoteItemIn]) -> list[QuoteItemIn]:
        if not v:
            raise ValueError("A quote needs at least one item")
        return v


class RejectPayload(BaseModel):
    reason: str = ""


class CancelSupplierPayload(BaseModel):
    item_ids: list[int] | None = None
    reason: str = ""


EVENT_PAYLOADS: dict[QuoteEvent, type[BaseModel]] = {
    QuoteEvent.REJECT: RejectPayload,
    QuoteEvent.CANCEL_SUPPLIER: CancelSupplierPayload,
}


class TransitionRequest(BaseModel):
    event: QuoteEvent
    payload: dict = Field(default_factory=dict)
    expected_status: QuoteStatus | None = None

    @model_validator(mode="after")
    def payload_matches_event(self) -> "TransitionRequest":
        model = EVENT_PAYLOADS.get(self.event)
        if model is None:
            return self
        try:
            self.payload = model.model_validate(self.payload).model_dump(exclude_none=True)
        except ValidationError as exc:
            first = exc.errors()[0]
            field = ".".join(str(p) for p in first["loc"])
            raise ValueError(f"Invalid {self.event.value} payload: {field}: {first['msg']}")
        return self


class AssignSupplierRequest(BaseModel):
    supplier_id: int
    expected_supplier_id: int | None = None


class AssignQuoteSupplierRequest(BaseModel):
    supplier_id: int


class DealRating(BaseModel):
    rating: int = Field(..., ge=1, le=10)
