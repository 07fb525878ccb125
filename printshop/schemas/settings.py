"""
schemas/settings.py — Scoring weights payload

Business Rules:
- Each weight is a whole number 0-100
- ``deliveryTime`` is accepted as an alias of ``delivery_time``
- The sum-to-100 rule is enforced by settings_service so the caller gets the
  invalid_configuration error code

Called by: routers/settings.py
Depends on: pydantic
"""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, Field


class ScoringWeightsIn(BaseModel):
    price: int = Field(..., ge=0, le=100)
    rating: int = Field(..., ge=0, le=100)
    delivery_time: int = Field(
        ..., ge=0, le=100, validation_alias=AliasChoices("delivery_time", "deliveryTime")
    )
    reliability: int = Field(..., ge=0, le=100)
