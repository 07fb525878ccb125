"""
schemas/pricing.py — Pydantic models for pricing endpoints

Called by: routers/pricing.py
Depends on: pydantic
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class PricelistSwitch(BaseModel):
    pricelist_id: int


class ManualPriceSet(BaseModel):
    price: float = Field(..., ge=0)
