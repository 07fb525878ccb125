"""
schemas/suppliers.py — Supplier job feedback payload

Called by: routers/suppliers.py
Depends on: pydantic
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class SupplierJobRating(BaseModel):
    rating: float = Field(..., ge=1, le=5)
    mark_delivered: bool = False
