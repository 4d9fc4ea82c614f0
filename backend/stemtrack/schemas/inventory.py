"""Pydantic schemas for boxes and intake scans."""

from datetime import datetime

from pydantic import BaseModel, Field


class IntakeScan(BaseModel):
    """Payload for POST /api/inventory/scan: the decoded intake label.

    Expected grammar: TYPE|COLOR|QUANTITY|UNIT, e.g. ``ROSES|RED|200|STEMS``.
    The grammar is checked by the transition engine so a bad label fails
    with MALFORMED_INPUT rather than a request validation error.
    """
    barcode: str = Field(..., max_length=500)


class BoxOut(BaseModel):
    id: str
    flower_type: str
    color: str
    quantity: int
    unit: str
    location: str
    updated_by: str | None = None
    created_at: datetime
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class BoxScanResponse(BaseModel):
    """Immediate feedback for an intake or checkout scan."""
    message: str
    box: BoxOut
