"""Pydantic schemas for production lines, line assignments, and bunches."""

from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from stemtrack.models.production_line import LineStatus
from stemtrack.schemas.inventory import BoxOut


class LineOut(BaseModel):
    id: int
    name: str
    status: LineStatus
    active_recipe_id: str | None = None
    produced_count: int
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class LineUpdate(BaseModel):
    """Partial line update: status and/or active recipe.

    Send ``active_recipe_id: null`` to clear the recipe.
    """
    status: LineStatus | None = None
    active_recipe_id: str | None = None

    @model_validator(mode="after")
    def at_least_one_field(self):
        if not self.model_fields_set:
            raise ValueError("Provide status and/or active_recipe_id")
        return self


class AssignBoxRequest(BaseModel):
    """Payload for POST /api/lines/{line_id}/boxes: a scanned box label."""
    box_id: str = Field(..., min_length=1, max_length=100)


class CompleteBunchRequest(BaseModel):
    """Payload for POST /api/lines/{line_id}/bunches: a scanned bunch label."""
    bunch_id: str = Field(..., min_length=1, max_length=100)


class LineAssignmentOut(BaseModel):
    id: str
    line_id: int
    box_id: str
    assigned_by: str
    assigned_at: datetime

    model_config = {"from_attributes": True}


class BunchOut(BaseModel):
    id: str
    recipe_name: str
    line_id: int
    produced_by: str
    status: str
    produced_at: datetime

    model_config = {"from_attributes": True}


class AssignResponse(BaseModel):
    message: str
    box: BoxOut
    line: LineOut
    assignment: LineAssignmentOut


class BunchResponse(BaseModel):
    message: str
    bunch: BunchOut
    line: LineOut
