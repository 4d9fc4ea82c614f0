"""Pydantic schemas for recipes."""

from datetime import datetime

from pydantic import BaseModel, Field


class FlowerLineIn(BaseModel):
    """One row of the recipe form, as typed.

    Kept loose: incomplete rows are dropped by the recipe service instead
    of failing the whole request.
    """
    type: str = ""
    color: str = ""
    quantity: int | str | None = None


class RecipeCreate(BaseModel):
    name: str = Field("", max_length=200)
    flowers: list[FlowerLineIn] = Field(default_factory=list)


class FlowerOut(BaseModel):
    type: str
    color: str
    quantity: int


class RecipeOut(BaseModel):
    id: str
    name: str
    flowers: list[FlowerOut]
    created_by: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class RecipeCreateResponse(BaseModel):
    message: str
    recipe: RecipeOut
