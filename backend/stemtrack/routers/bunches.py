"""Read-only listings for append-only production records.

Endpoints:
    GET /api/bunches/      Produced bunches, newest first
    GET /api/line-items/   All line assignments
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from stemtrack.auth.deps import get_current_user
from stemtrack.database import get_db
from stemtrack.models.line_assignment import LineAssignment
from stemtrack.models.produced_bunch import ProducedBunch
from stemtrack.models.user import User
from stemtrack.schemas.production import BunchOut, LineAssignmentOut

router = APIRouter()
line_items_router = APIRouter()


@router.get("/", response_model=list[BunchOut])
async def list_bunches(
    line_id: int | None = Query(None),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    stmt = select(ProducedBunch)
    if line_id is not None:
        stmt = stmt.where(ProducedBunch.line_id == line_id)
    result = await db.execute(stmt.order_by(ProducedBunch.produced_at.desc()))
    return [BunchOut.model_validate(b) for b in result.scalars().all()]


@line_items_router.get("/", response_model=list[LineAssignmentOut])
async def list_line_items(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    # Server order; clients do not rely on it
    result = await db.execute(select(LineAssignment))
    return [LineAssignmentOut.model_validate(a) for a in result.scalars().all()]
