"""Dashboard counters."""

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from stemtrack.auth.deps import get_current_user
from stemtrack.database import get_db
from stemtrack.models.box import LINE_LOCATION_PREFIX, LOCATION_CHECKED_OUT, LOCATION_INVENTORY, Box
from stemtrack.models.produced_bunch import ProducedBunch
from stemtrack.models.production_line import LineStatus, ProductionLine
from stemtrack.models.recipe import Recipe
from stemtrack.models.user import User
from stemtrack.schemas.dashboard import DashboardOut

router = APIRouter()


async def _count(db: AsyncSession, model, *where) -> int:
    stmt = select(func.count()).select_from(model)
    if where:
        stmt = stmt.where(*where)
    return (await db.execute(stmt)).scalar() or 0


@router.get("/", response_model=DashboardOut)
async def get_dashboard(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    return DashboardOut(
        active_lines=await _count(db, ProductionLine, ProductionLine.status == LineStatus.ACTIVE),
        boxes_in_stock=await _count(db, Box, Box.location == LOCATION_INVENTORY),
        boxes_checked_out=await _count(db, Box, Box.location == LOCATION_CHECKED_OUT),
        boxes_on_lines=await _count(db, Box, Box.location.startswith(LINE_LOCATION_PREFIX)),
        bunches_produced=await _count(db, ProducedBunch),
        recipes=await _count(db, Recipe),
    )
