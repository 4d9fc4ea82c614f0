"""Production line router: line scans and line state.

Endpoints:
    GET    /api/lines/                    All lines, by id
    GET    /api/lines/{line_id}           Single line
    PATCH  /api/lines/{line_id}           Set status / active recipe
    GET    /api/lines/{line_id}/items     Boxes assigned to the line
    POST   /api/lines/{line_id}/boxes     Box scan onto the line
    POST   /api/lines/{line_id}/bunches   Finished-bunch scan on the line
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from stemtrack.auth.deps import get_current_user
from stemtrack.database import get_db
from stemtrack.middleware.exceptions import NotFoundError
from stemtrack.models.line_assignment import LineAssignment
from stemtrack.models.production_line import ProductionLine
from stemtrack.models.user import User
from stemtrack.schemas.inventory import BoxOut
from stemtrack.schemas.production import (
    AssignBoxRequest,
    AssignResponse,
    BunchOut,
    BunchResponse,
    CompleteBunchRequest,
    LineAssignmentOut,
    LineOut,
    LineUpdate,
)
from stemtrack.services.transitions import assign_to_line, complete_bunch, update_line

router = APIRouter()


@router.get("/", response_model=list[LineOut])
async def list_lines(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    result = await db.execute(select(ProductionLine).order_by(ProductionLine.id.asc()))
    return [LineOut.model_validate(line) for line in result.scalars().all()]


@router.get("/{line_id}", response_model=LineOut)
async def get_line(
    line_id: int,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    line = await db.get(ProductionLine, line_id)
    if not line:
        raise NotFoundError("Production line", line_id)
    return LineOut.model_validate(line)


@router.patch("/{line_id}", response_model=LineOut)
async def patch_line(
    line_id: int,
    body: LineUpdate,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    line = await update_line(line_id, body.model_dump(exclude_unset=True), db=db)
    return LineOut.model_validate(line)


@router.get("/{line_id}/items", response_model=list[LineAssignmentOut])
async def list_line_items(
    line_id: int,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    result = await db.execute(
        select(LineAssignment)
        .where(LineAssignment.line_id == line_id)
        .order_by(LineAssignment.assigned_at.asc())
    )
    return [LineAssignmentOut.model_validate(a) for a in result.scalars().all()]


# ── Scans ────────────────────────────────────────────────────

@router.post("/{line_id}/boxes", response_model=AssignResponse, status_code=status.HTTP_201_CREATED)
async def assign_box(
    line_id: int,
    body: AssignBoxRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Assign a scanned box to this line and mark the line active."""
    result = await assign_to_line(body.box_id, line_id, user_email=user.email, db=db)
    box, line = result["box"], result["line"]
    return AssignResponse(
        message=f"Box {box.id} assigned to Line {line.id}!",
        box=BoxOut.model_validate(box),
        line=LineOut.model_validate(line),
        assignment=LineAssignmentOut.model_validate(result["assignment"]),
    )


@router.post("/{line_id}/bunches", response_model=BunchResponse, status_code=status.HTTP_201_CREATED)
async def record_bunch(
    line_id: int,
    body: CompleteBunchRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Record a finished bunch scanned at this line."""
    result = await complete_bunch(body.bunch_id, line_id, user_email=user.email, db=db)
    bunch, line = result["bunch"], result["line"]
    return BunchResponse(
        message=f"Bunch {bunch.id} completed on Line {line.id}!",
        bunch=BunchOut.model_validate(bunch),
        line=LineOut.model_validate(line),
    )
