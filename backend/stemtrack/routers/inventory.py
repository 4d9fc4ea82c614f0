"""Inventory router: intake and checkout scans, box listing.

Endpoints:
    GET    /api/inventory/                  List boxes, newest first (optional search)
    GET    /api/inventory/{box_id}          Single box
    POST   /api/inventory/scan              Intake scan (TYPE|COLOR|QUANTITY|UNIT)
    POST   /api/inventory/{box_id}/checkout Checkout scan
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from stemtrack.auth.deps import get_current_user
from stemtrack.database import get_db
from stemtrack.middleware.exceptions import NotFoundError
from stemtrack.models.box import Box
from stemtrack.models.user import User
from stemtrack.schemas.inventory import BoxOut, BoxScanResponse, IntakeScan
from stemtrack.services.transitions import add_to_inventory, checkout_box

router = APIRouter()


# ── Intake ───────────────────────────────────────────────────

@router.post("/scan", response_model=BoxScanResponse, status_code=status.HTTP_201_CREATED)
async def intake_scan(
    body: IntakeScan,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Add a box to inventory from its scanned intake label."""
    box = await add_to_inventory(body.barcode, user_email=user.email, db=db)
    return BoxScanResponse(
        message=f"Added {box.flower_type} - {box.color} to inventory!",
        box=BoxOut.model_validate(box),
    )


# ── List ─────────────────────────────────────────────────────

@router.get("/", response_model=list[BoxOut])
async def list_boxes(
    search: str | None = Query(None, max_length=100),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    stmt = select(Box)
    if search:
        q = f"%{search}%"
        stmt = stmt.where(
            or_(
                Box.id.ilike(q),
                Box.flower_type.ilike(q),
                Box.color.ilike(q),
            )
        )
    result = await db.execute(stmt.order_by(Box.created_at.desc()))
    return [BoxOut.model_validate(b) for b in result.scalars().all()]


@router.get("/{box_id}", response_model=BoxOut)
async def get_box(
    box_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    box = await db.get(Box, box_id)
    if not box:
        raise NotFoundError("Box", box_id)
    return BoxOut.model_validate(box)


# ── Checkout ─────────────────────────────────────────────────

@router.post("/{box_id}/checkout", response_model=BoxScanResponse)
async def checkout_scan(
    box_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Check a scanned box out of inventory."""
    box = await checkout_box(box_id, user_email=user.email, db=db)
    return BoxScanResponse(
        message=f"Box {box.id} checked out!",
        box=BoxOut.model_validate(box),
    )
