"""Box: one physical container of flowers, the intake unit.

Created when an intake label (TYPE|COLOR|QUANTITY|UNIT) is scanned.
After creation only `location` (plus who/when) ever changes:

    inventory → checked-out
    inventory | any → line-<N>

Boxes are never deleted and never move back to `inventory`.
"""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from stemtrack.database import Base

LOCATION_INVENTORY = "inventory"
LOCATION_CHECKED_OUT = "checked-out"
LINE_LOCATION_PREFIX = "line-"


def line_location(line_id: int) -> str:
    return f"{LINE_LOCATION_PREFIX}{line_id}"


class Box(Base):
    __tablename__ = "inventory"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_inventory_quantity_positive"),
    )

    # Printed on the box label after intake, e.g. BOX3F9A1C0D2B7E
    id: Mapped[str] = mapped_column(String(32), primary_key=True)

    # ── Contents ─────────────────────────────────────────────
    flower_type: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    color: Mapped[str] = mapped_column(String(50), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit: Mapped[str] = mapped_column(String(30), nullable=False)

    # ── Where it is ──────────────────────────────────────────
    # inventory | checked-out | line-<N>
    location: Mapped[str] = mapped_column(
        String(30), nullable=False, default=LOCATION_INVENTORY, index=True
    )
    updated_by: Mapped[str | None] = mapped_column(String(255))

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )
