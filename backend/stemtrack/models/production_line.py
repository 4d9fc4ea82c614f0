"""Production lines: fixed stations that consume boxes and emit bunches.

Lines 1..N are provisioned once (see `stemtrack.cli provision-lines`) and
are only ever updated in-flow: status, active recipe, produced count.
"""

import enum
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Enum as SAEnum, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from stemtrack.database import Base


class LineStatus(str, enum.Enum):
    IDLE = "idle"
    ACTIVE = "active"
    MAINTENANCE = "maintenance"


class ProductionLine(Base):
    __tablename__ = "production_lines"
    __table_args__ = (
        CheckConstraint("produced_count >= 0", name="ck_production_lines_count"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[LineStatus] = mapped_column(
        SAEnum(
            LineStatus,
            native_enum=False,
            length=20,
            values_callable=lambda e: [m.value for m in e],
        ),
        default=LineStatus.IDLE,
        nullable=False,
    )
    active_recipe_id: Mapped[str | None] = mapped_column(
        String(16), ForeignKey("recipes.id")
    )
    # Only ever incremented, one per completed bunch
    produced_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )
