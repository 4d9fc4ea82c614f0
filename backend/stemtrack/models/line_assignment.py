"""LineAssignment: one row per box scanned onto a line."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from stemtrack.database import Base


class LineAssignment(Base):
    __tablename__ = "production_line_items"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    line_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("production_lines.id"), nullable=False, index=True
    )
    box_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("inventory.id"), nullable=False, index=True
    )
    assigned_by: Mapped[str] = mapped_column(String(255), nullable=False)
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
