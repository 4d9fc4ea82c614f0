"""ProducedBunch: append-only log of finished bouquets.

The primary key is the scanned output label, so a label can only be
recorded once; the store rejects a second insert.
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from stemtrack.database import Base

BUNCH_STATUS_COMPLETED = "completed"
UNKNOWN_RECIPE = "Unknown"


class ProducedBunch(Base):
    __tablename__ = "produced_bunches"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    # Name snapshot at production time; recipes may be added later with the same name
    recipe_name: Mapped[str] = mapped_column(String(200), nullable=False)
    line_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("production_lines.id"), nullable=False, index=True
    )
    produced_by: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=BUNCH_STATUS_COMPLETED
    )
    produced_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False, index=True
    )
