"""ActivityLog: immutable audit trail of scan and recipe actions.

Records who did what, when. Write-only from the application's point of
view: nothing reads it back in-flow.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum as SAEnum, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from stemtrack.database import Base


class ActivityAction(str, enum.Enum):
    ADD_INVENTORY = "ADD_INVENTORY"
    CHECKOUT = "CHECKOUT"
    ASSIGN_TO_LINE = "ASSIGN_TO_LINE"
    COMPLETE_BUNCH = "COMPLETE_BUNCH"
    CREATE_RECIPE = "CREATE_RECIPE"


class ActivityLog(Base):
    __tablename__ = "activity_log"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )

    # ── What ───────────────────────────────────────────────────
    action_type: Mapped[ActivityAction] = mapped_column(
        SAEnum(ActivityAction, native_enum=False, length=30),
        nullable=False,
        index=True,
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)

    # ── Who ────────────────────────────────────────────────────
    user_email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    # ── Context ────────────────────────────────────────────────
    # `metadata` is reserved on declarative classes
    details: Mapped[dict] = mapped_column("metadata", JSON, default=dict)

    # ── Timestamp ──────────────────────────────────────────────
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False, index=True
    )
