"""Lightweight helper for recording activity log entries.

Usage:
    await log_activity(
        db, user.email, ActivityAction.CHECKOUT,
        f"Checked out box {box.id}",
        {"boxId": box.id},
    )

The row is added to the current session and committed with the
enclosing transaction: no extra flush is performed.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from stemtrack.models.activity_log import ActivityAction, ActivityLog


async def log_activity(
    db: AsyncSession,
    user_email: str,
    action: ActivityAction,
    description: str,
    metadata: dict | None = None,
) -> ActivityLog:
    """Append an activity log entry to the current DB session."""
    entry = ActivityLog(
        action_type=action,
        description=description,
        user_email=user_email,
        details=metadata or {},
    )
    db.add(entry)
    return entry
