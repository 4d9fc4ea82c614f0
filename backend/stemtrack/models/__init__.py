"""Aggregate model imports for Alembic auto-detection and create_all()."""

from stemtrack.models.user import User  # noqa: F401

# Floor / intake
from stemtrack.models.box import Box  # noqa: F401
from stemtrack.models.recipe import Recipe  # noqa: F401
from stemtrack.models.production_line import LineStatus, ProductionLine  # noqa: F401
from stemtrack.models.line_assignment import LineAssignment  # noqa: F401
from stemtrack.models.produced_bunch import ProducedBunch  # noqa: F401

# Audit
from stemtrack.models.activity_log import ActivityAction, ActivityLog  # noqa: F401
