"""Floor provisioning and the demo data set.

Lines are fixed stations: they are created here, out of band, never by
the scan flow. Runs on a synchronous Session (CLI, Alembic-style tooling);
async callers can use ``await session.run_sync(provision_lines, 10)``.

The demo data set mirrors the standalone demo build: three boxes, ten
lines with Line 1 running "Spring Mix", three recipes, one bunch.
"""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from stemtrack.models.box import LOCATION_INVENTORY, Box, line_location
from stemtrack.models.line_assignment import LineAssignment
from stemtrack.models.produced_bunch import ProducedBunch
from stemtrack.models.production_line import LineStatus, ProductionLine
from stemtrack.models.recipe import Recipe

logger = logging.getLogger(__name__)

DEMO_USER = "demo@stemtrack.local"

DEMO_RECIPES = [
    ("R001", "Spring Mix", [
        {"type": "Roses", "color": "Red", "quantity": 3},
        {"type": "Tulips", "color": "Yellow", "quantity": 5},
        {"type": "Lilies", "color": "White", "quantity": 2},
    ]),
    ("R002", "Romance Bundle", [
        {"type": "Roses", "color": "Red", "quantity": 12},
    ]),
    ("R003", "Garden Delight", [
        {"type": "Tulips", "color": "Yellow", "quantity": 6},
        {"type": "Lilies", "color": "White", "quantity": 4},
    ]),
]

DEMO_BOXES = [
    ("BOX001", "Roses", "Red", 200, "stems", LOCATION_INVENTORY),
    ("BOX002", "Tulips", "Yellow", 150, "stems", LOCATION_INVENTORY),
    ("BOX003", "Lilies", "White", 100, "stems", line_location(1)),
]


def provision_lines(session: Session, count: int) -> int:
    """Create any missing lines 1..count (idle, nothing produced).

    Existing lines are left untouched. Returns how many were created.
    """
    existing = set(session.scalars(select(ProductionLine.id)).all())
    created = 0
    for line_id in range(1, count + 1):
        if line_id in existing:
            continue
        session.add(ProductionLine(
            id=line_id,
            name=f"Line {line_id}",
            status=LineStatus.IDLE,
            produced_count=0,
        ))
        created += 1
    session.flush()
    logger.info("Provisioned %d of %d production lines", created, count)
    return created


def seed_demo(session: Session, line_count: int = 10) -> None:
    """Load the demo floor. Safe to run once on an empty database."""
    if session.get(Recipe, "R001") is not None:
        logger.info("Demo data already present, skipping")
        return

    for recipe_id, name, flowers in DEMO_RECIPES:
        session.add(Recipe(id=recipe_id, name=name, flowers=flowers, created_by=DEMO_USER))
    for box_id, flower_type, color, quantity, unit, location in DEMO_BOXES:
        session.add(Box(
            id=box_id, flower_type=flower_type, color=color,
            quantity=quantity, unit=unit, location=location, updated_by=DEMO_USER,
        ))
    session.flush()

    provision_lines(session, line_count)
    line_one = session.get(ProductionLine, 1)
    line_one.status = LineStatus.ACTIVE
    line_one.active_recipe_id = "R001"
    line_one.produced_count = 15

    session.add(LineAssignment(line_id=1, box_id="BOX003", assigned_by=DEMO_USER))
    session.add(ProducedBunch(
        id="BUN001", recipe_name="Spring Mix", line_id=1, produced_by=DEMO_USER,
    ))
    session.flush()
    logger.info("Demo data loaded")
