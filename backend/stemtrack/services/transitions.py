"""Transition engine: every state change a scan or form can cause.

Operations (all run inside the caller's single DB transaction):
  - add_to_inventory   intake label TYPE|COLOR|QUANTITY|UNIT → new Box
  - checkout_box       Box → checked-out (idempotent, unguarded)
  - assign_to_line     Box → line-<N> + LineAssignment + line active
  - complete_bunch     ProducedBunch + atomic produced_count += 1
  - create_recipe      validated, de-blanked flower list → Recipe
  - update_line        status / active recipe of a provisioned line

Each write queues a change event (stemtrack.realtime.changes) and each
scan/recipe action appends an ActivityLog row. Nothing is published or
committed here: get_db() commits the whole operation or none of it, so
AssignToLine can never leave a box on a line without its assignment row.
"""

import logging
import re
import string
import uuid
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from stemtrack.middleware.exceptions import MalformedInputError, NotFoundError, ValidationError
from stemtrack.models.activity_log import ActivityAction
from stemtrack.models.box import LOCATION_CHECKED_OUT, LOCATION_INVENTORY, Box, line_location
from stemtrack.models.line_assignment import LineAssignment
from stemtrack.models.produced_bunch import BUNCH_STATUS_COMPLETED, UNKNOWN_RECIPE, ProducedBunch
from stemtrack.models.production_line import LineStatus, ProductionLine
from stemtrack.models.recipe import Recipe
from stemtrack.realtime.changes import record_change
from stemtrack.schemas.changes import ChangeKind
from stemtrack.schemas.inventory import BoxOut
from stemtrack.schemas.production import BunchOut, LineAssignmentOut, LineOut
from stemtrack.schemas.recipe import FlowerLineIn, RecipeCreate, RecipeOut
from stemtrack.utils.activity import log_activity

logger = logging.getLogger(__name__)

INTAKE_FIELD_COUNT = 4
INTAKE_FORMAT_HINT = "Expected: TYPE|COLOR|QUANTITY|UNIT"

_DIGITS = re.compile(r"[0-9]+")

# Box.quantity is a 32-bit INTEGER column
MAX_QUANTITY = 2**31 - 1


# ── Helpers ──────────────────────────────────────────────────

@dataclass(frozen=True)
class IntakeLabel:
    flower_type: str
    color: str
    quantity: int
    unit: str


def _positive_int(raw) -> int | None:
    """Parse a base-10 integer in 1..MAX_QUANTITY from an int or a digit string."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, str) and _DIGITS.fullmatch(raw.strip()):
        digits = raw.strip().lstrip("0") or "0"
        if len(digits) > len(str(MAX_QUANTITY)):
            return None
        value = int(digits)
    else:
        return None
    return value if 1 <= value <= MAX_QUANTITY else None


def parse_intake_token(token: str) -> IntakeLabel:
    """Parse an intake label, e.g. ``ROSES|RED|200|STEMS``.

    Raises MalformedInputError on a wrong field count, a blank field, or
    a quantity that is not a positive integer.
    """
    parts = token.split("|")
    if len(parts) != INTAKE_FIELD_COUNT:
        raise MalformedInputError(f"Invalid barcode format. {INTAKE_FORMAT_HINT}")

    flower_type, color, quantity, unit = (p.strip() for p in parts)
    if not (flower_type and color and unit):
        raise MalformedInputError(f"Invalid barcode format. {INTAKE_FORMAT_HINT}")

    qty = _positive_int(quantity)
    if qty is None:
        raise MalformedInputError(
            f"Invalid quantity {quantity!r}: must be a whole number from 1 to {MAX_QUANTITY}"
        )

    return IntakeLabel(
        flower_type=string.capwords(flower_type),
        color=string.capwords(color),
        quantity=qty,
        unit=unit.lower(),
    )


def _new_box_id() -> str:
    return f"BOX{uuid.uuid4().hex[:12].upper()}"


def _new_recipe_id() -> str:
    return f"R{uuid.uuid4().hex[:8].upper()}"


async def _get_box(db: AsyncSession, box_id: str) -> Box:
    box = await db.get(Box, box_id)
    if not box:
        raise NotFoundError("Box", box_id)
    return box


async def _get_line(db: AsyncSession, line_id: int) -> ProductionLine:
    line = await db.get(ProductionLine, line_id)
    if not line:
        raise NotFoundError("Production line", line_id)
    return line


def _box_image(box: Box) -> dict:
    return BoxOut.model_validate(box).model_dump(mode="json")


def _line_image(line: ProductionLine) -> dict:
    return LineOut.model_validate(line).model_dump(mode="json")


# ── AddToInventory ───────────────────────────────────────────

async def add_to_inventory(token: str, user_email: str, db: AsyncSession) -> Box:
    """Create a Box at `inventory` from a scanned intake label."""
    label = parse_intake_token(token)  # raises before any write

    box = Box(
        id=_new_box_id(),
        flower_type=label.flower_type,
        color=label.color,
        quantity=label.quantity,
        unit=label.unit,
        location=LOCATION_INVENTORY,
        updated_by=user_email,
    )
    db.add(box)
    await db.flush()

    record_change(db, "inventory", ChangeKind.INSERT, new=_box_image(box))
    await log_activity(
        db, user_email, ActivityAction.ADD_INVENTORY,
        f"Added {box.flower_type} {box.color} to inventory",
        {"barcode": token, "boxId": box.id},
    )
    logger.info("Box %s added (%s %s x%d)", box.id, box.flower_type, box.color, box.quantity)
    return box


# ── CheckoutBox ──────────────────────────────────────────────

async def checkout_box(box_id: str, user_email: str, db: AsyncSession) -> Box:
    """Mark a box as checked out. Re-applying just re-stamps it."""
    box = await _get_box(db, box_id)

    box.location = LOCATION_CHECKED_OUT
    box.updated_by = user_email
    box.updated_at = datetime.utcnow()
    await db.flush()

    record_change(db, "inventory", ChangeKind.UPDATE, new=_box_image(box), old={"id": box.id})
    await log_activity(
        db, user_email, ActivityAction.CHECKOUT,
        f"Checked out box {box.id}",
        {"boxId": box.id},
    )
    logger.info("Box %s checked out by %s", box.id, user_email)
    return box


# ── AssignToLine ─────────────────────────────────────────────

async def assign_to_line(
    box_id: str,
    line_id: int,
    user_email: str,
    db: AsyncSession,
) -> dict:
    """Move a box onto a line, record the assignment, and activate the line.

    Returns:
        {"box": Box, "line": ProductionLine, "assignment": LineAssignment}
    """
    box = await _get_box(db, box_id)
    line = await _get_line(db, line_id)
    now = datetime.utcnow()

    box.location = line_location(line.id)
    box.updated_by = user_email
    box.updated_at = now

    assignment = LineAssignment(line_id=line.id, box_id=box.id, assigned_by=user_email)
    db.add(assignment)

    line.status = LineStatus.ACTIVE
    line.updated_at = now
    await db.flush()

    record_change(db, "inventory", ChangeKind.UPDATE, new=_box_image(box), old={"id": box.id})
    record_change(
        db, "production_line_items", ChangeKind.INSERT,
        new=LineAssignmentOut.model_validate(assignment).model_dump(mode="json"),
    )
    record_change(db, "production_lines", ChangeKind.UPDATE, new=_line_image(line), old={"id": line.id})
    await log_activity(
        db, user_email, ActivityAction.ASSIGN_TO_LINE,
        f"Assigned box {box.id} to Line {line.id}",
        {"boxId": box.id, "lineId": line.id},
    )
    logger.info("Box %s assigned to line %d", box.id, line.id)
    return {"box": box, "line": line, "assignment": assignment}


# ── CompleteBunch ────────────────────────────────────────────

async def complete_bunch(
    bunch_id: str,
    line_id: int,
    user_email: str,
    db: AsyncSession,
) -> dict:
    """Record a finished bunch and bump the line's produced count by one.

    The scanned label is trusted: no duplicate pre-check and no check that
    the line holds any boxes. The count uses a single UPDATE … SET
    produced_count = produced_count + 1, so concurrent completions on the
    same line cannot lose an increment.

    Returns:
        {"bunch": ProducedBunch, "line": ProductionLine}
    """
    line = await _get_line(db, line_id)

    recipe_name = UNKNOWN_RECIPE
    if line.active_recipe_id:
        recipe = await db.get(Recipe, line.active_recipe_id)
        if recipe:
            recipe_name = recipe.name

    bunch = ProducedBunch(
        id=bunch_id,
        recipe_name=recipe_name,
        line_id=line.id,
        produced_by=user_email,
        status=BUNCH_STATUS_COMPLETED,
    )
    db.add(bunch)
    await db.flush()

    await db.execute(
        update(ProductionLine)
        .where(ProductionLine.id == line.id)
        .values(
            produced_count=ProductionLine.produced_count + 1,
            updated_at=datetime.utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    await db.refresh(line)

    record_change(
        db, "produced_bunches", ChangeKind.INSERT,
        new=BunchOut.model_validate(bunch).model_dump(mode="json"),
    )
    record_change(db, "production_lines", ChangeKind.UPDATE, new=_line_image(line), old={"id": line.id})
    await log_activity(
        db, user_email, ActivityAction.COMPLETE_BUNCH,
        f"Completed bunch {bunch.id} on Line {line.id}",
        {"bunchBarcode": bunch.id, "lineId": line.id},
    )
    logger.info("Bunch %s completed on line %d (count=%d)", bunch.id, line.id, line.produced_count)
    return {"bunch": bunch, "line": line}


# ── CreateRecipe ─────────────────────────────────────────────

def _valid_flowers(flowers: list[FlowerLineIn]) -> list[dict]:
    """Keep rows with a type, a color, and a positive quantity; drop the rest."""
    valid = []
    for row in flowers:
        flower_type = (row.type or "").strip()
        color = (row.color or "").strip()
        quantity = _positive_int(row.quantity)
        if flower_type and color and quantity:
            valid.append({"type": flower_type, "color": color, "quantity": quantity})
    return valid


async def create_recipe(body: RecipeCreate, user_email: str, db: AsyncSession) -> Recipe:
    """Persist a new recipe.

    Raises ValidationError for a blank name or when no flower row is
    complete; nothing is written in either case.
    """
    name = body.name.strip()
    if not name:
        raise ValidationError("Please enter a recipe name")

    flowers = _valid_flowers(body.flowers)
    if not flowers:
        raise ValidationError("Please add at least one flower")

    recipe = Recipe(
        id=_new_recipe_id(),
        name=name,
        flowers=flowers,
        created_by=user_email,
    )
    db.add(recipe)
    await db.flush()

    record_change(
        db, "recipes", ChangeKind.INSERT,
        new=RecipeOut.model_validate(recipe).model_dump(mode="json"),
    )
    await log_activity(
        db, user_email, ActivityAction.CREATE_RECIPE,
        f"Created recipe: {recipe.name}",
        {"recipeId": recipe.id, "name": recipe.name},
    )
    logger.info("Recipe %s (%s) created with %d flowers", recipe.id, recipe.name, len(flowers))
    return recipe


# ── Line state ───────────────────────────────────────────────

async def update_line(line_id: int, changes: dict, db: AsyncSession) -> ProductionLine:
    """Set a line's status and/or active recipe (None clears the recipe)."""
    line = await _get_line(db, line_id)

    if "active_recipe_id" in changes:
        recipe_id = changes["active_recipe_id"]
        if recipe_id is not None and not await db.get(Recipe, recipe_id):
            raise NotFoundError("Recipe", recipe_id)
        line.active_recipe_id = recipe_id
    if changes.get("status") is not None:
        line.status = LineStatus(changes["status"])

    line.updated_at = datetime.utcnow()
    await db.flush()

    record_change(db, "production_lines", ChangeKind.UPDATE, new=_line_image(line), old={"id": line.id})
    return line
