"""Initial schema: inventory, lines, recipes, bunches, activity, users.

Revision ID: 0001
Revises: (none)
Create Date: 2026-10-19

Lines are not created here; run `python -m stemtrack.cli provision-lines`
after upgrading.
"""

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

from alembic import op
import sqlalchemy as sa


def upgrade() -> None:
    # ── Accounts ─────────────────────────────────────────────

    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
        sa.Column("email_verified", sa.Boolean(), server_default=sa.false()),
        sa.Column("verification_token", sa.String(64)),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_verification_token", "users", ["verification_token"])

    # ── Floor ────────────────────────────────────────────────

    op.create_table(
        "recipes",
        sa.Column("id", sa.String(16), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("flowers", sa.JSON(), nullable=False),
        sa.Column("created_by", sa.String(255)),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_recipes_created_at", "recipes", ["created_at"])

    op.create_table(
        "inventory",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("flower_type", sa.String(100), nullable=False),
        sa.Column("color", sa.String(50), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit", sa.String(30), nullable=False),
        sa.Column("location", sa.String(30), nullable=False, server_default="inventory"),
        sa.Column("updated_by", sa.String(255)),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
        sa.CheckConstraint("quantity >= 1", name="ck_inventory_quantity_positive"),
    )
    op.create_index("ix_inventory_flower_type", "inventory", ["flower_type"])
    op.create_index("ix_inventory_location", "inventory", ["location"])
    op.create_index("ix_inventory_created_at", "inventory", ["created_at"])

    op.create_table(
        "production_lines",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="idle"),
        sa.Column("active_recipe_id", sa.String(16), sa.ForeignKey("recipes.id")),
        sa.Column("produced_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
        sa.CheckConstraint("produced_count >= 0", name="ck_production_lines_count"),
    )

    op.create_table(
        "production_line_items",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("line_id", sa.Integer(), sa.ForeignKey("production_lines.id"), nullable=False),
        sa.Column("box_id", sa.String(32), sa.ForeignKey("inventory.id"), nullable=False),
        sa.Column("assigned_by", sa.String(255), nullable=False),
        sa.Column("assigned_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_production_line_items_line_id", "production_line_items", ["line_id"])
    op.create_index("ix_production_line_items_box_id", "production_line_items", ["box_id"])

    op.create_table(
        "produced_bunches",
        sa.Column("id", sa.String(100), primary_key=True),
        sa.Column("recipe_name", sa.String(200), nullable=False),
        sa.Column("line_id", sa.Integer(), sa.ForeignKey("production_lines.id"), nullable=False),
        sa.Column("produced_by", sa.String(255), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="completed"),
        sa.Column("produced_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_produced_bunches_line_id", "produced_bunches", ["line_id"])
    op.create_index("ix_produced_bunches_produced_at", "produced_bunches", ["produced_at"])

    # ── Audit ────────────────────────────────────────────────

    op.create_table(
        "activity_log",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("action_type", sa.String(30), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("user_email", sa.String(255), nullable=False),
        sa.Column("metadata", sa.JSON()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_activity_log_action_type", "activity_log", ["action_type"])
    op.create_index("ix_activity_log_user_email", "activity_log", ["user_email"])
    op.create_index("ix_activity_log_created_at", "activity_log", ["created_at"])


def downgrade() -> None:
    op.drop_table("activity_log")
    op.drop_table("produced_bunches")
    op.drop_table("production_line_items")
    op.drop_table("production_lines")
    op.drop_table("inventory")
    op.drop_table("recipes")
    op.drop_table("users")
