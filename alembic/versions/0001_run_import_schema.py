"""run import schema

Revision ID: 0001_run_import_schema
Revises:
Create Date: 2025-11-05 00:00:00.000000

Companies plus the dimension tables an imported run workbook upserts into
(locations, machine types, machines, coils, SKUs, coil items) and the runs and
pick entries each import creates.
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_run_import_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "companies",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("time_zone", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_table(
        "locations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "company_id",
            sa.String(36),
            sa.ForeignKey("companies.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("address", sa.String(500), nullable=True),
        sa.UniqueConstraint("company_id", "name", name="uq_locations_company_name"),
    )
    op.create_index("ix_locations_company_id", "locations", ["company_id"])
    op.create_table(
        "machine_types",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
        sa.Column("description", sa.String(500), nullable=True),
    )
    op.create_table(
        "machines",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "company_id",
            sa.String(36),
            sa.ForeignKey("companies.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("code", sa.String(100), nullable=False),
        sa.Column("description", sa.String(500), nullable=True),
        sa.Column(
            "machine_type_id",
            sa.Integer(),
            sa.ForeignKey("machine_types.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "location_id",
            sa.Integer(),
            sa.ForeignKey("locations.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.UniqueConstraint("company_id", "code", name="uq_machines_company_code"),
    )
    op.create_index("ix_machines_company_id", "machines", ["company_id"])
    op.create_index("ix_machines_location_id", "machines", ["location_id"])
    op.create_table(
        "coils",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "machine_id",
            sa.Integer(),
            sa.ForeignKey("machines.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("code", sa.String(50), nullable=False),
        sa.UniqueConstraint("machine_id", "code", name="uq_coils_machine_code"),
    )
    op.create_index("ix_coils_machine_id", "coils", ["machine_id"])
    op.create_table(
        "skus",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(100), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("type", sa.String(100), nullable=False),
        sa.Column("category", sa.String(255), nullable=True),
        sa.Column(
            "count_needed_pointer",
            sa.String(20),
            nullable=False,
            server_default="total",
        ),
    )
    op.create_table(
        "coil_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "coil_id",
            sa.Integer(),
            sa.ForeignKey("coils.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "sku_id",
            sa.Integer(),
            sa.ForeignKey("skus.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("par", sa.Integer(), nullable=False, server_default="0"),
        sa.UniqueConstraint("coil_id", "sku_id", name="uq_coil_items_coil_sku"),
    )
    op.create_index("ix_coil_items_coil_id", "coil_items", ["coil_id"])
    op.create_index("ix_coil_items_sku_id", "coil_items", ["sku_id"])
    op.create_table(
        "runs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "company_id",
            sa.String(36),
            sa.ForeignKey("companies.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("status", sa.String(20), nullable=False, server_default="CREATED"),
        sa.Column("scheduled_for", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_runs_company_id", "runs", ["company_id"])
    op.create_table(
        "pick_entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "run_id",
            sa.Integer(),
            sa.ForeignKey("runs.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "coil_item_id",
            sa.Integer(),
            sa.ForeignKey("coil_items.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("current", sa.Integer(), nullable=True),
        sa.Column("par", sa.Integer(), nullable=True),
        sa.Column("need", sa.Integer(), nullable=True),
        sa.Column("forecast", sa.Integer(), nullable=True),
        sa.Column("total", sa.Integer(), nullable=True),
        sa.Column("is_picked", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index("ix_pick_entries_run_id", "pick_entries", ["run_id"])
    op.create_index("ix_pick_entries_coil_item_id", "pick_entries", ["coil_item_id"])


def downgrade() -> None:
    op.drop_table("pick_entries")
    op.drop_table("runs")
    op.drop_table("coil_items")
    op.drop_table("skus")
    op.drop_table("coils")
    op.drop_table("machines")
    op.drop_table("machine_types")
    op.drop_table("locations")
    op.drop_table("companies")
