"""create vehicle catalog, match store and ratebook import tables

Revision ID: 20261001_0001
Revises:
Create Date: 2026-10-01 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261001_0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "vehicles",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("cap_code", sa.String(length=64), nullable=True),
        sa.Column("manufacturer", sa.String(length=120), nullable=False),
        sa.Column("model", sa.String(length=255), nullable=False),
        sa.Column("variant", sa.String(length=500), nullable=True),
        sa.Column("p11d", sa.Integer(), nullable=True),
        sa.Column("co2", sa.Integer(), nullable=True),
        sa.Column("fuel_type", sa.String(length=64), nullable=True),
        sa.Column("transmission", sa.String(length=64), nullable=True),
        sa.Column("body_style", sa.String(length=64), nullable=True),
        sa.Column("model_year", sa.String(length=16), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "uq_vehicles_cap_code",
        "vehicles",
        ["cap_code"],
        unique=True,
        postgresql_where=sa.text("cap_code IS NOT NULL"),
    )
    op.create_index("ix_vehicles_manufacturer", "vehicles", ["manufacturer"], unique=False)

    op.create_table(
        "vehicle_cap_matches",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("source_key", sa.String(length=32), nullable=False),
        sa.Column("source_provider", sa.String(length=32), nullable=False),
        sa.Column("manufacturer", sa.String(length=120), nullable=False),
        sa.Column("model", sa.String(length=255), nullable=False),
        sa.Column("variant", sa.String(length=500), nullable=True),
        sa.Column("p11d", sa.Integer(), nullable=True),
        sa.Column("cap_code", sa.String(length=64), nullable=True),
        sa.Column("matched_manufacturer", sa.String(length=120), nullable=True),
        sa.Column("matched_model", sa.String(length=255), nullable=True),
        sa.Column("matched_variant", sa.String(length=500), nullable=True),
        sa.Column("matched_p11d", sa.Integer(), nullable=True),
        sa.Column("match_confidence", sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column("match_status", sa.String(length=16), nullable=False),
        sa.Column("match_method", sa.String(length=16), nullable=False),
        sa.Column("matched_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("confirmed_by", sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("source_key"),
    )
    op.create_index("ix_vehicle_cap_matches_source_provider", "vehicle_cap_matches", ["source_provider"], unique=False)
    op.create_index("ix_vehicle_cap_matches_match_status", "vehicle_cap_matches", ["match_status"], unique=False)
    op.create_index("ix_vehicle_cap_matches_cap_code", "vehicle_cap_matches", ["cap_code"], unique=False)

    op.create_table(
        "ratebook_imports",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("provider_code", sa.String(length=32), nullable=False),
        sa.Column("contract_type", sa.String(length=16), nullable=False),
        sa.Column("batch_id", sa.String(length=120), nullable=False),
        sa.Column("file_name", sa.String(length=255), nullable=True),
        sa.Column("file_hash", sa.String(length=64), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("total_rows", sa.Integer(), nullable=False),
        sa.Column("success_rows", sa.Integer(), nullable=False),
        sa.Column("error_rows", sa.Integer(), nullable=False),
        sa.Column("unique_cap_codes", sa.Integer(), nullable=False),
        sa.Column("error_log", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("is_latest", sa.Boolean(), nullable=False),
        sa.Column("superseded_import_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["superseded_import_id"], ["ratebook_imports.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("batch_id"),
        sa.UniqueConstraint(
            "provider_code",
            "file_hash",
            name="uq_ratebook_imports_provider_code_file_hash",
        ),
    )
    op.create_index(
        "uq_ratebook_imports_latest",
        "ratebook_imports",
        ["provider_code", "contract_type"],
        unique=True,
        postgresql_where=sa.text("is_latest"),
    )
    op.create_index("ix_ratebook_imports_status", "ratebook_imports", ["status"], unique=False)
    op.create_index("ix_ratebook_imports_created_at", "ratebook_imports", ["created_at"], unique=False)
    op.create_index(
        "ix_ratebook_imports_provider_contract",
        "ratebook_imports",
        ["provider_code", "contract_type"],
        unique=False,
    )

    op.create_table(
        "provider_rates",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("import_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("vehicle_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("provider_code", sa.String(length=32), nullable=False),
        sa.Column("contract_type", sa.String(length=16), nullable=False),
        sa.Column("cap_code", sa.String(length=64), nullable=False),
        sa.Column("manufacturer", sa.String(length=120), nullable=False),
        sa.Column("model", sa.String(length=255), nullable=False),
        sa.Column("variant", sa.String(length=500), nullable=True),
        sa.Column("is_commercial", sa.Boolean(), nullable=False),
        sa.Column("term", sa.Integer(), nullable=False),
        sa.Column("annual_mileage", sa.Integer(), nullable=False),
        sa.Column("payment_plan", sa.String(length=64), nullable=False),
        sa.Column("total_rental", sa.Integer(), nullable=False),
        sa.Column("lease_rental", sa.Integer(), nullable=True),
        sa.Column("service_rental", sa.Integer(), nullable=True),
        sa.Column("co2_gkm", sa.Integer(), nullable=True),
        sa.Column("p11d", sa.Integer(), nullable=True),
        sa.Column("fuel_type", sa.String(length=64), nullable=True),
        sa.Column("transmission", sa.String(length=64), nullable=True),
        sa.Column("body_style", sa.String(length=64), nullable=True),
        sa.Column("model_year", sa.String(length=16), nullable=True),
        sa.Column("excess_mileage_ppm", sa.Integer(), nullable=True),
        sa.Column("whole_life_cost", sa.Integer(), nullable=True),
        sa.Column("insurance_group", sa.String(length=16), nullable=True),
        sa.Column("raw_data", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["import_id"], ["ratebook_imports.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["vehicle_id"], ["vehicles.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_provider_rates_import_id", "provider_rates", ["import_id"], unique=False)
    op.create_index("ix_provider_rates_cap_code", "provider_rates", ["cap_code"], unique=False)
    op.create_index("ix_provider_rates_vehicle_id", "provider_rates", ["vehicle_id"], unique=False)
    op.create_index(
        "ix_provider_rates_provider_contract",
        "provider_rates",
        ["provider_code", "contract_type"],
        unique=False,
    )
    op.create_index("ix_provider_rates_import_cap_code", "provider_rates", ["import_id", "cap_code"], unique=False)

    op.create_table(
        "provider_cap_mappings",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("provider_code", sa.String(length=32), nullable=False),
        sa.Column("derivative_name", sa.String(length=500), nullable=False),
        sa.Column("cap_code", sa.String(length=64), nullable=True),
        sa.Column("cap_id", sa.String(length=32), nullable=True),
        sa.Column("manufacturer", sa.String(length=120), nullable=True),
        sa.Column("model", sa.String(length=255), nullable=True),
        sa.Column("import_batch_id", sa.String(length=120), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "provider_code",
            "derivative_name",
            name="uq_provider_cap_mappings_provider_code_derivative_name",
        ),
    )
    op.create_index("ix_provider_cap_mappings_cap_code", "provider_cap_mappings", ["cap_code"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_provider_cap_mappings_cap_code", table_name="provider_cap_mappings")
    op.drop_table("provider_cap_mappings")

    op.drop_index("ix_provider_rates_import_cap_code", table_name="provider_rates")
    op.drop_index("ix_provider_rates_provider_contract", table_name="provider_rates")
    op.drop_index("ix_provider_rates_vehicle_id", table_name="provider_rates")
    op.drop_index("ix_provider_rates_cap_code", table_name="provider_rates")
    op.drop_index("ix_provider_rates_import_id", table_name="provider_rates")
    op.drop_table("provider_rates")

    op.drop_index("ix_ratebook_imports_provider_contract", table_name="ratebook_imports")
    op.drop_index("ix_ratebook_imports_created_at", table_name="ratebook_imports")
    op.drop_index("ix_ratebook_imports_status", table_name="ratebook_imports")
    op.drop_index("uq_ratebook_imports_latest", table_name="ratebook_imports")
    op.drop_table("ratebook_imports")

    op.drop_index("ix_vehicle_cap_matches_cap_code", table_name="vehicle_cap_matches")
    op.drop_index("ix_vehicle_cap_matches_match_status", table_name="vehicle_cap_matches")
    op.drop_index("ix_vehicle_cap_matches_source_provider", table_name="vehicle_cap_matches")
    op.drop_table("vehicle_cap_matches")

    op.drop_index("ix_vehicles_manufacturer", table_name="vehicles")
    op.drop_index("uq_vehicles_cap_code", table_name="vehicles")
    op.drop_table("vehicles")
