"""Initial schema - QC lab tables.

Database functions and the finance reporting views are provisioned
separately.

Revision ID: 001
Revises: None
Create Date: 2026-10-19

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    # Enable pg_trgm extension for fuzzy client search
    op.execute("CREATE EXTENSION IF NOT EXISTS pg_trgm")

    # --- Laboratory & Client ---

    op.create_table(
        "laboratory",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("code", sa.String(10), nullable=True),
        sa.Column("location", sa.String(200), nullable=True),
        sa.Column("country", sa.String(100), nullable=True),
        sa.Column("address", sa.Text, nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("state", sa.String(100), nullable=True),
        sa.Column("lab_type", sa.String(20), server_default="REGIONAL", nullable=False),
        sa.Column("storage_capacity", sa.Integer, server_default="1764", nullable=False),
        sa.Column("contact_email", sa.String(255), nullable=True),
        sa.Column("contact_phone", sa.String(50), nullable=True),
        sa.Column("supported_origins", postgresql.JSONB, nullable=True),
        sa.Column("is_active", sa.Boolean, server_default="true", nullable=False),
        sa.Column("entrance_x_position", sa.Integer, nullable=True),
        sa.Column("entrance_y_position", sa.Integer, nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "client",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("company", sa.String(200), nullable=True),
        sa.Column("fantasy_name", sa.String(200), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("address", sa.Text, nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("state", sa.String(100), nullable=True),
        sa.Column("country", sa.String(100), nullable=True),
        sa.Column("pricing_model", sa.String(20), nullable=True),
        sa.Column("price_per_sample", sa.Numeric(10, 2), nullable=True),
        sa.Column("price_per_pound_cents", sa.Numeric(8, 2), nullable=True),
        sa.Column("currency", sa.String(3), server_default="USD", nullable=False),
        sa.Column("fee_payer", sa.String(50), nullable=True),
        sa.Column("payment_terms", sa.String(100), nullable=True),
        sa.Column("billing_notes", sa.Text, nullable=True),
        sa.Column("has_origin_pricing", sa.Boolean, server_default="false", nullable=False),
        sa.Column("is_qc_client", sa.Boolean, server_default="true", nullable=False),
        sa.Column("qc_enabled", sa.Boolean, server_default="true", nullable=False),
        sa.Column("tracking_number_format", sa.String(100), nullable=True),
        sa.Column("company_id", sa.String(64), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_client_name", "client", ["name"])
    op.execute(
        "CREATE INDEX ix_client_name_trgm ON client USING gin (name gin_trgm_ops)"
    )

    # --- Profile & Audit ---

    op.create_table(
        "profile",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column("full_name", sa.String(200), nullable=False),
        sa.Column("qc_role", sa.String(30), nullable=False),
        sa.Column("laboratory_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("laboratory.id"), nullable=True),
        sa.Column("client_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("client.id"), nullable=True),
        sa.Column("is_global_admin", sa.Boolean, server_default="false", nullable=False),
        sa.Column("is_active", sa.Boolean, server_default="true", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_profile_email", "profile", ["email"])
    op.create_index("ix_profile_laboratory", "profile", ["laboratory_id"])

    op.create_table(
        "audit_log",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("profile.id"), nullable=True),
        sa.Column("action", sa.String(20), nullable=False),
        sa.Column("entity_type", sa.String(100), nullable=False),
        sa.Column("entity_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("old_values", postgresql.JSONB, nullable=True),
        sa.Column("new_values", postgresql.JSONB, nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_audit_log_entity", "audit_log", ["entity_type", "entity_id"])
    op.create_index("ix_audit_log_user_id", "audit_log", ["user_id"])
    op.create_index("ix_audit_log_timestamp", "audit_log", ["timestamp"])

    # --- Pricing ---

    op.create_table(
        "client_origin_pricing",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("client_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("client.id", ondelete="CASCADE"), nullable=False),
        sa.Column("origin", sa.String(100), nullable=False),
        sa.Column("pricing_model", sa.String(20), nullable=False),
        sa.Column("price_per_sample", sa.Numeric(10, 2), nullable=True),
        sa.Column("price_per_pound_cents", sa.Numeric(8, 2), nullable=True),
        sa.Column("currency", sa.String(3), server_default="USD", nullable=False),
        sa.Column("is_active", sa.Boolean, server_default="true", nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("client_id", "origin", name="uq_client_origin_pricing"),
    )
    op.create_index("ix_origin_pricing_client", "client_origin_pricing", ["client_id"])

    # --- Quality ---

    op.create_table(
        "quality_template",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("name_en", sa.String(200), nullable=False),
        sa.Column("name_pt", sa.String(200), nullable=True),
        sa.Column("name_es", sa.String(200), nullable=True),
        sa.Column("description_en", sa.Text, nullable=True),
        sa.Column("description_pt", sa.Text, nullable=True),
        sa.Column("description_es", sa.Text, nullable=True),
        sa.Column("sample_size_grams", sa.Integer, server_default="300", nullable=False),
        sa.Column("template_parent_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("quality_template.id"), nullable=True),
        sa.Column("laboratory_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("laboratory.id"), nullable=True),
        sa.Column("is_global", sa.Boolean, server_default="false", nullable=False),
        sa.Column("defect_thresholds_primary", postgresql.JSONB, nullable=True),
        sa.Column("defect_thresholds_secondary", postgresql.JSONB, nullable=True),
        sa.Column("moisture_standard", postgresql.JSONB, nullable=True),
        sa.Column("screen_size_requirements", postgresql.JSONB, nullable=True),
        sa.Column("cupping_scale_type", sa.String(30), nullable=True),
        sa.Column("cupping_scale_min", sa.Numeric(6, 2), nullable=True),
        sa.Column("cupping_scale_max", sa.Numeric(6, 2), nullable=True),
        sa.Column("cupping_scale_increment", sa.Numeric(6, 2), nullable=True),
        sa.Column("max_taints_allowed", sa.Integer, nullable=True),
        sa.Column("max_faults_allowed", sa.Integer, nullable=True),
        sa.Column("taint_fault_rule_type", sa.String(30), nullable=True),
        sa.Column("version", sa.Integer, server_default="1", nullable=False),
        sa.Column("parameters", postgresql.JSONB, server_default="{}", nullable=False),
        sa.Column("is_active", sa.Boolean, server_default="true", nullable=False),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("profile.id"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_quality_template_parent", "quality_template", ["template_parent_id"])

    op.create_table(
        "template_version",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("template_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("quality_template.id"), nullable=False),
        sa.Column("version_number", sa.Integer, nullable=False),
        sa.Column("parameters", postgresql.JSONB, nullable=True),
        sa.Column("changes_description", sa.Text, nullable=True),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("profile.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        "client_quality",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("client_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("client.id"), nullable=False),
        sa.Column("template_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("quality_template.id"), nullable=False),
        sa.Column("origin", sa.String(100), nullable=True),
        sa.Column("custom_parameters", postgresql.JSONB, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_client_quality_client_origin", "client_quality", ["client_id", "origin"])
    op.create_index("ix_client_quality_template", "client_quality", ["template_id"])

    # --- Storage ---

    op.create_table(
        "lab_shelf",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("laboratory_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("laboratory.id"), nullable=False),
        sa.Column("shelf_number", sa.Integer, nullable=False),
        sa.Column("shelf_letter", sa.String(5), nullable=False),
        sa.Column("rows", sa.Integer, nullable=False),
        sa.Column("columns", sa.Integer, nullable=False),
        sa.Column("samples_per_position", sa.Integer, server_default="1", nullable=False),
        sa.Column("position_layout", sa.String(20), server_default="standard"),
        sa.Column("naming_convention", sa.String(100), nullable=True),
        sa.Column("client_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("client.id"), nullable=True),
        sa.Column("allow_client_view", sa.Boolean, server_default="false", nullable=False),
        sa.Column("x_position", sa.Integer, server_default="0"),
        sa.Column("y_position", sa.Integer, server_default="0"),
        *_timestamps(),
        sa.UniqueConstraint("laboratory_id", "shelf_letter", name="uq_shelf_lab_letter"),
        sa.CheckConstraint("rows > 0 AND columns > 0", name="ck_shelf_grid"),
        sa.CheckConstraint("samples_per_position > 0", name="ck_shelf_capacity"),
    )
    op.create_index("ix_shelf_laboratory", "lab_shelf", ["laboratory_id"])

    op.create_table(
        "storage_position",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("shelf_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("lab_shelf.id", ondelete="CASCADE"), nullable=False),
        sa.Column("laboratory_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("laboratory.id"), nullable=False),
        sa.Column("position_code", sa.String(20), nullable=False),
        sa.Column("row_number", sa.Integer, nullable=False),
        sa.Column("column_number", sa.Integer, nullable=False),
        sa.Column("capacity_per_position", sa.Integer, server_default="1", nullable=False),
        sa.Column("current_count", sa.Integer, server_default="0", nullable=False),
        sa.Column("client_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("client.id"), nullable=True),
        sa.Column("allow_client_view", sa.Boolean, server_default="false", nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("shelf_id", "row_number", "column_number", name="uq_shelf_row_col"),
        sa.CheckConstraint(
            "current_count >= 0 AND current_count <= capacity_per_position",
            name="ck_position_count",
        ),
    )
    op.create_index("ix_position_shelf", "storage_position", ["shelf_id"])
    op.create_index("ix_position_laboratory", "storage_position", ["laboratory_id"])

    # --- Sample ---

    op.create_table(
        "sample",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("tracking_number", sa.String(50), unique=True, nullable=False),
        sa.Column("client_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("client.id"), nullable=False),
        sa.Column("laboratory_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("laboratory.id"), nullable=False),
        sa.Column("quality_spec_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("client_quality.id"), nullable=True),
        sa.Column("origin", sa.String(100), nullable=False),
        sa.Column("supplier", sa.String(200), nullable=False),
        sa.Column("status", sa.String(20), server_default="RECEIVED", nullable=False),
        sa.Column("workflow_stage", sa.String(50), nullable=True),
        sa.Column("sample_type", sa.String(10), nullable=True),
        sa.Column("storage_position_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("storage_position.id", ondelete="SET NULL"), nullable=True),
        sa.Column("storage_position", sa.String(20), nullable=True),
        sa.Column("wolthers_contract_nr", sa.String(50), nullable=True),
        sa.Column("exporter_contract_nr", sa.String(50), nullable=True),
        sa.Column("buyer_contract_nr", sa.String(50), nullable=True),
        sa.Column("roaster_contract_nr", sa.String(50), nullable=True),
        sa.Column("ico_number", sa.String(50), nullable=True),
        sa.Column("container_nr", sa.String(50), nullable=True),
        sa.Column("bags_quantity_mt", sa.Numeric(10, 3), nullable=True),
        sa.Column("bag_count", sa.Integer, nullable=True),
        sa.Column("bag_weight_kg", sa.Numeric(8, 2), nullable=True),
        sa.Column("processing_method", sa.String(50), nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("assigned_to", postgresql.UUID(as_uuid=True), sa.ForeignKey("profile.id"), nullable=True),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("profile.id"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_sample_tracking_number", "sample", ["tracking_number"])
    op.create_index("ix_sample_client", "sample", ["client_id"])
    op.create_index("ix_sample_laboratory", "sample", ["laboratory_id"])
    op.create_index("ix_sample_storage_position", "sample", ["storage_position_id"])


def downgrade() -> None:
    op.drop_table("sample")
    op.drop_table("storage_position")
    op.drop_table("lab_shelf")
    op.drop_table("client_quality")
    op.drop_table("template_version")
    op.drop_table("quality_template")
    op.drop_table("client_origin_pricing")
    op.drop_table("audit_log")
    op.drop_table("profile")
    op.drop_table("client")
    op.drop_table("laboratory")
    op.execute("DROP EXTENSION IF EXISTS pg_trgm")
