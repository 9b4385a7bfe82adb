"""Read-only finance views maintained by the database.

Kept on their own MetaData so migrations and ``create_all`` never try to
create them as tables.
"""

from sqlalchemy import Boolean, Column, Integer, MetaData, Numeric, String, Table
from sqlalchemy.dialects.postgresql import UUID

views_metadata = MetaData()

client_billing_summary = Table(
    "client_billing_summary",
    views_metadata,
    Column("client_id", UUID(as_uuid=True)),
    Column("client_name", String),
    Column("company", String),
    Column("pricing_model", String),
    Column("has_origin_pricing", Boolean),
    Column("currency", String),
    Column("total_samples", Integer),
    Column("approved_samples", Integer),
    Column("total_billable_amount", Numeric(12, 2)),
    Column("total_potential_amount", Numeric(12, 2)),
)

lab_sample_breakdown = Table(
    "lab_sample_breakdown",
    views_metadata,
    Column("laboratory_id", UUID(as_uuid=True)),
    Column("laboratory_name", String),
    Column("lab_type", String),
    Column("total_samples", Integer),
    Column("approved_samples", Integer),
    Column("rejected_samples", Integer),
    Column("pending_samples", Integer),
    Column("approval_rate", Numeric(5, 2)),
)

lab_payment_summary = Table(
    "lab_payment_summary",
    views_metadata,
    Column("laboratory_id", UUID(as_uuid=True)),
    Column("laboratory_name", String),
    Column("currency", String),
    Column("total_samples", Integer),
    Column("total_owed_amount", Numeric(12, 2)),
    Column("total_potential_amount", Numeric(12, 2)),
)
