"""All QC lab database models.

Import all models here so Alembic and SQLAlchemy can discover them.
"""

from qclab.models.base import Base, BaseModel  # noqa: F401

# Users & Audit
from qclab.models.user import AuditLog, Profile  # noqa: F401

# Clients
from qclab.models.client import Client, ClientOriginPricing, ClientQuality  # noqa: F401

# Storage
from qclab.models.laboratory import Laboratory, LabShelf, StoragePosition  # noqa: F401

# Samples
from qclab.models.sample import Sample  # noqa: F401

# Quality
from qclab.models.quality import QualityTemplate, TemplateVersion  # noqa: F401

# Finance views
from qclab.models.reporting import (  # noqa: F401
    client_billing_summary,
    lab_payment_summary,
    lab_sample_breakdown,
    views_metadata,
)
