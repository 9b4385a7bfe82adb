"""Quality templates (master grading/cupping recipes) and their versions."""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from qclab.models.base import Base, BaseModel, JSONType, UUIDPrimaryKeyMixin, utcnow


class QualityTemplate(BaseModel):
    __tablename__ = "quality_template"

    # Legacy single-language fields
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    name_en: Mapped[str] = mapped_column(String(200), nullable=False)
    name_pt: Mapped[str | None] = mapped_column(String(200), nullable=True)
    name_es: Mapped[str | None] = mapped_column(String(200), nullable=True)
    description_en: Mapped[str | None] = mapped_column(Text, nullable=True)
    description_pt: Mapped[str | None] = mapped_column(Text, nullable=True)
    description_es: Mapped[str | None] = mapped_column(Text, nullable=True)

    sample_size_grams: Mapped[int] = mapped_column(Integer, default=300, server_default="300")
    template_parent_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("quality_template.id"), nullable=True
    )
    laboratory_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("laboratory.id"), nullable=True
    )
    is_global: Mapped[bool] = mapped_column(default=False, server_default="false")

    # Grading thresholds
    defect_thresholds_primary: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    defect_thresholds_secondary: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    moisture_standard: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    screen_size_requirements: Mapped[dict | None] = mapped_column(JSONType, nullable=True)

    # Cupping scale
    cupping_scale_type: Mapped[str | None] = mapped_column(String(30), nullable=True)
    cupping_scale_min: Mapped[Decimal | None] = mapped_column(Numeric(6, 2), nullable=True)
    cupping_scale_max: Mapped[Decimal | None] = mapped_column(Numeric(6, 2), nullable=True)
    cupping_scale_increment: Mapped[Decimal | None] = mapped_column(Numeric(6, 2), nullable=True)

    # Taints / faults
    max_taints_allowed: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_faults_allowed: Mapped[int | None] = mapped_column(Integer, nullable=True)
    taint_fault_rule_type: Mapped[str | None] = mapped_column(String(30), nullable=True)

    version: Mapped[int] = mapped_column(Integer, default=1, server_default="1")
    parameters: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    is_active: Mapped[bool] = mapped_column(default=True, server_default="true")
    created_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profile.id"), nullable=True
    )

    __table_args__ = (
        Index("ix_quality_template_parent", "template_parent_id"),
    )


class TemplateVersion(UUIDPrimaryKeyMixin, Base):
    __tablename__ = "template_version"

    template_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("quality_template.id"), nullable=False
    )
    version_number: Mapped[int] = mapped_column(Integer, nullable=False)
    parameters: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    changes_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profile.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    __table_args__ = (
        Index("ix_template_version_template", "template_id"),
    )
