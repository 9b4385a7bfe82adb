"""Coffee sample received at a laboratory."""

import uuid
from decimal import Decimal

from sqlalchemy import ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, validates

from qclab.models.base import BaseModel
from qclab.models.enums import SampleStatus, SampleType


class Sample(BaseModel):
    __tablename__ = "sample"

    tracking_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    client_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("client.id"), nullable=False
    )
    laboratory_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("laboratory.id"), nullable=False
    )
    quality_spec_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("client_quality.id"), nullable=True
    )
    origin: Mapped[str] = mapped_column(String(100), nullable=False)
    supplier: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[SampleStatus] = mapped_column(
        default=SampleStatus.RECEIVED, server_default=SampleStatus.RECEIVED.name
    )
    workflow_stage: Mapped[str | None] = mapped_column(String(50), nullable=True)
    sample_type: Mapped[SampleType | None] = mapped_column(nullable=True)

    # Storage
    storage_position_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("storage_position.id", ondelete="SET NULL"), nullable=True
    )
    storage_position: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # Contracts
    wolthers_contract_nr: Mapped[str | None] = mapped_column(String(50), nullable=True)
    exporter_contract_nr: Mapped[str | None] = mapped_column(String(50), nullable=True)
    buyer_contract_nr: Mapped[str | None] = mapped_column(String(50), nullable=True)
    roaster_contract_nr: Mapped[str | None] = mapped_column(String(50), nullable=True)
    ico_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    container_nr: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Lot size
    bags_quantity_mt: Mapped[Decimal | None] = mapped_column(Numeric(10, 3), nullable=True)
    bag_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    bag_weight_kg: Mapped[Decimal | None] = mapped_column(Numeric(8, 2), nullable=True)
    processing_method: Mapped[str | None] = mapped_column(String(50), nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    assigned_to: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profile.id"), nullable=True
    )
    created_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profile.id"), nullable=True
    )

    __table_args__ = (
        Index("ix_sample_tracking_number", "tracking_number"),
        Index("ix_sample_client", "client_id"),
        Index("ix_sample_laboratory", "laboratory_id"),
        Index("ix_sample_storage_position", "storage_position_id"),
    )

    @validates("tracking_number")
    def _tracking_number_is_immutable(self, key: str, value: str) -> str:
        current = self.__dict__.get("tracking_number")
        if current is not None and current != value:
            raise ValueError("Tracking number cannot be changed once assigned.")
        return value
