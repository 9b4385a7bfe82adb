"""Clients, origin-specific pricing, and client quality specifications."""

import uuid
from decimal import Decimal

from sqlalchemy import ForeignKey, Index, Numeric, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from qclab.models.base import BaseModel, JSONType
from qclab.models.enums import PricingModel


class Client(BaseModel):
    __tablename__ = "client"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    company: Mapped[str | None] = mapped_column(String(200), nullable=True)
    fantasy_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(100), nullable=True)
    country: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Pricing
    pricing_model: Mapped[PricingModel | None] = mapped_column(nullable=True)
    price_per_sample: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    price_per_pound_cents: Mapped[Decimal | None] = mapped_column(Numeric(8, 2), nullable=True)
    currency: Mapped[str] = mapped_column(String(3), default="USD", server_default="USD")
    fee_payer: Mapped[str | None] = mapped_column(String(50), nullable=True)
    payment_terms: Mapped[str | None] = mapped_column(String(100), nullable=True)
    billing_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    has_origin_pricing: Mapped[bool] = mapped_column(default=False, server_default="false")

    # QC
    is_qc_client: Mapped[bool] = mapped_column(default=True, server_default="true")
    qc_enabled: Mapped[bool] = mapped_column(default=True, server_default="true")
    tracking_number_format: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Link to the shared company directory
    company_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    # Relationships
    origin_pricing: Mapped[list["ClientOriginPricing"]] = relationship(
        back_populates="client", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_client_name", "name"),
    )


class ClientOriginPricing(BaseModel):
    """Per-origin price override, unique per (client, origin)."""

    __tablename__ = "client_origin_pricing"

    client_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("client.id", ondelete="CASCADE"), nullable=False
    )
    origin: Mapped[str] = mapped_column(String(100), nullable=False)
    pricing_model: Mapped[PricingModel] = mapped_column(nullable=False)
    price_per_sample: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    price_per_pound_cents: Mapped[Decimal | None] = mapped_column(Numeric(8, 2), nullable=True)
    currency: Mapped[str] = mapped_column(String(3), default="USD", server_default="USD")
    is_active: Mapped[bool] = mapped_column(default=True, server_default="true")

    # Relationships
    client: Mapped["Client"] = relationship(back_populates="origin_pricing")

    __table_args__ = (
        UniqueConstraint("client_id", "origin", name="uq_client_origin_pricing"),
        Index("ix_origin_pricing_client", "client_id"),
    )


class ClientQuality(BaseModel):
    """A client's quality specification, built from a template."""

    __tablename__ = "client_quality"

    client_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("client.id"), nullable=False
    )
    template_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("quality_template.id"), nullable=False
    )
    origin: Mapped[str | None] = mapped_column(String(100), nullable=True)
    custom_parameters: Mapped[dict | None] = mapped_column(JSONType, nullable=True)

    __table_args__ = (
        Index("ix_client_quality_client_origin", "client_id", "origin"),
        Index("ix_client_quality_template", "template_id"),
    )
