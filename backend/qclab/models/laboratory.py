"""Storage hierarchy: Laboratory, Shelf, Position."""

import uuid

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from qclab.models.base import BaseModel, JSONType
from qclab.models.client import Client
from qclab.models.enums import LaboratoryType

# Sample slots in a standard lab floor plan
DEFAULT_STORAGE_CAPACITY = 1764


class Laboratory(BaseModel):
    __tablename__ = "laboratory"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    # Short code used in tracking numbers (e.g. "SNT")
    code: Mapped[str | None] = mapped_column(String(10), nullable=True)
    location: Mapped[str | None] = mapped_column(String(200), nullable=True)
    country: Mapped[str | None] = mapped_column(String(100), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(100), nullable=True)
    lab_type: Mapped[LaboratoryType] = mapped_column(
        default=LaboratoryType.REGIONAL, server_default=LaboratoryType.REGIONAL.name
    )
    storage_capacity: Mapped[int] = mapped_column(
        Integer, default=DEFAULT_STORAGE_CAPACITY, server_default=str(DEFAULT_STORAGE_CAPACITY)
    )
    contact_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contact_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    supported_origins: Mapped[list | None] = mapped_column(JSONType, nullable=True)
    is_active: Mapped[bool] = mapped_column(default=True, server_default="true")
    entrance_x_position: Mapped[int | None] = mapped_column(Integer, nullable=True)
    entrance_y_position: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Relationships
    shelves: Mapped[list["LabShelf"]] = relationship(back_populates="laboratory")


class LabShelf(BaseModel):
    __tablename__ = "lab_shelf"

    laboratory_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("laboratory.id"), nullable=False
    )
    shelf_number: Mapped[int] = mapped_column(Integer, nullable=False)
    shelf_letter: Mapped[str] = mapped_column(String(5), nullable=False)
    rows: Mapped[int] = mapped_column(Integer, nullable=False)
    columns: Mapped[int] = mapped_column(Integer, nullable=False)
    samples_per_position: Mapped[int] = mapped_column(
        Integer, default=1, server_default="1", nullable=False
    )
    position_layout: Mapped[str] = mapped_column(
        String(20), default="standard", server_default="standard"
    )
    naming_convention: Mapped[str | None] = mapped_column(String(100), nullable=True)
    client_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("client.id"), nullable=True
    )
    allow_client_view: Mapped[bool] = mapped_column(default=False, server_default="false")
    x_position: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    y_position: Mapped[int] = mapped_column(Integer, default=0, server_default="0")

    # Relationships
    laboratory: Mapped["Laboratory"] = relationship(back_populates="shelves")
    client: Mapped[Client | None] = relationship()
    positions: Mapped[list["StoragePosition"]] = relationship(
        back_populates="shelf", cascade="all, delete-orphan"
    )

    __table_args__ = (
        UniqueConstraint("laboratory_id", "shelf_letter", name="uq_shelf_lab_letter"),
        CheckConstraint("rows > 0 AND columns > 0", name="ck_shelf_grid"),
        CheckConstraint("samples_per_position > 0", name="ck_shelf_capacity"),
        Index("ix_shelf_laboratory", "laboratory_id"),
    )

    @property
    def total_capacity(self) -> int:
        return self.rows * self.columns * self.samples_per_position


class StoragePosition(BaseModel):
    __tablename__ = "storage_position"

    shelf_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("lab_shelf.id", ondelete="CASCADE"), nullable=False
    )
    laboratory_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("laboratory.id"), nullable=False
    )
    position_code: Mapped[str] = mapped_column(String(20), nullable=False)
    row_number: Mapped[int] = mapped_column(Integer, nullable=False)
    column_number: Mapped[int] = mapped_column(Integer, nullable=False)
    capacity_per_position: Mapped[int] = mapped_column(
        Integer, default=1, server_default="1", nullable=False
    )
    current_count: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )
    client_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("client.id"), nullable=True
    )
    allow_client_view: Mapped[bool] = mapped_column(default=False, server_default="false")

    # Relationships
    shelf: Mapped["LabShelf"] = relationship(back_populates="positions")

    __table_args__ = (
        UniqueConstraint("shelf_id", "row_number", "column_number", name="uq_shelf_row_col"),
        CheckConstraint(
            "current_count >= 0 AND current_count <= capacity_per_position",
            name="ck_position_count",
        ),
        Index("ix_position_shelf", "shelf_id"),
        Index("ix_position_laboratory", "laboratory_id"),
    )

    @property
    def is_available(self) -> bool:
        return self.current_count < self.capacity_per_position
