"""Storage hierarchy schemas: Laboratory, Shelf, Position."""

import uuid
from datetime import datetime

from typing import Annotated

from pydantic import BaseModel, BeforeValidator, EmailStr, Field

from qclab.models.enums import LaboratoryType


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


# Empty string means "no client"
OptionalClientId = Annotated[uuid.UUID | None, BeforeValidator(_blank_to_none)]


# --- Laboratory ---

class LaboratoryCreate(BaseModel):
    # Optional here so a missing field is a 400 from the service, not a 422
    name: str | None = Field(default=None, max_length=200)
    location: str | None = Field(default=None, max_length=200)
    code: str | None = Field(default=None, max_length=10)
    country: str | None = Field(default=None, max_length=100)
    address: str | None = None
    city: str | None = Field(default=None, max_length=100)
    state: str | None = Field(default=None, max_length=100)
    lab_type: LaboratoryType = LaboratoryType.REGIONAL
    storage_capacity: int | None = Field(default=None, ge=1)
    contact_email: EmailStr | None = None
    contact_phone: str | None = Field(default=None, max_length=50)
    supported_origins: list[str] | None = None
    is_active: bool = True


class LaboratoryUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    location: str | None = Field(default=None, max_length=200)
    code: str | None = Field(default=None, max_length=10)
    country: str | None = Field(default=None, max_length=100)
    address: str | None = None
    city: str | None = Field(default=None, max_length=100)
    state: str | None = Field(default=None, max_length=100)
    lab_type: LaboratoryType | None = None
    storage_capacity: int | None = Field(default=None, ge=1)
    contact_email: EmailStr | None = None
    contact_phone: str | None = Field(default=None, max_length=50)
    supported_origins: list[str] | None = None
    is_active: bool | None = None
    entrance_x_position: int | None = None
    entrance_y_position: int | None = None


class LaboratoryRead(BaseModel):
    id: uuid.UUID
    name: str
    code: str | None
    location: str | None
    country: str | None
    address: str | None
    city: str | None
    state: str | None
    lab_type: LaboratoryType
    storage_capacity: int
    contact_email: str | None
    contact_phone: str | None
    supported_origins: list[str] | None
    is_active: bool
    entrance_x_position: int | None
    entrance_y_position: int | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


# --- Shelf ---

class ShelfCreate(BaseModel):
    shelf_letter: str = Field(min_length=1, max_length=5)
    rows: int = Field(ge=1, le=100)
    columns: int = Field(ge=1, le=100)
    samples_per_position: int | None = Field(default=None, ge=1)
    position_layout: str | None = None
    naming_convention: str | None = None
    client_id: OptionalClientId = None
    allow_client_view: bool | None = None
    x_position: int | None = None
    y_position: int | None = None


class ShelfUpdate(BaseModel):
    shelf_letter: str | None = Field(default=None, min_length=1, max_length=5)
    rows: int | None = Field(default=None, ge=1, le=100)
    columns: int | None = Field(default=None, ge=1, le=100)
    samples_per_position: int | None = Field(default=None, ge=1)
    position_layout: str | None = None
    naming_convention: str | None = None
    client_id: OptionalClientId = None
    allow_client_view: bool | None = None
    x_position: int | None = None
    y_position: int | None = None


class ShelfRead(BaseModel):
    id: uuid.UUID
    laboratory_id: uuid.UUID
    shelf_number: int
    shelf_letter: str
    rows: int
    columns: int
    samples_per_position: int
    position_layout: str | None
    naming_convention: str | None
    client_id: uuid.UUID | None
    allow_client_view: bool
    x_position: int | None
    y_position: int | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


# --- Position ---

class PositionUpdate(BaseModel):
    """Position assignment. An empty ``client_id`` unassigns the position."""

    client_id: OptionalClientId = None
    allow_client_view: bool | None = None
    current_count: int | None = Field(default=None, ge=0)
    capacity_per_position: int | None = Field(default=None, ge=1)


class PositionRead(BaseModel):
    id: uuid.UUID
    shelf_id: uuid.UUID
    laboratory_id: uuid.UUID
    position_code: str
    row_number: int
    column_number: int
    capacity_per_position: int
    current_count: int
    is_available: bool
    client_id: uuid.UUID | None
    allow_client_view: bool
    updated_at: datetime

    model_config = {"from_attributes": True}
