"""Sample intake, tracking number and storage assignment schemas."""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from qclab.models.enums import SampleStatus, SampleType


# --- Tracking numbers ---

class TrackingNumberRequest(BaseModel):
    # Optional here so a missing id is a 400 from the service, not a 422
    client_id: uuid.UUID | None = None
    laboratory_id: uuid.UUID | None = None
    origin: str | None = Field(default=None, max_length=100)


class TrackingNumberAllocation(BaseModel):
    tracking_number: str
    client: str
    format_used: str


class TrackingNumberLookup(BaseModel):
    valid: bool
    exists: bool
    tracking_number: str
    sample_id: uuid.UUID | None = None
    created_at: datetime | None = None
    format_valid: bool | None = None


# --- Sample ---

class SampleCreate(BaseModel):
    client_id: uuid.UUID | None = None
    laboratory_id: uuid.UUID | None = None
    origin: str | None = Field(default=None, max_length=100)
    supplier: str | None = Field(default=None, max_length=200)
    quality_spec_id: uuid.UUID | None = None
    auto_detect_quality: bool = True
    status: SampleStatus = SampleStatus.RECEIVED
    workflow_stage: str | None = None
    sample_type: SampleType | None = None
    storage_position: str | None = None
    wolthers_contract_nr: str | None = None
    exporter_contract_nr: str | None = None
    buyer_contract_nr: str | None = None
    roaster_contract_nr: str | None = None
    ico_number: str | None = None
    container_nr: str | None = None
    bags_quantity_mt: Decimal | None = None
    bag_count: int | None = None
    bag_weight_kg: Decimal | None = None
    processing_method: str | None = None
    notes: str | None = None
    assigned_to: uuid.UUID | None = None


class SampleUpdate(BaseModel):
    """Editable sample fields. Storage moves go through assign-storage."""

    client_id: uuid.UUID | None = None
    laboratory_id: uuid.UUID | None = None
    quality_spec_id: uuid.UUID | None = None
    origin: str | None = Field(default=None, max_length=100)
    supplier: str | None = Field(default=None, max_length=200)
    status: SampleStatus | None = None
    workflow_stage: str | None = Field(default=None, max_length=50)
    sample_type: SampleType | None = None
    wolthers_contract_nr: str | None = None
    exporter_contract_nr: str | None = None
    buyer_contract_nr: str | None = None
    roaster_contract_nr: str | None = None
    ico_number: str | None = None
    container_nr: str | None = None
    bags_quantity_mt: Decimal | None = None
    bag_count: int | None = None
    bag_weight_kg: Decimal | None = None
    processing_method: str | None = None
    notes: str | None = None
    assigned_to: uuid.UUID | None = None


class SampleRead(BaseModel):
    id: uuid.UUID
    tracking_number: str
    client_id: uuid.UUID
    laboratory_id: uuid.UUID
    quality_spec_id: uuid.UUID | None
    origin: str
    supplier: str
    status: SampleStatus
    workflow_stage: str | None
    sample_type: SampleType | None
    storage_position_id: uuid.UUID | None
    storage_position: str | None
    wolthers_contract_nr: str | None
    exporter_contract_nr: str | None
    buyer_contract_nr: str | None
    roaster_contract_nr: str | None
    ico_number: str | None
    container_nr: str | None
    bags_quantity_mt: Decimal | None
    bag_count: int | None
    bag_weight_kg: Decimal | None
    processing_method: str | None
    notes: str | None
    assigned_to: uuid.UUID | None
    created_by: uuid.UUID | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class FeeRead(BaseModel):
    fee: Decimal
    currency: str
    breakdown: dict


class SampleDetail(SampleRead):
    fee: FeeRead | None = None


class AssignStorageRequest(BaseModel):
    storage_position_id: uuid.UUID | None = None
