"""Quality template schemas."""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class TemplateClone(BaseModel):
    """Overrides applied to the copy; anything unset is taken from the source."""

    name_en: str | None = Field(default=None, max_length=200)
    name_pt: str | None = Field(default=None, max_length=200)
    name_es: str | None = Field(default=None, max_length=200)
    description_en: str | None = None
    description_pt: str | None = None
    description_es: str | None = None
    sample_size_grams: int | None = Field(default=None, ge=1)
    laboratory_id: uuid.UUID | None = None
    is_global: bool | None = None
    is_active: bool | None = None


class TemplateCreate(BaseModel):
    # Optional here so a missing name is a 400 from the service, not a 422
    name_en: str | None = Field(default=None, max_length=200)
    name_pt: str | None = Field(default=None, max_length=200)
    name_es: str | None = Field(default=None, max_length=200)
    description_en: str | None = None
    description_pt: str | None = None
    description_es: str | None = None
    sample_size_grams: int | None = Field(default=None, ge=1)
    template_parent_id: uuid.UUID | None = None
    laboratory_id: uuid.UUID | None = None
    is_global: bool = False
    defect_thresholds_primary: dict | None = None
    defect_thresholds_secondary: dict | None = None
    moisture_standard: dict | None = None
    screen_size_requirements: dict | None = None
    cupping_scale_type: str | None = Field(default=None, max_length=30)
    cupping_scale_min: Decimal | None = None
    cupping_scale_max: Decimal | None = None
    cupping_scale_increment: Decimal | None = Field(default=None, gt=0)
    max_taints_allowed: int | None = Field(default=None, ge=0)
    max_faults_allowed: int | None = Field(default=None, ge=0)
    taint_fault_rule_type: str | None = Field(default=None, max_length=30)
    parameters: dict | None = None
    is_active: bool = True


class TemplateUpdate(BaseModel):
    """Partial update. A changed ``parameters`` dict bumps the version."""

    name_en: str | None = Field(default=None, max_length=200)
    name_pt: str | None = Field(default=None, max_length=200)
    name_es: str | None = Field(default=None, max_length=200)
    description_en: str | None = None
    description_pt: str | None = None
    description_es: str | None = None
    sample_size_grams: int | None = Field(default=None, ge=1)
    defect_thresholds_primary: dict | None = None
    defect_thresholds_secondary: dict | None = None
    moisture_standard: dict | None = None
    screen_size_requirements: dict | None = None
    cupping_scale_type: str | None = Field(default=None, max_length=30)
    cupping_scale_min: Decimal | None = None
    cupping_scale_max: Decimal | None = None
    cupping_scale_increment: Decimal | None = Field(default=None, gt=0)
    max_taints_allowed: int | None = Field(default=None, ge=0)
    max_faults_allowed: int | None = Field(default=None, ge=0)
    taint_fault_rule_type: str | None = Field(default=None, max_length=30)
    parameters: dict | None = None
    is_active: bool | None = None
    changes_description: str | None = None


class QualityTemplateRead(BaseModel):
    id: uuid.UUID
    name: str
    description: str | None
    name_en: str
    name_pt: str | None
    name_es: str | None
    description_en: str | None
    description_pt: str | None
    description_es: str | None
    sample_size_grams: int
    template_parent_id: uuid.UUID | None
    laboratory_id: uuid.UUID | None
    is_global: bool
    defect_thresholds_primary: dict | None
    defect_thresholds_secondary: dict | None
    moisture_standard: dict | None
    screen_size_requirements: dict | None
    cupping_scale_type: str | None
    cupping_scale_min: Decimal | None
    cupping_scale_max: Decimal | None
    cupping_scale_increment: Decimal | None
    max_taints_allowed: int | None
    max_faults_allowed: int | None
    taint_fault_rule_type: str | None
    version: int
    parameters: dict
    is_active: bool
    created_by: uuid.UUID | None
    created_at: datetime
    updated_at: datetime
    # Set by the service layer
    usage_count: int = 0
    created_by_name: str | None = None

    model_config = {"from_attributes": True}
