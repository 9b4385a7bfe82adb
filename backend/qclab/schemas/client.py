"""Client, origin pricing, and client search schemas."""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, EmailStr, Field, field_validator

from qclab.core.tracking_format import validate_template
from qclab.models.enums import PricingModel


def _check_format(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    return validate_template(value.strip())


class ClientCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    company: str = Field(min_length=1, max_length=200)
    fantasy_name: str | None = None
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=50)
    address: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    is_qc_client: bool = True
    qc_enabled: bool = True
    pricing_model: PricingModel = PricingModel.PER_SAMPLE
    price_per_sample: Decimal | None = Field(default=None, ge=0)
    price_per_pound_cents: Decimal | None = Field(default=None, ge=0)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    fee_payer: str = "client_pays"
    payment_terms: str | None = None
    billing_notes: str | None = None
    tracking_number_format: str | None = Field(default=None, max_length=100)
    company_id: str | None = None

    @field_validator("tracking_number_format")
    @classmethod
    def check_tracking_number_format(cls, v: str | None) -> str | None:
        return _check_format(v)


class ClientUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    company: str | None = None
    fantasy_name: str | None = None
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=50)
    address: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    is_qc_client: bool | None = None
    qc_enabled: bool | None = None
    pricing_model: PricingModel | None = None
    price_per_sample: Decimal | None = Field(default=None, ge=0)
    price_per_pound_cents: Decimal | None = Field(default=None, ge=0)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    fee_payer: str | None = None
    payment_terms: str | None = None
    billing_notes: str | None = None
    tracking_number_format: str | None = Field(default=None, max_length=100)

    @field_validator("tracking_number_format")
    @classmethod
    def check_tracking_number_format(cls, v: str | None) -> str | None:
        return _check_format(v)


class ClientRead(BaseModel):
    id: uuid.UUID
    name: str
    company: str | None
    fantasy_name: str | None
    email: str | None
    phone: str | None
    address: str | None
    city: str | None
    state: str | None
    country: str | None
    is_qc_client: bool
    qc_enabled: bool
    pricing_model: PricingModel | None
    price_per_sample: Decimal | None
    price_per_pound_cents: Decimal | None
    currency: str
    fee_payer: str | None
    payment_terms: str | None
    billing_notes: str | None
    has_origin_pricing: bool
    tracking_number_format: str | None
    company_id: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ClientSearchResult(BaseModel):
    id: uuid.UUID | str | None
    company_id: str | None = None
    qc_client_id: uuid.UUID | None = None
    name: str | None = None
    fantasy_name: str | None = None
    email: str | None = None
    phone: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    source: str | None = None
    relevance: float | None = None
    is_qc_client: bool
    can_import: bool


# --- Origin pricing ---

class OriginPricingUpsert(BaseModel):
    origin: str = Field(min_length=1, max_length=100)
    pricing_model: PricingModel
    price_per_sample: Decimal | None = None
    price_per_pound_cents: Decimal | None = None
    currency: str = Field(default="USD", min_length=3, max_length=3)
    is_active: bool = True


class OriginPricingUpdate(BaseModel):
    pricing_model: PricingModel | None = None
    price_per_sample: Decimal | None = None
    price_per_pound_cents: Decimal | None = None
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    is_active: bool | None = None


class OriginPricingRead(BaseModel):
    id: uuid.UUID
    client_id: uuid.UUID
    origin: str
    pricing_model: PricingModel
    price_per_sample: Decimal | None
    price_per_pound_cents: Decimal | None
    currency: str
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


# --- Quality specifications ---

class QualitySpecificationCreate(BaseModel):
    # Optional here so a missing template is a 400 from the service, not a 422
    template_id: uuid.UUID | None = None
    origin: str | None = Field(default=None, max_length=100)
    custom_parameters: dict | None = None


class QualitySpecificationUpdate(BaseModel):
    template_id: uuid.UUID | None = None
    origin: str | None = Field(default=None, max_length=100)
    custom_parameters: dict | None = None


class QualitySpecificationTemplate(BaseModel):
    id: uuid.UUID
    name_en: str
    name_pt: str | None
    name_es: str | None
    version: int
    is_active: bool

    model_config = {"from_attributes": True}


class QualitySpecificationRead(BaseModel):
    id: uuid.UUID
    client_id: uuid.UUID
    template_id: uuid.UUID
    origin: str | None
    custom_parameters: dict | None
    template: QualitySpecificationTemplate | None = None
    created_at: datetime
    updated_at: datetime
