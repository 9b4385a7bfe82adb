"""Finance report schemas."""

import uuid
from decimal import Decimal

from pydantic import BaseModel


class ClientBillingRow(BaseModel):
    client_id: uuid.UUID
    client_name: str | None = None
    company: str | None = None
    pricing_model: str | None = None
    has_origin_pricing: bool | None = None
    currency: str | None = None
    total_samples: int = 0
    approved_samples: int = 0
    total_billable_amount: Decimal = Decimal(0)
    total_potential_amount: Decimal = Decimal(0)


class ClientBillingTotals(BaseModel):
    total_clients: int
    total_samples: int
    total_billable: Decimal
    total_potential: Decimal


class ClientBillingReport(BaseModel):
    clients: list[ClientBillingRow]
    totals: ClientBillingTotals


class LabBreakdownRow(BaseModel):
    laboratory_id: uuid.UUID
    laboratory_name: str | None = None
    lab_type: str | None = None
    total_samples: int = 0
    approved_samples: int = 0
    rejected_samples: int = 0
    pending_samples: int = 0
    approval_rate: Decimal | None = None


class LabBreakdownTotals(BaseModel):
    total_labs: int
    total_samples: int
    total_approved: int
    total_rejected: int
    overall_approval_rate: float


class LabBreakdownReport(BaseModel):
    laboratories: list[LabBreakdownRow]
    totals: LabBreakdownTotals


class LabPaymentRow(BaseModel):
    laboratory_id: uuid.UUID
    laboratory_name: str | None = None
    currency: str | None = None
    total_samples: int = 0
    total_owed_amount: Decimal = Decimal(0)
    total_potential_amount: Decimal = Decimal(0)


class LabPaymentTotals(BaseModel):
    total_labs: int
    total_samples: int
    total_owed: Decimal
    total_potential: Decimal


class LabPaymentReport(BaseModel):
    laboratories: list[LabPaymentRow]
    totals: LabPaymentTotals
