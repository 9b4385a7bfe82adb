"""All enum types for the coffee QC data model."""

import enum


# --- User / Role Enums ---

class QCRole(str, enum.Enum):
    LAB_PERSONNEL = "lab_personnel"
    LAB_ASSISTANT = "lab_assistant"
    SAMPLE_INTAKE_SPECIALIST = "sample_intake_specialist"
    LAB_FINANCE_MANAGER = "lab_finance_manager"
    LAB_QUALITY_MANAGER = "lab_quality_manager"
    SANTOS_HQ_FINANCE = "santos_hq_finance"
    GLOBAL_FINANCE_ADMIN = "global_finance_admin"
    GLOBAL_QUALITY_ADMIN = "global_quality_admin"
    GLOBAL_ADMIN = "global_admin"
    CLIENT = "client"
    SUPPLIER = "supplier"
    BUYER = "buyer"


class AuditAction(str, enum.Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


# --- Laboratory Enums ---

class LaboratoryType(str, enum.Enum):
    HQ = "hq"
    REGIONAL = "regional"
    THIRD_PARTY = "third_party"


class PositionAvailability(str, enum.Enum):
    ALL = "all"
    AVAILABLE = "available"
    OCCUPIED = "occupied"


# --- Client / Pricing Enums ---

class PricingModel(str, enum.Enum):
    PER_SAMPLE = "per_sample"
    PER_POUND = "per_pound"


# --- Sample Enums ---

class SampleStatus(str, enum.Enum):
    RECEIVED = "received"
    IN_PROGRESS = "in_progress"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"


class SampleType(str, enum.Enum):
    PSS = "pss"
    SS = "ss"
    TYPE = "type"
