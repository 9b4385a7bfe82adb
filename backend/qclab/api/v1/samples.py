"""Sample endpoints: tracking numbers, intake, storage assignment."""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from qclab.core.deps import get_auth_context, get_procedures
from qclab.core.permissions import AuthContext
from qclab.database import get_db
from qclab.models.enums import SampleStatus, SampleType
from qclab.schemas.sample import (
    AssignStorageRequest,
    FeeRead,
    SampleCreate,
    SampleDetail,
    SampleRead,
    SampleUpdate,
    TrackingNumberAllocation,
    TrackingNumberLookup,
    TrackingNumberRequest,
)
from qclab.services.procedures import StoredProcedures
from qclab.services.sample import SampleService
from qclab.services.tracking import TrackingNumberService

router = APIRouter(prefix="/samples", tags=["samples"])


# ── Tracking numbers ─────────────────────────────────────────────────

@router.post("/tracking-numbers", response_model=dict)
async def allocate_tracking_number(
    data: TrackingNumberRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    procedures: Annotated[StoredProcedures, Depends(get_procedures)],
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
):
    """Allocate the next tracking number for a client at a laboratory."""
    svc = TrackingNumberService(db, procedures)
    allocation = await svc.allocate(data.client_id, data.laboratory_id, data.origin)
    return {
        "success": True,
        "data": TrackingNumberAllocation(**allocation).model_dump(mode="json"),
    }


@router.get("/tracking-numbers", response_model=dict)
async def lookup_tracking_number(
    db: Annotated[AsyncSession, Depends(get_db)],
    procedures: Annotated[StoredProcedures, Depends(get_procedures)],
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    tracking_number: str | None = None,
    client_id: uuid.UUID | None = None,
):
    """Check whether a tracking number exists (and matches a client's format)."""
    svc = TrackingNumberService(db, procedures)
    result = await svc.lookup(tracking_number, client_id)
    return {
        "success": True,
        "data": TrackingNumberLookup(**result).model_dump(mode="json", exclude_none=True),
    }


# ── Samples ──────────────────────────────────────────────────────────

@router.get("", response_model=dict)
async def list_samples(
    db: Annotated[AsyncSession, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    status_filter: SampleStatus | None = Query(None, alias="status"),
    client_id: uuid.UUID | None = None,
    laboratory_id: uuid.UUID | None = None,
    origin: str | None = None,
    quality_spec_id: uuid.UUID | None = None,
    sample_type: SampleType | None = None,
    workflow_stage: str | None = None,
):
    svc = SampleService(db)
    samples, total = await svc.list_samples(
        limit=limit, offset=offset, status=status_filter,
        client_id=client_id, laboratory_id=laboratory_id, origin=origin,
        quality_spec_id=quality_spec_id, sample_type=sample_type,
        workflow_stage=workflow_stage,
    )
    return {
        "success": True,
        "data": [SampleRead.model_validate(s).model_dump(mode="json") for s in samples],
        "meta": {
            "total": total,
            "limit": limit,
            "offset": offset,
            "has_more": offset + limit < total,
        },
    }


@router.post("", response_model=dict, status_code=status.HTTP_201_CREATED)
async def create_sample(
    data: SampleCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    procedures: Annotated[StoredProcedures, Depends(get_procedures)],
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
):
    """Register a sample at intake; its tracking number is issued here."""
    svc = SampleService(db, procedures)
    sample = await svc.create_sample(data, created_by=ctx.user_id)
    return {
        "success": True,
        "data": SampleRead.model_validate(sample).model_dump(mode="json"),
    }


@router.get("/{sample_id}", response_model=dict)
async def get_sample(
    sample_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
):
    """Sample detail with its computed fee."""
    svc = SampleService(db)
    sample = await svc.get_sample(sample_id)
    if sample is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Sample not found")
    fee = await svc.calculate_fee(sample)
    detail = SampleDetail.model_validate(sample)
    if fee is not None:
        detail.fee = FeeRead(fee=fee.fee, currency=fee.currency, breakdown=fee.breakdown)
    return {"success": True, "data": detail.model_dump(mode="json")}


@router.patch("/{sample_id}", response_model=dict)
async def update_sample(
    sample_id: uuid.UUID,
    data: SampleUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
):
    svc = SampleService(db)
    sample = await svc.update_sample(sample_id, data, updated_by=ctx.user_id)
    await db.flush()
    await db.refresh(sample)
    return {
        "success": True,
        "data": SampleRead.model_validate(sample).model_dump(mode="json"),
    }

@router.post("/{sample_id}/assign-storage", response_model=dict)
async def assign_storage(
    sample_id: uuid.UUID,
    data: AssignStorageRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
):
    """Place a sample into a storage position of its laboratory."""
    svc = SampleService(db)
    sample, position = await svc.assign_storage(
        sample_id, data.storage_position_id, assigned_by=ctx.user_id
    )
    await db.flush()
    await db.refresh(sample)
    return {
        "success": True,
        "data": {
            "sample": SampleRead.model_validate(sample).model_dump(mode="json"),
            "storage_position": {
                "id": str(position.id),
                "position_code": position.position_code,
                "current_count": position.current_count,
                "capacity": position.capacity_per_position,
            },
        },
    }


@router.get("/{sample_id}/suggested-positions", response_model=dict)
async def suggested_positions(
    sample_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    limit: int | None = Query(None, ge=1, le=100),
):
    """Ranked storage suggestions for a sample."""
    svc = SampleService(db)
    result = await svc.suggested_positions(sample_id, limit=limit)
    if result is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Sample not found")
    return {"success": True, "data": result}
