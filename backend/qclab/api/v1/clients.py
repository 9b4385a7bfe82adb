"""Client endpoints: search, directory, origin pricing, quality specifications,
client storage view."""

import math
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from qclab.core.deps import get_auth_context, get_procedures, require_role
from qclab.core.permissions import ADMIN_ROLES, QUALITY_ROLES, AuthContext
from qclab.database import get_db
from qclab.schemas.client import (
    ClientCreate,
    ClientRead,
    ClientSearchResult,
    ClientUpdate,
    OriginPricingRead,
    OriginPricingUpdate,
    OriginPricingUpsert,
    QualitySpecificationCreate,
    QualitySpecificationRead,
    QualitySpecificationTemplate,
    QualitySpecificationUpdate,
)
from qclab.services.client import ClientService
from qclab.services.procedures import StoredProcedures
from qclab.services.storage import StorageService

router = APIRouter(prefix="/clients", tags=["clients"])


# ── Search ───────────────────────────────────────────────────────────

@router.get("/search", response_model=dict)
async def search_clients(
    db: Annotated[AsyncSession, Depends(get_db)],
    procedures: Annotated[StoredProcedures, Depends(get_procedures)],
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    q: str | None = None,
    limit: int | None = Query(None, ge=1, le=200),
):
    """Fuzzy search across QC clients and the company directories."""
    svc = ClientService(db, procedures)
    result = await svc.search(q, limit)
    return {
        "success": True,
        "data": [ClientSearchResult(**r).model_dump(mode="json") for r in result["results"]],
        "meta": {
            "count": result["count"],
            "search_term": result["search_term"],
            "limit": result["limit"],
        },
    }


# ── Client storage view ──────────────────────────────────────────────

@router.get("/me/storage-view", response_model=dict)
async def my_storage_view(
    db: Annotated[AsyncSession, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
):
    """Shelves assigned to the caller's client with visibility enabled."""
    svc = StorageService(db)
    return {"success": True, "data": await svc.client_storage_view(ctx)}


@router.get("/me/storage-view/{shelf_id}/samples", response_model=dict)
async def my_shelf_samples(
    shelf_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
):
    """Positions of one of the caller's shelves with only their own samples."""
    svc = StorageService(db)
    return {"success": True, "data": await svc.client_shelf_samples(ctx, shelf_id)}


# ── Clients ──────────────────────────────────────────────────────────

@router.get("", response_model=dict)
async def list_clients(
    db: Annotated[AsyncSession, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    search: str | None = None,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
):
    svc = ClientService(db)
    clients, total = await svc.list_clients(search=search, limit=limit, offset=offset)
    return {
        "success": True,
        "data": [ClientRead.model_validate(c).model_dump(mode="json") for c in clients],
        "meta": {
            "total": total,
            "limit": limit,
            "offset": offset,
            "has_more": offset + limit < total,
            "total_pages": math.ceil(total / limit) if limit else 0,
        },
    }


@router.post("", response_model=dict, status_code=status.HTTP_201_CREATED)
async def create_client(
    data: ClientCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(require_role(*ADMIN_ROLES))],
):
    svc = ClientService(db)
    client = await svc.create_client(data, created_by=ctx.user_id)
    return {
        "success": True,
        "data": ClientRead.model_validate(client).model_dump(mode="json"),
    }


@router.get("/{client_id}", response_model=dict)
async def get_client(
    client_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
):
    svc = ClientService(db)
    client = await svc.get_client(client_id)
    if client is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Client not found")
    return {
        "success": True,
        "data": ClientRead.model_validate(client).model_dump(mode="json"),
    }


@router.patch("/{client_id}", response_model=dict)
async def update_client(
    client_id: uuid.UUID,
    data: ClientUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(require_role(*ADMIN_ROLES))],
):
    svc = ClientService(db)
    client = await svc.update_client(client_id, data, updated_by=ctx.user_id)
    if client is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Client not found")
    await db.flush()
    await db.refresh(client)
    return {
        "success": True,
        "data": ClientRead.model_validate(client).model_dump(mode="json"),
    }


# ── Origin pricing ───────────────────────────────────────────────────

@router.get("/{client_id}/origin-pricing", response_model=dict)
async def list_origin_pricing(
    client_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
):
    svc = ClientService(db)
    result = await svc.list_origin_pricing(client_id)
    return {
        "success": True,
        "data": {
            "client_id": str(result["client_id"]),
            "has_origin_pricing": result["has_origin_pricing"],
            "origin_pricing": [
                OriginPricingRead.model_validate(p).model_dump(mode="json")
                for p in result["origin_pricing"]
            ],
        },
    }


@router.post("/{client_id}/origin-pricing", response_model=dict)
async def upsert_origin_pricing(
    client_id: uuid.UUID,
    data: OriginPricingUpsert,
    db: Annotated[AsyncSession, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
):
    """Add or replace the pricing for one origin."""
    svc = ClientService(db)
    pricing = await svc.upsert_origin_pricing(client_id, data, updated_by=ctx.user_id)
    await db.flush()
    await db.refresh(pricing)
    return {
        "success": True,
        "data": OriginPricingRead.model_validate(pricing).model_dump(mode="json"),
    }


@router.patch("/{client_id}/origin-pricing/{origin}", response_model=dict)
async def update_origin_pricing(
    client_id: uuid.UUID,
    origin: str,
    data: OriginPricingUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
):
    svc = ClientService(db)
    pricing = await svc.update_origin_pricing(client_id, origin, data, updated_by=ctx.user_id)
    await db.flush()
    await db.refresh(pricing)
    return {
        "success": True,
        "data": OriginPricingRead.model_validate(pricing).model_dump(mode="json"),
    }


@router.delete("/{client_id}/origin-pricing/{origin}", response_model=dict)
async def delete_origin_pricing(
    client_id: uuid.UUID,
    origin: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
):
    svc = ClientService(db)
    await svc.delete_origin_pricing(client_id, origin, deleted_by=ctx.user_id)
    return {"success": True, "data": {"client_id": str(client_id), "origin": origin}}


# ── Quality specifications ───────────────────────────────────────────

def _specification(spec, template) -> dict:
    return QualitySpecificationRead(
        id=spec.id,
        client_id=spec.client_id,
        template_id=spec.template_id,
        origin=spec.origin,
        custom_parameters=spec.custom_parameters,
        template=(
            QualitySpecificationTemplate.model_validate(template) if template is not None else None
        ),
        created_at=spec.created_at,
        updated_at=spec.updated_at,
    ).model_dump(mode="json")


@router.get("/{client_id}/quality-specifications", response_model=dict)
async def list_quality_specifications(
    client_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
):
    """Quality templates assigned to a client, newest first."""
    svc = ClientService(db)
    rows = await svc.list_quality_specifications(client_id)
    return {
        "success": True,
        "data": [_specification(spec, template) for spec, template in rows],
        "meta": {"total": len(rows)},
    }


@router.post(
    "/{client_id}/quality-specifications",
    response_model=dict,
    status_code=status.HTTP_201_CREATED,
)
async def create_quality_specification(
    client_id: uuid.UUID,
    data: QualitySpecificationCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(require_role(*QUALITY_ROLES))],
):
    svc = ClientService(db)
    spec, template = await svc.create_quality_specification(
        client_id, data, created_by=ctx.user_id
    )
    return {"success": True, "data": _specification(spec, template)}


@router.get("/{client_id}/quality-specifications/{spec_id}", response_model=dict)
async def get_quality_specification(
    client_id: uuid.UUID,
    spec_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
):
    svc = ClientService(db)
    spec, template = await svc.get_quality_specification(client_id, spec_id)
    return {"success": True, "data": _specification(spec, template)}


@router.patch("/{client_id}/quality-specifications/{spec_id}", response_model=dict)
async def update_quality_specification(
    client_id: uuid.UUID,
    spec_id: uuid.UUID,
    data: QualitySpecificationUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(require_role(*QUALITY_ROLES))],
):
    """Change the template, origin or custom parameters of a specification."""
    svc = ClientService(db)
    spec, template = await svc.update_quality_specification(
        client_id, spec_id, data, updated_by=ctx.user_id
    )
    await db.flush()
    await db.refresh(spec)
    return {"success": True, "data": _specification(spec, template)}


@router.delete("/{client_id}/quality-specifications/{spec_id}", response_model=dict)
async def delete_quality_specification(
    client_id: uuid.UUID,
    spec_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(require_role(*QUALITY_ROLES))],
):
    svc = ClientService(db)
    await svc.delete_quality_specification(client_id, spec_id, deleted_by=ctx.user_id)
    return {"success": True, "data": {"id": str(spec_id), "deleted": True}}
