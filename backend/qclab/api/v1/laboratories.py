"""Laboratory endpoints: laboratories, storage layout, shelves, positions."""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from qclab.core.deps import get_auth_context, get_procedures
from qclab.core.permissions import AuthContext, can_access_lab
from qclab.database import get_db
from qclab.models.enums import PositionAvailability
from qclab.schemas.laboratory import (
    LaboratoryCreate,
    LaboratoryRead,
    LaboratoryUpdate,
    PositionRead,
    PositionUpdate,
    ShelfCreate,
    ShelfRead,
    ShelfUpdate,
)
from qclab.services.procedures import StoredProcedures
from qclab.services.storage import StorageService

router = APIRouter(prefix="/laboratories", tags=["laboratories"])


# ── Laboratories ─────────────────────────────────────────────────────

@router.get("", response_model=dict)
async def list_laboratories(
    db: Annotated[AsyncSession, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
):
    """List laboratories visible to the caller."""
    svc = StorageService(db)
    labs = await svc.list_laboratories(ctx)
    return {
        "success": True,
        "data": [LaboratoryRead.model_validate(lab).model_dump(mode="json") for lab in labs],
    }


@router.post("", response_model=dict, status_code=status.HTTP_201_CREATED)
async def create_laboratory(
    data: LaboratoryCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
):
    """Create a laboratory (global admins and quality admins)."""
    svc = StorageService(db)
    lab = await svc.create_laboratory(ctx, data)
    return {
        "success": True,
        "data": LaboratoryRead.model_validate(lab).model_dump(mode="json"),
    }


@router.get("/{laboratory_id}", response_model=dict)
async def get_laboratory(
    laboratory_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
):
    svc = StorageService(db)
    lab = await svc.get_laboratory(laboratory_id)
    if lab is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Laboratory not found")
    return {
        "success": True,
        "data": LaboratoryRead.model_validate(lab).model_dump(mode="json"),
    }


@router.patch("/{laboratory_id}", response_model=dict)
async def update_laboratory(
    laboratory_id: uuid.UUID,
    data: LaboratoryUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
):
    svc = StorageService(db)
    lab = await svc.update_laboratory(ctx, laboratory_id, data)
    await db.flush()
    await db.refresh(lab)
    return {
        "success": True,
        "data": LaboratoryRead.model_validate(lab).model_dump(mode="json"),
    }


@router.delete("/{laboratory_id}", response_model=dict)
async def delete_laboratory(
    laboratory_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
):
    """Delete an empty laboratory. Global admins only."""
    svc = StorageService(db)
    await svc.delete_laboratory(ctx, laboratory_id)
    return {"success": True, "data": {"id": str(laboratory_id), "deleted": True}}


@router.get("/{laboratory_id}/storage-layout", response_model=dict)
async def get_storage_layout(
    laboratory_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    procedures: Annotated[StoredProcedures, Depends(get_procedures)],
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
):
    """Full floor plan with per-shelf and lab-level utilization."""
    svc = StorageService(db, procedures)
    layout = await svc.get_layout(laboratory_id)
    if layout is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Laboratory not found")
    return {"success": True, "data": layout}


# ── Shelves ──────────────────────────────────────────────────────────

@router.get("/{laboratory_id}/shelves", response_model=dict)
async def list_shelves(
    laboratory_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
):
    """Shelves of a laboratory with utilization computed from positions."""
    if not can_access_lab(ctx, laboratory_id):
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Insufficient permissions")
    svc = StorageService(db)
    shelves = await svc.list_shelves(laboratory_id)
    return {"success": True, "data": shelves, "meta": {"total": len(shelves)}}


@router.post("/{laboratory_id}/shelves", response_model=dict, status_code=status.HTTP_201_CREATED)
async def create_shelf(
    laboratory_id: uuid.UUID,
    data: ShelfCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    procedures: Annotated[StoredProcedures, Depends(get_procedures)],
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
):
    """Create a shelf and generate its position grid."""
    svc = StorageService(db, procedures)
    shelf, positions_generated = await svc.create_shelf(ctx, laboratory_id, data)
    return {
        "success": True,
        "data": {
            "shelf": ShelfRead.model_validate(shelf).model_dump(mode="json"),
            "positions_generated": positions_generated,
        },
    }


@router.get("/{laboratory_id}/shelves/{shelf_id}", response_model=dict)
async def get_shelf(
    laboratory_id: uuid.UUID,
    shelf_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    procedures: Annotated[StoredProcedures, Depends(get_procedures)],
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
):
    svc = StorageService(db, procedures)
    shelf = await svc.get_shelf_detail(laboratory_id, shelf_id)
    if shelf is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Shelf not found")
    return {"success": True, "data": shelf}


@router.patch("/{laboratory_id}/shelves/{shelf_id}", response_model=dict)
async def update_shelf(
    laboratory_id: uuid.UUID,
    shelf_id: uuid.UUID,
    data: ShelfUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    procedures: Annotated[StoredProcedures, Depends(get_procedures)],
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
):
    """Update a shelf; grid changes regenerate its positions."""
    svc = StorageService(db, procedures)
    shelf = await svc.update_shelf(ctx, laboratory_id, shelf_id, data)
    await db.flush()
    await db.refresh(shelf)
    return {
        "success": True,
        "data": ShelfRead.model_validate(shelf).model_dump(mode="json"),
    }


@router.delete("/{laboratory_id}/shelves/{shelf_id}", response_model=dict)
async def delete_shelf(
    laboratory_id: uuid.UUID,
    shelf_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
):
    """Delete an empty shelf and its positions."""
    svc = StorageService(db)
    await svc.delete_shelf(ctx, laboratory_id, shelf_id)
    return {"success": True, "data": {"id": str(shelf_id), "deleted": True}}


@router.post("/{laboratory_id}/shelves/{shelf_id}/generate-positions", response_model=dict)
async def generate_positions(
    laboratory_id: uuid.UUID,
    shelf_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    procedures: Annotated[StoredProcedures, Depends(get_procedures)],
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
):
    """Regenerate a shelf's position grid. Refused while samples are stored."""
    svc = StorageService(db, procedures)
    result = await svc.regenerate_positions(ctx, laboratory_id, shelf_id)
    return {"success": True, "data": result}


# ── Positions ────────────────────────────────────────────────────────

@router.get("/{laboratory_id}/shelves/{shelf_id}/positions", response_model=dict)
async def list_positions(
    laboratory_id: uuid.UUID,
    shelf_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    availability: PositionAvailability = Query(PositionAvailability.ALL),
):
    """Positions of a shelf as a list and as a rows x columns grid."""
    svc = StorageService(db)
    grid = await svc.get_positions_grid(laboratory_id, shelf_id, availability)
    if grid is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Shelf not found")
    return {"success": True, "data": grid}


@router.patch("/{laboratory_id}/positions/{position_id}", response_model=dict)
async def assign_position(
    laboratory_id: uuid.UUID,
    position_id: uuid.UUID,
    data: PositionUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
):
    """Assign a client and view flag to one position."""
    svc = StorageService(db)
    position = await svc.assign_position(ctx, laboratory_id, position_id, data)
    await db.flush()
    await db.refresh(position)
    return {
        "success": True,
        "data": PositionRead.model_validate(position).model_dump(mode="json"),
    }
