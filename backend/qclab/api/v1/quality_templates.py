"""Quality template endpoints: list, detail, authoring, clone."""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from qclab.core.deps import get_auth_context, require_role
from qclab.core.permissions import QUALITY_ROLES, AuthContext
from qclab.database import get_db
from qclab.schemas.quality import (
    QualityTemplateRead,
    TemplateClone,
    TemplateCreate,
    TemplateUpdate,
)
from qclab.services.quality_template import QualityTemplateService

router = APIRouter(prefix="/quality-templates", tags=["quality-templates"])


@router.get("", response_model=dict)
async def list_templates(
    db: Annotated[AsyncSession, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    is_active: bool | None = None,
    search: str | None = None,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
):
    svc = QualityTemplateService(db)
    templates, total = await svc.list_templates(
        is_active=is_active, search=search, limit=limit, offset=offset,
    )
    return {
        "success": True,
        "data": [QualityTemplateRead(**t).model_dump(mode="json") for t in templates],
        "meta": {
            "total": total,
            "limit": limit,
            "offset": offset,
            "has_more": offset + limit < total,
        },
    }


@router.post("", response_model=dict, status_code=status.HTTP_201_CREATED)
async def create_template(
    data: TemplateCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(require_role(*QUALITY_ROLES))],
):
    svc = QualityTemplateService(db)
    template = await svc.create_template(data, created_by=ctx.user_id)
    return {
        "success": True,
        "data": QualityTemplateRead.model_validate(template).model_dump(mode="json"),
    }


@router.get("/{template_id}", response_model=dict)
async def get_template(
    template_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
):
    svc = QualityTemplateService(db)
    template = await svc.get_template(template_id)
    if template is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Template not found")
    return {"success": True, "data": QualityTemplateRead(**template).model_dump(mode="json")}


@router.patch("/{template_id}", response_model=dict)
async def update_template(
    template_id: uuid.UUID,
    data: TemplateUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(require_role(*QUALITY_ROLES))],
):
    """Update a template; changed parameters start a new version."""
    svc = QualityTemplateService(db)
    template = await svc.update_template(template_id, data, updated_by=ctx.user_id)
    await db.flush()
    await db.refresh(template)
    return {
        "success": True,
        "data": QualityTemplateRead.model_validate(template).model_dump(mode="json"),
    }


@router.delete("/{template_id}", response_model=dict)
async def delete_template(
    template_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(require_role(*QUALITY_ROLES))],
):
    svc = QualityTemplateService(db)
    await svc.delete_template(template_id, deleted_by=ctx.user_id)
    return {"success": True, "data": {"id": str(template_id), "deleted": True}}


@router.post("/{template_id}/clone", response_model=dict, status_code=status.HTTP_201_CREATED)
async def clone_template(
    template_id: uuid.UUID,
    data: TemplateClone,
    db: Annotated[AsyncSession, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
):
    """Copy a template under a new name, keeping a reference to its parent."""
    svc = QualityTemplateService(db)
    clone = await svc.clone_template(template_id, data, created_by=ctx.user_id)
    return {
        "success": True,
        "data": QualityTemplateRead.model_validate(clone).model_dump(mode="json"),
    }
