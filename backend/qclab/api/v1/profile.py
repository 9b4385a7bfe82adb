"""Current user's QC profile."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from qclab.core.deps import get_auth_context
from qclab.core.permissions import AuthContext
from qclab.database import get_db
from qclab.models.user import Profile
from qclab.schemas.profile import ProfileRead

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("", response_model=dict)
async def get_profile(
    db: Annotated[AsyncSession, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
):
    profile = await db.get(Profile, ctx.user_id)
    if profile is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Profile not found")
    return {
        "success": True,
        "data": ProfileRead.model_validate(profile).model_dump(mode="json"),
    }
