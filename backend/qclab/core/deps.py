"""FastAPI dependencies for auth, DB session, and RBAC."""

import logging
import uuid
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qclab.config import settings
from qclab.core.permissions import AuthContext
from qclab.core.security import decode_access_token
from qclab.database import get_db
from qclab.models.enums import QCRole
from qclab.models.user import Profile
from qclab.services.procedures import StoredProcedures

logger = logging.getLogger(__name__)

security_scheme = HTTPBearer(auto_error=False)


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
    )


async def get_auth_context(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security_scheme)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AuthContext:
    """Resolve the session (bearer token or session cookie) to an AuthContext."""
    if credentials is not None:
        token = credentials.credentials
    else:
        token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not token:
        raise _unauthorized()

    try:
        payload = decode_access_token(token)
        user_id = uuid.UUID(payload["sub"])
    except (jwt.PyJWTError, KeyError, ValueError):
        logger.info("Rejected session token on %s", request.url.path)
        raise _unauthorized()

    result = await db.execute(
        select(Profile).where(
            Profile.id == user_id,
            Profile.is_active == True,  # noqa: E712
        )
    )
    profile = result.scalar_one_or_none()
    if profile is None:
        raise _unauthorized()

    return AuthContext(
        user_id=profile.id,
        role=profile.qc_role,
        laboratory_id=profile.laboratory_id,
        client_id=profile.client_id,
        is_global_admin=profile.is_global_admin,
    )


def require_role(*allowed_roles: QCRole):
    """Dependency factory: restrict endpoint to specific roles.

    The global admin flag always passes.
    """
    async def role_checker(
        ctx: Annotated[AuthContext, Depends(get_auth_context)],
    ) -> AuthContext:
        if not ctx.is_global_admin and ctx.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return ctx
    return role_checker


async def get_procedures(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> StoredProcedures:
    """Database-function gateway bound to the request session."""
    return StoredProcedures(db)
