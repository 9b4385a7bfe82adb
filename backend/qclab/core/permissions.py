"""Role-based permission rules for the QC roles.

Global roles see every laboratory; lab-scoped roles only their own.
"""

import uuid
from dataclasses import dataclass

from qclab.models.enums import QCRole

GLOBAL_ROLES = frozenset({
    QCRole.SANTOS_HQ_FINANCE,
    QCRole.GLOBAL_FINANCE_ADMIN,
    QCRole.GLOBAL_QUALITY_ADMIN,
    QCRole.GLOBAL_ADMIN,
})
ADMIN_ROLES = frozenset({QCRole.GLOBAL_ADMIN, QCRole.GLOBAL_QUALITY_ADMIN})
FINANCE_ROLES = frozenset({
    QCRole.GLOBAL_ADMIN,
    QCRole.SANTOS_HQ_FINANCE,
    QCRole.GLOBAL_FINANCE_ADMIN,
    QCRole.LAB_FINANCE_MANAGER,
})
POSITION_MANAGER_ROLES = frozenset({
    QCRole.LAB_QUALITY_MANAGER,
    QCRole.LAB_ASSISTANT,
    QCRole.SAMPLE_INTAKE_SPECIALIST,
})
QUALITY_ROLES = ADMIN_ROLES | {QCRole.LAB_QUALITY_MANAGER}


@dataclass(frozen=True)
class AuthContext:
    """The authenticated caller, passed explicitly into every handler."""

    user_id: uuid.UUID
    role: QCRole
    laboratory_id: uuid.UUID | None = None
    client_id: uuid.UUID | None = None
    is_global_admin: bool = False

    def in_laboratory(self, laboratory_id: uuid.UUID) -> bool:
        return self.laboratory_id is not None and self.laboratory_id == laboratory_id


def is_admin(ctx: AuthContext) -> bool:
    return ctx.is_global_admin or ctx.role in ADMIN_ROLES


def is_global_admin(ctx: AuthContext) -> bool:
    return ctx.is_global_admin or ctx.role == QCRole.GLOBAL_ADMIN


def can_access_lab(ctx: AuthContext, laboratory_id: uuid.UUID) -> bool:
    if ctx.is_global_admin or ctx.role in GLOBAL_ROLES:
        return True
    return ctx.in_laboratory(laboratory_id)


def can_manage_laboratory(ctx: AuthContext, laboratory_id: uuid.UUID) -> bool:
    """Edit a laboratory's own details."""
    if is_admin(ctx):
        return True
    return ctx.role == QCRole.LAB_QUALITY_MANAGER and ctx.in_laboratory(laboratory_id)


def can_manage_shelves(ctx: AuthContext, laboratory_id: uuid.UUID) -> bool:
    """Create/update shelves and regenerate their position grids."""
    if is_admin(ctx):
        return True
    return ctx.role == QCRole.LAB_QUALITY_MANAGER and ctx.in_laboratory(laboratory_id)


def can_manage_positions(ctx: AuthContext, laboratory_id: uuid.UUID) -> bool:
    """Assign clients and view flags to individual positions."""
    if is_admin(ctx):
        return True
    return ctx.role in POSITION_MANAGER_ROLES and ctx.in_laboratory(laboratory_id)


def can_access_finance(ctx: AuthContext) -> bool:
    return ctx.is_global_admin or ctx.role in FINANCE_ROLES
