"""Finance report endpoints (billing and laboratory summaries)."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from qclab.core.deps import require_role
from qclab.core.permissions import FINANCE_ROLES, AuthContext
from qclab.database import get_db
from qclab.schemas.report import ClientBillingReport, LabBreakdownReport, LabPaymentReport
from qclab.services.report import FinanceReportService

router = APIRouter(prefix="/finance/reports", tags=["finance"])


@router.get("/client-billing", response_model=dict)
async def client_billing(
    db: Annotated[AsyncSession, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(require_role(*FINANCE_ROLES))],
    has_origin_pricing: bool | None = None,
):
    """Per-client billing summary, largest billable first."""
    svc = FinanceReportService(db)
    report = await svc.client_billing(has_origin_pricing=has_origin_pricing)
    return {
        "success": True,
        "data": ClientBillingReport(**report).model_dump(mode="json"),
    }


@router.get("/lab-breakdown", response_model=dict)
async def lab_breakdown(
    db: Annotated[AsyncSession, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(require_role(*FINANCE_ROLES))],
):
    """Sample outcomes per laboratory with the overall approval rate."""
    svc = FinanceReportService(db)
    return {
        "success": True,
        "data": LabBreakdownReport(**(await svc.lab_breakdown())).model_dump(mode="json"),
    }


@router.get("/lab-payments", response_model=dict)
async def lab_payments(
    db: Annotated[AsyncSession, Depends(get_db)],
    ctx: Annotated[AuthContext, Depends(require_role(*FINANCE_ROLES))],
):
    svc = FinanceReportService(db)
    return {
        "success": True,
        "data": LabPaymentReport(**(await svc.lab_payments())).model_dump(mode="json"),
    }
