"""Finance report aggregation over the billing and laboratory views."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qclab.models.reporting import (
    client_billing_summary,
    lab_payment_summary,
    lab_sample_breakdown,
)


def _sum(rows: list[dict], key: str):
    return sum(row.get(key) or 0 for row in rows)


class FinanceReportService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _fetch(self, query) -> list[dict]:
        result = await self.db.execute(query)
        return [dict(row) for row in result.mappings().all()]

    async def client_billing(self, has_origin_pricing: bool | None = None) -> dict:
        query = select(client_billing_summary).order_by(
            client_billing_summary.c.total_billable_amount.desc()
        )
        if has_origin_pricing is not None:
            query = query.where(client_billing_summary.c.has_origin_pricing == has_origin_pricing)
        rows = await self._fetch(query)
        return {
            "clients": rows,
            "totals": {
                "total_clients": len(rows),
                "total_samples": _sum(rows, "total_samples"),
                "total_billable": _sum(rows, "total_billable_amount"),
                "total_potential": _sum(rows, "total_potential_amount"),
            },
        }

    async def lab_breakdown(self) -> dict:
        rows = await self._fetch(
            select(lab_sample_breakdown).order_by(lab_sample_breakdown.c.total_samples.desc())
        )
        total_samples = _sum(rows, "total_samples")
        total_approved = _sum(rows, "approved_samples")
        approval_rate = 0.0
        if total_samples > 0:
            approval_rate = round(total_approved / total_samples * 100, 2)
        return {
            "laboratories": rows,
            "totals": {
                "total_labs": len(rows),
                "total_samples": total_samples,
                "total_approved": total_approved,
                "total_rejected": _sum(rows, "rejected_samples"),
                "overall_approval_rate": approval_rate,
            },
        }

    async def lab_payments(self) -> dict:
        rows = await self._fetch(
            select(lab_payment_summary).order_by(lab_payment_summary.c.total_owed_amount.desc())
        )
        return {
            "laboratories": rows,
            "totals": {
                "total_labs": len(rows),
                "total_samples": _sum(rows, "total_samples"),
                "total_owed": _sum(rows, "total_owed_amount"),
                "total_potential": _sum(rows, "total_potential_amount"),
            },
        }
