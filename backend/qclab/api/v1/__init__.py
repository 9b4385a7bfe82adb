"""API v1 router that aggregates all sub-routers."""

from fastapi import APIRouter

from qclab.api.v1.clients import router as clients_router
from qclab.api.v1.finance import router as finance_router
from qclab.api.v1.laboratories import router as laboratories_router
from qclab.api.v1.profile import router as profile_router
from qclab.api.v1.quality_templates import router as quality_templates_router
from qclab.api.v1.samples import router as samples_router

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(profile_router)
api_router.include_router(clients_router)
api_router.include_router(laboratories_router)
api_router.include_router(samples_router)
api_router.include_router(finance_router)
api_router.include_router(quality_templates_router)
