"""
Admin dashboard routes.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from contractor_api.dependencies import get_record_store
from contractor_api.guards import require_admin
from contractor_api.schemas import DashboardResponse
from contractor_api.stats import DashboardStats
from contractor_api.store import RecordStore

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get(
    "/dashboard",
    response_model=DashboardResponse,
    dependencies=[Depends(require_admin)],
)
def dashboard(store: RecordStore = Depends(get_record_store)):
    return DashboardResponse(**DashboardStats(store).collect())
