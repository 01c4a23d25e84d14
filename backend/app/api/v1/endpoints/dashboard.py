"""
Dashboard endpoint
"""

from fastapi import APIRouter

from app.core.config import settings
from app.schemas.report import DashboardResponse, EntriesRequest
from app.services.dashboard_service import build_dashboard


router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.post("", response_model=DashboardResponse)
async def dashboard(request: EntriesRequest):
    """Total time, top project, monthly hours and project/user breakdowns"""
    return build_dashboard(request.to_entries(), locale=request.locale or settings.DEFAULT_LOCALE)
