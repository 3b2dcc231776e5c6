"""REST endpoint for the Dashboard."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from src.crmdesk.api.deps import get_dashboard
from src.crmdesk.services.dashboard import Dashboard, DashboardMetrics

router = APIRouter(tags=["dashboard"])


@router.get("/dashboard", response_model=DashboardMetrics)
async def get_dashboard_metrics(
    dashboard: Dashboard = Depends(get_dashboard),
) -> DashboardMetrics:
    """Counts, pipeline split by status, total value and win rate."""
    return await dashboard.load()
