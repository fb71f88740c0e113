from typing import Optional

from fastapi import APIRouter, Depends, Query

from globetrotter.dependencies import get_current_user, get_dashboard_service
from globetrotter.responses import ok
from globetrotter.services.dashboard_service import MAX_RECENT_DAYS, DashboardService

router = APIRouter()


@router.get("")
def overview(user=Depends(get_current_user), dashboard: DashboardService = Depends(get_dashboard_service)):
    return ok(dashboard.overview(user))


@router.get("/upcoming")
def upcoming(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    user=Depends(get_current_user),
    dashboard: DashboardService = Depends(get_dashboard_service),
):
    result = dashboard.upcoming(user["id"], page, limit)
    return ok({"trips": result["items"]}, pagination=result["pagination"])


@router.get("/recent")
def recent(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    days: int = Query(30, ge=0, le=MAX_RECENT_DAYS),
    user=Depends(get_current_user),
    dashboard: DashboardService = Depends(get_dashboard_service),
):
    result = dashboard.recent(user["id"], page, limit, days)
    return ok({"trips": result["items"]}, pagination=result["pagination"])


@router.get("/statistics")
def statistics(
    year: Optional[int] = Query(None, ge=1900, le=3000),
    user=Depends(get_current_user),
    dashboard: DashboardService = Depends(get_dashboard_service),
):
    return ok(dashboard.statistics(user["id"], year))


@router.get("/recommendations")
def recommendations(user=Depends(get_current_user), dashboard: DashboardService = Depends(get_dashboard_service)):
    return ok(dashboard.recommendations(user["id"]))


@router.get("/quick-actions")
def quick_actions(user=Depends(get_current_user), dashboard: DashboardService = Depends(get_dashboard_service)):
    return ok(dashboard.quick_actions(user))
