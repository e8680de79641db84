from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth.security import get_current_context
from ..db import get_db
from ..services.metrics import MetricsService
from ..services.session_guard import EnforcementContext


router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/metrics")
def metrics(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    ctx: EnforcementContext = Depends(get_current_context),
):
    return {
        "success": True,
        "metrics": MetricsService(db).scoped_metrics(ctx.account_id, start_date, end_date),
        "filters": {"start_date": start_date, "end_date": end_date},
    }


@router.get("/system-owner")
def system_owner_dashboard(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    ctx: EnforcementContext = Depends(get_current_context),
):
    return {"success": True, "dashboard": MetricsService(db).system_owner_dashboard(ctx.account_id, start_date, end_date)}


@router.get("/super-admin")
def super_admin_dashboard(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    ctx: EnforcementContext = Depends(get_current_context),
):
    return {"success": True, "dashboard": MetricsService(db).super_admin_dashboard(ctx.account_id, start_date, end_date)}


@router.get("/admin")
def admin_dashboard(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    ctx: EnforcementContext = Depends(get_current_context),
):
    return {"success": True, "dashboard": MetricsService(db).admin_dashboard(ctx.account_id, start_date, end_date)}


@router.get("/it-person")
def it_person_dashboard(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    ctx: EnforcementContext = Depends(get_current_context),
):
    return {"success": True, "dashboard": MetricsService(db).it_person_dashboard(ctx.account_id, start_date, end_date)}
