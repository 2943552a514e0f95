from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from ...api import deps
from ...db.session import get_db
from ...db import models, schemas
from ...services import report_service

router = APIRouter(prefix="/admin/reports", tags=["reports"])


@router.get("/revenue", response_model=schemas.RevenueReport)
def revenue(
    start_date: str | None = Query(default=None, alias="startDate"),
    end_date: str | None = Query(default=None, alias="endDate"),
    payment_method: str | None = Query(default=None, alias="paymentMethod"),
    db: Session = Depends(get_db),
    _: models.UserProfile = Depends(deps.require_roles("admin")),
):
    return report_service.revenue_report(
        db, start_date=start_date, end_date=end_date, payment_method=payment_method
    )


@router.get("/attendance", response_model=schemas.AttendanceReport)
def attendance(
    start_date: str | None = Query(default=None, alias="startDate"),
    end_date: str | None = Query(default=None, alias="endDate"),
    db: Session = Depends(get_db),
    _: models.UserProfile = Depends(deps.require_roles("admin")),
):
    return report_service.attendance_report(db, start_date=start_date, end_date=end_date)


@router.get("/popular-classes", response_model=schemas.PopularClassesReport)
def popular_classes(
    start_date: str | None = Query(default=None, alias="startDate"),
    end_date: str | None = Query(default=None, alias="endDate"),
    limit: int | None = Query(default=None, ge=1),
    db: Session = Depends(get_db),
    _: models.UserProfile = Depends(deps.require_roles("admin")),
):
    return report_service.popular_classes_report(
        db, start_date=start_date, end_date=end_date, limit=limit
    )


@router.get("/instructor-revenue", response_model=schemas.InstructorRevenueReport)
def instructor_revenue(
    start_date: str | None = Query(default=None, alias="startDate"),
    end_date: str | None = Query(default=None, alias="endDate"),
    db: Session = Depends(get_db),
    _: models.UserProfile = Depends(deps.require_roles("admin")),
):
    return report_service.instructor_revenue_report(db, start_date=start_date, end_date=end_date)
