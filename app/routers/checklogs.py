# app/routers/checklogs.py
"""Check-in / check-out scans and the check log trail."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_user
from app.models.user import User
from app.schemas.check_log import (
    CheckInRequest, CheckLogHistoryOut, CheckLogListOut, CheckLogOut, CheckLogResponse, CheckLogStatsOut,
    CheckOutRequest,
)
from app.services import checkin_service
from app.services.notification_service import checked_in, checked_out, dispatch

router = APIRouter()


@router.post("/checklogs/checkin", response_model=CheckLogResponse, status_code=status.HTTP_201_CREATED,
             summary="Check a visitor in by QR scan")
def check_in(body: CheckInRequest, background_tasks: BackgroundTasks,
             db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    check_log, visitor = checkin_service.check_in(
        db, user, body.qr_data,
        location=body.location, temperature=body.temperature, notes=body.notes,
        method=body.method, device_info=body.device_info,
    )
    dispatch(background_tasks, checked_in(check_log, visitor))
    return {"message": "Visitor checked in successfully", "check_log": check_log, "visitor": visitor}


@router.post("/checklogs/checkout", response_model=CheckLogResponse, status_code=status.HTTP_201_CREATED,
             summary="Check a visitor out by QR scan")
def check_out(body: CheckOutRequest, background_tasks: BackgroundTasks,
              db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    check_log, visitor = checkin_service.check_out(
        db, user, body.qr_data,
        location=body.location, notes=body.notes, method=body.method, device_info=body.device_info,
    )
    dispatch(background_tasks, checked_out(check_log, visitor))
    return {"message": "Visitor checked out successfully", "check_log": check_log, "visitor": visitor}


@router.get("/checklogs", response_model=CheckLogListOut, summary="List check logs")
def list_check_logs(page: int = 1, limit: int = 10, visitor_id: Optional[int] = Query(None, alias="visitorId"),
                    type: Optional[str] = None, search: Optional[str] = None,
                    start_date: Optional[datetime] = Query(None, alias="startDate"),
                    end_date: Optional[datetime] = Query(None, alias="endDate"),
                    db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """search matches visitor name or pass number."""
    result = checkin_service.list_check_logs(db, user, page, limit, visitor_id, type, start_date, end_date, search)
    return {"check_logs": result.items, "total_pages": result.total_pages,
            "current_page": result.current_page, "total": result.total}


# Fixed paths first so they are not captured by /checklogs/{check_log_id}
@router.get("/checklogs/stats", response_model=CheckLogStatsOut, summary="Check-in/out counts for a period")
def check_log_stats(period: str = "today", db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """period: today | week | month"""
    return checkin_service.check_log_stats(db, user, period)


@router.get("/checklogs/visitor/{visitor_id}", response_model=CheckLogHistoryOut, summary="A visitor's check history")
def visitor_history(visitor_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return {"check_logs": checkin_service.visitor_history(db, user, visitor_id)}


@router.get("/checklogs/{check_log_id}", summary="Get a check log")
def get_check_log(check_log_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    check_log = checkin_service.get_check_log(db, user, check_log_id)
    return {"checkLog": CheckLogOut.model_validate(check_log).model_dump(by_alias=True, mode="json")}
