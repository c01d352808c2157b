# app/routers/visitors.py
"""Visitor registration and approval."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_user
from app.models.user import User
from app.schemas.visitor import VisitorCreate, VisitorListOut, VisitorOut, VisitorResponse, VisitorStatusUpdate, VisitorUpdate
from app.services import visitor_service
from app.services.notification_service import dispatch, visitor_registered, visitor_status_changed

router = APIRouter()


@router.post("/visitors", response_model=VisitorResponse, status_code=status.HTTP_201_CREATED,
             summary="Register a visitor")
def create_visitor(body: VisitorCreate, background_tasks: BackgroundTasks,
                   db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    visitor = visitor_service.create_visitor(db, user, body.model_dump())
    dispatch(background_tasks, visitor_registered(visitor))
    return {"message": "Visitor registered successfully", "visitor": visitor}


@router.get("/visitors", response_model=VisitorListOut, summary="List visitors")
def list_visitors(page: int = 1, limit: int = 10, status: Optional[str] = None,
                  host_id: Optional[int] = Query(None, alias="hostId"), search: Optional[str] = None,
                  start_date: Optional[datetime] = Query(None, alias="startDate"),
                  end_date: Optional[datetime] = Query(None, alias="endDate"),
                  db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """Employees only see visitors they host."""
    result = visitor_service.list_visitors(db, user, page, limit, status, host_id, search, start_date, end_date)
    return {"visitors": result.items, "total_pages": result.total_pages,
            "current_page": result.current_page, "total": result.total}


@router.get("/visitors/{visitor_id}", summary="Get a visitor")
def get_visitor(visitor_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    visitor = visitor_service.get_visitor(db, user, visitor_id)
    return {"visitor": VisitorOut.model_validate(visitor).model_dump(by_alias=True, mode="json")}


@router.put("/visitors/{visitor_id}", response_model=VisitorResponse, summary="Update a visitor")
def update_visitor(visitor_id: int, body: VisitorUpdate,
                   db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    visitor = visitor_service.update_visitor(db, user, visitor_id, body.model_dump(exclude_unset=True))
    return {"message": "Visitor updated successfully", "visitor": visitor}


@router.put("/visitors/{visitor_id}/status", response_model=VisitorResponse, summary="Approve or reject a visitor")
def update_visitor_status(visitor_id: int, body: VisitorStatusUpdate, background_tasks: BackgroundTasks,
                          db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    visitor = visitor_service.set_visitor_status(db, user, visitor_id, body.status)
    dispatch(background_tasks, visitor_status_changed(visitor))
    return {"message": f"Visitor {body.status} successfully", "visitor": visitor}
