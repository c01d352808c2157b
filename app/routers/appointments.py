# app/routers/appointments.py
"""Appointment scheduling endpoints."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_user
from app.models.user import User
from app.schemas.appointment import (
    AppointmentCreate, AppointmentListOut, AppointmentOut, AppointmentResponse, AppointmentStatusUpdate,
    AppointmentUpdate,
)
from app.services import appointment_service

router = APIRouter()


@router.post("/appointments", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED,
             summary="Create an appointment")
def create_appointment(body: AppointmentCreate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    appointment = appointment_service.create_appointment(db, user, body.model_dump())
    return {"message": "Appointment created successfully", "appointment": appointment}


@router.get("/appointments", response_model=AppointmentListOut, summary="List appointments")
def list_appointments(page: int = 1, limit: int = 10, status: Optional[str] = None,
                      visitor_id: Optional[int] = Query(None, alias="visitorId"),
                      date: Optional[datetime] = None, search: Optional[str] = None,
                      db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """Employees see appointments they host or attend."""
    result = appointment_service.list_appointments(db, user, page, limit, status, visitor_id, date, search)
    return {"appointments": result.items, "total_pages": result.total_pages,
            "current_page": result.current_page, "total": result.total}


@router.get("/appointments/{appointment_id}", summary="Get an appointment")
def get_appointment(appointment_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    appointment = appointment_service.get_appointment(db, user, appointment_id)
    return {"appointment": AppointmentOut.model_validate(appointment).model_dump(by_alias=True, mode="json")}


@router.put("/appointments/{appointment_id}", response_model=AppointmentResponse, summary="Update an appointment")
def update_appointment(appointment_id: int, body: AppointmentUpdate,
                       db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    appointment = appointment_service.update_appointment(db, user, appointment_id,
                                                         body.model_dump(exclude_unset=True))
    return {"message": "Appointment updated successfully", "appointment": appointment}


@router.delete("/appointments/{appointment_id}", summary="Delete an appointment")
def delete_appointment(appointment_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    appointment_service.delete_appointment(db, user, appointment_id)
    return {"message": "Appointment deleted successfully"}


@router.put("/appointments/{appointment_id}/status", response_model=AppointmentResponse,
            summary="Approve, reject, complete or cancel an appointment")
def update_appointment_status(appointment_id: int, body: AppointmentStatusUpdate,
                              db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    appointment = appointment_service.set_appointment_status(db, user, appointment_id, body.status)
    return {"message": f"Appointment {body.status} successfully", "appointment": appointment}
