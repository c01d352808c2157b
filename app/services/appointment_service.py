"""
Appointment scheduling. The creating user becomes the host; admins may book
for any visitor, everyone else only for visitors they host. Attendees see and
may decide on the appointments they are invited to.
"""

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.database import transaction
from app.errors import InvalidPayloadError, NotFoundError
from app.models.appointment import Appointment, APPOINTMENT_STATUSES, APPOINTMENT_STATUS_UPDATES, appointment_attendees
from app.models.user import User
from app.models.visitor import Visitor
from app.services.access_policy import authorize, is_scoped_to_own_visitors
from app.utils.logger import get_logger
from app.utils.pagination import Page, paginate

logger = get_logger(__name__)

EDITABLE_FIELDS = ("title", "description", "date", "start_time", "end_time", "location", "notes")


def _load_attendees(db: Session, user_ids) -> list[User]:
    ids = set(user_ids)
    if not ids:
        return []
    users = db.query(User).filter(User.id.in_(ids)).all()
    if len(users) != len(ids):
        missing = sorted(ids - {u.id for u in users})
        raise InvalidPayloadError(f"Unknown attendees: {missing}")
    return users


def _check_times(start_time: str, end_time: str):
    # HH:MM strings compare correctly as text
    if end_time <= start_time:
        raise InvalidPayloadError("endTime must be after startTime")


def create_appointment(db: Session, actor, data: dict) -> Appointment:
    authorize("appointment.create", actor)
    visitor = db.get(Visitor, data["visitor_id"])
    if not visitor:
        raise NotFoundError("Visitor not found")
    authorize("appointment.create", actor, visitor)
    _check_times(data["start_time"], data["end_time"])

    now = datetime.utcnow()
    appointment = Appointment(
        visitor_id=visitor.id,
        host_id=actor.id,
        title=data["title"],
        description=data.get("description"),
        date=data["date"],
        start_time=data["start_time"],
        end_time=data["end_time"],
        location=data.get("location"),
        notes=data.get("notes"),
        attendees=_load_attendees(db, data.get("attendees") or []),
        created_at=now,
        updated_at=now,
    )
    with transaction(db):
        db.add(appointment)
    logger.info(f"[APPOINTMENT] Created {appointment.id} for visitor {visitor.id} by user {actor.id}")
    return appointment


def list_appointments(db: Session, actor, page: int = 1, limit: int = 10, status: Optional[str] = None,
                      visitor_id: Optional[int] = None, date: Optional[datetime] = None,
                      search: Optional[str] = None) -> Page:
    authorize("appointment.list", actor)

    q = db.query(Appointment)
    if status:
        q = q.filter(Appointment.status == status)
    if visitor_id:
        q = q.filter(Appointment.visitor_id == visitor_id)
    if date:
        day = date.replace(hour=0, minute=0, second=0, microsecond=0)
        q = q.filter(Appointment.date >= day, Appointment.date < day + timedelta(days=1))
    if search:
        pattern = f"%{search}%"
        q = q.filter(or_(Appointment.title.ilike(pattern), Appointment.description.ilike(pattern)))
    if is_scoped_to_own_visitors(actor):
        invited = db.query(appointment_attendees.c.appointment_id).filter(appointment_attendees.c.user_id == actor.id)
        q = q.filter(or_(Appointment.host_id == actor.id, Appointment.id.in_(invited)))

    return paginate(q.order_by(Appointment.date.desc(), Appointment.start_time.desc()), page, limit)


def _load(db: Session, appointment_id: int) -> Appointment:
    appointment = db.get(Appointment, appointment_id)
    if not appointment:
        raise NotFoundError("Appointment not found")
    return appointment


def get_appointment(db: Session, actor, appointment_id: int) -> Appointment:
    authorize("appointment.read", actor)
    appointment = _load(db, appointment_id)
    authorize("appointment.read", actor, appointment)
    return appointment


def update_appointment(db: Session, actor, appointment_id: int, changes: dict) -> Appointment:
    authorize("appointment.update", actor)
    appointment = _load(db, appointment_id)
    authorize("appointment.update", actor, appointment)

    with transaction(db):
        for field in EDITABLE_FIELDS:
            if changes.get(field) is not None:
                setattr(appointment, field, changes[field])
        if changes.get("attendees") is not None:
            appointment.attendees = _load_attendees(db, changes["attendees"])
        if changes.get("status") is not None:
            if changes["status"] not in APPOINTMENT_STATUSES:
                raise InvalidPayloadError("Invalid status")
            appointment.status = changes["status"]
        _check_times(appointment.start_time, appointment.end_time)
        appointment.updated_at = datetime.utcnow()
    return appointment


def delete_appointment(db: Session, actor, appointment_id: int):
    authorize("appointment.delete", actor)
    appointment = _load(db, appointment_id)
    authorize("appointment.delete", actor, appointment)
    with transaction(db):
        db.delete(appointment)
    logger.info(f"[APPOINTMENT] Deleted {appointment_id} by user {actor.id}")


def set_appointment_status(db: Session, actor, appointment_id: int, status: str) -> Appointment:
    authorize("appointment.set_status", actor)
    if status not in APPOINTMENT_STATUS_UPDATES:
        raise InvalidPayloadError("Invalid status")
    appointment = _load(db, appointment_id)
    authorize("appointment.set_status", actor, appointment)

    with transaction(db):
        appointment.status = status
        appointment.updated_at = datetime.utcnow()
    logger.info(f"[APPOINTMENT] {appointment_id} {status} by user {actor.id}")
    return appointment
