"""
Staff user management. Admins manage everyone; other users may read and edit
their own profile but not their role or active flag.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.database import transaction
from app.errors import InvalidPayloadError, InvalidStateError, NotFoundError
from app.models.appointment import Appointment, appointment_attendees
from app.models.check_log import CheckLog
from app.models.user import User, ROLES
from app.models.visitor import Visitor
from app.models.visitor_pass import Pass
from app.services.access_policy import authorize, is_admin
from app.utils.logger import get_logger
from app.utils.pagination import Page, paginate

logger = get_logger(__name__)

PROFILE_FIELDS = ("name", "email", "department", "phone")
ADMIN_FIELDS = ("role", "is_active")


def _email_taken(db: Session, email: str, exclude_id: Optional[int] = None) -> bool:
    q = db.query(User.id).filter(func.lower(User.email) == email.lower())
    if exclude_id is not None:
        q = q.filter(User.id != exclude_id)
    return q.first() is not None


def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
    """Identity lookup for the request dependency; no policy check."""
    return db.get(User, user_id)


def create_user(db: Session, actor, data: dict) -> User:
    authorize("user.create", actor)
    if data.get("role", "employee") not in ROLES:
        raise InvalidPayloadError("Invalid role")
    if _email_taken(db, data["email"]):
        raise InvalidPayloadError("User with this email already exists")

    user = User(
        name=data["name"],
        email=data["email"].lower(),
        role=data.get("role") or "employee",
        department=data.get("department"),
        phone=data.get("phone"),
        is_active=True,
        created_at=datetime.utcnow(),
    )
    with transaction(db):
        db.add(user)
    logger.info(f"[USER] Created {user.id} ({user.role}) by user {actor.id}")
    return user


def list_users(db: Session, actor, page: int = 1, limit: int = 10, role: Optional[str] = None,
               search: Optional[str] = None) -> Page:
    authorize("user.list", actor)
    q = db.query(User)
    if role:
        q = q.filter(User.role == role)
    if search:
        pattern = f"%{search}%"
        q = q.filter(or_(User.name.ilike(pattern), User.email.ilike(pattern), User.department.ilike(pattern)))
    return paginate(q.order_by(User.created_at.desc(), User.id.desc()), page, limit)


def get_user(db: Session, actor, user_id: int) -> User:
    authorize("user.read", actor)
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    authorize("user.read", actor, user)
    return user


def update_user(db: Session, actor, user_id: int, changes: dict) -> User:
    authorize("user.update", actor)
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    authorize("user.update", actor, user)

    fields = PROFILE_FIELDS + ADMIN_FIELDS if is_admin(actor) else PROFILE_FIELDS
    if changes.get("email") and _email_taken(db, changes["email"], exclude_id=user.id):
        raise InvalidPayloadError("User with this email already exists")

    with transaction(db):
        for field in fields:
            if changes.get(field) is not None:
                setattr(user, field, changes[field].lower() if field == "email" else changes[field])
    return user


def delete_user(db: Session, actor, user_id: int):
    """Users referenced by visitors, passes, logs or appointments are kept; deactivate them instead."""
    authorize("user.delete", actor)
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    if user.id == actor.id:
        raise InvalidStateError("You cannot delete your own account")

    referenced = (
        db.query(Visitor.id).filter(Visitor.host_id == user.id).first()
        or db.query(Pass.id).filter(Pass.issued_by == user.id).first()
        or db.query(CheckLog.id).filter(CheckLog.checked_by == user.id).first()
        or db.query(Appointment.id).filter(Appointment.host_id == user.id).first()
        or db.query(appointment_attendees.c.appointment_id).filter(appointment_attendees.c.user_id == user.id).first()
    )
    if referenced:
        raise InvalidStateError("User has related records; deactivate instead")

    with transaction(db):
        db.delete(user)
    logger.info(f"[USER] Deleted {user_id} by user {actor.id}")


def user_stats(db: Session, actor) -> dict:
    authorize("user.stats", actor)
    by_role = dict(db.query(User.role, func.count(User.id)).group_by(User.role).all())
    active = db.query(func.count(User.id)).filter(User.is_active.is_(True)).scalar() or 0
    total = sum(by_role.values())
    return {
        "total": total,
        "active": active,
        "inactive": total - active,
        "by_role": {role: by_role.get(role, 0) for role in ROLES},
    }
