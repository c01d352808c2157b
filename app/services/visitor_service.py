"""
Visitor registration, lookup and approval.
Status changes made here are limited to the approval decision
(pending/approved/rejected); checked_in and checked_out are written only by
checkin_service so the CheckLog trail always explains the current status.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, lazyload

from app.database import transaction
from app.errors import InvalidPayloadError, InvalidStateError, NotFoundError
from app.models.user import User, HOST_ROLES
from app.models.visitor import (
    Visitor, STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED, STATUS_CHECKED_IN,
)
from app.services.access_policy import authorize, is_scoped_to_own_visitors, is_security_or_admin
from app.utils.logger import get_logger
from app.utils.pagination import Page, paginate

logger = get_logger(__name__)

APPROVAL_STATUSES = (STATUS_APPROVED, STATUS_REJECTED)
DECISION_STATUSES = (STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED)
UPDATABLE_FIELDS = (
    "name", "email", "phone", "company", "purpose",
    "expected_arrival", "expected_departure", "notes",
)


def get_visitor_for_update(db: Session, visitor_id: int) -> Optional[Visitor]:
    """
    Load a visitor as the first read of a read-modify-write sequence.
    Takes a row lock where the backend supports it and always re-reads the row,
    so the version used for the optimistic check is the one current at lock time.
    """
    return (
        db.query(Visitor)
        .options(lazyload("*"))
        .filter(Visitor.id == visitor_id)
        .with_for_update(of=Visitor)
        .populate_existing()
        .first()
    )


def create_visitor(db: Session, actor, data: dict) -> Visitor:
    authorize("visitor.create", actor)

    host = db.get(User, data["host_id"])
    if not host or host.role not in HOST_ROLES:
        raise InvalidPayloadError("Invalid host selected")
    if data["expected_departure"] <= data["expected_arrival"]:
        raise InvalidPayloadError("expectedDeparture must be after expectedArrival")

    now = datetime.utcnow()
    visitor = Visitor(
        name=data["name"],
        email=data["email"].lower(),
        phone=data["phone"],
        company=data.get("company"),
        purpose=data["purpose"],
        host_id=host.id,
        expected_arrival=data["expected_arrival"],
        expected_departure=data["expected_departure"],
        notes=data.get("notes"),
        created_at=now,
        updated_at=now,
    )
    with transaction(db):
        db.add(visitor)
    logger.info(f"[VISITOR] Registered {visitor.id} ({visitor.name}) for host {host.id}")
    return visitor


def list_visitors(db: Session, actor, page: int = 1, limit: int = 10, status: Optional[str] = None,
                  host_id: Optional[int] = None, search: Optional[str] = None,
                  start_date: Optional[datetime] = None, end_date: Optional[datetime] = None) -> Page:
    authorize("visitor.list", actor)

    q = db.query(Visitor)
    if status:
        q = q.filter(Visitor.status == status)
    if is_scoped_to_own_visitors(actor):
        q = q.filter(Visitor.host_id == actor.id)
    elif host_id:
        q = q.filter(Visitor.host_id == host_id)
    if search:
        pattern = f"%{search}%"
        q = q.filter(or_(Visitor.name.ilike(pattern), Visitor.email.ilike(pattern), Visitor.company.ilike(pattern)))
    if start_date:
        q = q.filter(Visitor.expected_arrival >= start_date)
    if end_date:
        q = q.filter(Visitor.expected_arrival <= end_date)

    return paginate(q.order_by(Visitor.created_at.desc(), Visitor.id.desc()), page, limit)


def get_visitor(db: Session, actor, visitor_id: int) -> Visitor:
    authorize("visitor.read", actor)
    visitor = db.get(Visitor, visitor_id)
    if not visitor:
        raise NotFoundError("Visitor not found")
    authorize("visitor.read", actor, visitor)
    return visitor


def update_visitor(db: Session, actor, visitor_id: int, changes: dict) -> Visitor:
    """Apply registration edits. A status change here is an approval decision, admin/security only."""
    authorize("visitor.update", actor)
    with transaction(db):
        visitor = get_visitor_for_update(db, visitor_id)
        if not visitor:
            raise NotFoundError("Visitor not found")
        authorize("visitor.update", actor, visitor)

        for field in UPDATABLE_FIELDS:
            if changes.get(field) is not None:
                setattr(visitor, field, changes[field].lower() if field == "email" else changes[field])

        status = changes.get("status")
        if status is not None and is_security_or_admin(actor):
            _apply_approval(visitor, status)

        if visitor.expected_departure <= visitor.expected_arrival:
            raise InvalidPayloadError("expectedDeparture must be after expectedArrival")
        visitor.updated_at = datetime.utcnow()
    return visitor


def set_visitor_status(db: Session, actor, visitor_id: int, status: str) -> Visitor:
    """Approve or reject a visitor. Hosts may decide for their own visitors."""
    authorize("visitor.set_status", actor)
    if status not in APPROVAL_STATUSES:
        raise InvalidPayloadError("Invalid status")

    with transaction(db):
        visitor = get_visitor_for_update(db, visitor_id)
        if not visitor:
            raise NotFoundError("Visitor not found")
        authorize("visitor.set_status", actor, visitor)
        _apply_approval(visitor, status)
        visitor.updated_at = datetime.utcnow()

    logger.info(f"[VISITOR] {visitor.id} {status} by user {actor.id}")
    return visitor


def _apply_approval(visitor: Visitor, status: str):
    if status not in DECISION_STATUSES:
        raise InvalidPayloadError("Invalid status")
    if visitor.status == STATUS_CHECKED_IN:
        raise InvalidStateError("Visitor is checked_in; check out before changing approval",
                                current_state=visitor.status)
    visitor.status = status
