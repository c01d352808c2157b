"""
Check-in / check-out state engine + check log queries.

check_in:  pass must be usable (active, not expired), checked again on the
           locked row and touched in the same transaction, so a revoke racing
           the scan either lands first or conflicts. No second check-in for a
           visitor while the latest log inside the idempotency window
           (CHECKIN_IDEMPOTENCY_HOURS, default 24h) is a check-in.
check_out: only the visitor state matters; a pass may expire while its holder
           is still on site.

Each transition appends a CheckLog and updates the visitor in one
transaction. The visitor row is locked where the backend supports it, and its
version column turns a lost update between two concurrent scans into a
ConflictError, so exactly one of them lands.
"""

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, lazyload

from app.config import settings
from app.database import transaction
from app.errors import AlreadyCheckedInError, InvalidPayloadError, InvalidStateError, NotFoundError
from app.models.check_log import CheckLog, CHECK_IN, CHECK_OUT, CHECK_METHODS, CHECK_TYPES, METHOD_QR_SCAN
from app.models.visitor import Visitor, STATUS_CHECKED_IN, STATUS_CHECKED_OUT
from app.models.visitor_pass import Pass, PASS_EXPIRED
from app.services.access_policy import authorize, is_scoped_to_own_visitors
from app.services.verification_service import (
    assert_pass_active, ensure_pass_usable, get_pass_for_update, pass_state, resolve_pass,
)
from app.services.visitor_service import get_visitor_for_update
from app.utils.logger import get_logger
from app.utils.pagination import Page, paginate
from app.utils.qr_payload import decode_pass_payload

logger = get_logger(__name__)

MIN_TEMPERATURE = 30.0
MAX_TEMPERATURE = 45.0
STATS_PERIODS = ("today", "week", "month")


def latest_check_log(db: Session, visitor_id: int, since: datetime) -> Optional[CheckLog]:
    return (
        db.query(CheckLog)
        .options(lazyload("*"))
        .filter(CheckLog.visitor_id == visitor_id, CheckLog.timestamp >= since)
        .order_by(CheckLog.timestamp.desc(), CheckLog.id.desc())
        .first()
    )


def _validate_telemetry(method: str, temperature: Optional[float]):
    if method not in CHECK_METHODS:
        raise InvalidPayloadError(f"Invalid method: {method}")
    if temperature is not None and not (MIN_TEMPERATURE <= temperature <= MAX_TEMPERATURE):
        raise InvalidPayloadError(f"temperature must be between {MIN_TEMPERATURE:g} and {MAX_TEMPERATURE:g}")


def check_in(db: Session, actor, qr_data, location: Optional[str] = None, temperature: Optional[float] = None,
             notes: Optional[str] = None, method: str = METHOD_QR_SCAN, device_info: Optional[str] = None):
    """Returns (check_log, visitor)."""
    authorize("checklog.check_in", actor)
    _validate_telemetry(method, temperature)

    payload = decode_pass_payload(qr_data)
    pass_ = resolve_pass(db, payload)
    ensure_pass_usable(db, pass_)
    pass_id, visitor_id = pass_.id, pass_.visitor_id

    with transaction(db):
        visitor = get_visitor_for_update(db, visitor_id)
        if not visitor:
            raise NotFoundError("Visitor not found")

        now = datetime.utcnow()
        locked = get_pass_for_update(db, pass_id)
        if not locked:
            raise NotFoundError("Pass not found")
        assert_pass_active(locked)
        if now > locked.expires_at:
            raise InvalidStateError("Pass has expired", current_state=PASS_EXPIRED, context=pass_state(locked))

        window_start = now - timedelta(hours=settings.CHECKIN_IDEMPOTENCY_HOURS)
        latest = latest_check_log(db, visitor.id, since=window_start)
        if latest and latest.type == CHECK_IN:
            raise AlreadyCheckedInError(context={"visitorStatus": visitor.status})

        check_log = CheckLog(
            visitor_id=visitor.id,
            pass_id=pass_id,
            type=CHECK_IN,
            timestamp=now,
            location=location,
            checked_by=actor.id,
            method=method,
            notes=notes,
            temperature=temperature,
            device_info=device_info,
            created_at=now,
        )
        db.add(check_log)
        visitor.status = STATUS_CHECKED_IN
        visitor.actual_arrival = now
        visitor.updated_at = now
        locked.updated_at = now      # version bump: a concurrent revoke of this pass fails on flush

    logger.info(f"[CHECKIN] Visitor {visitor.id} checked in at {location or 'unspecified'} by user {actor.id}")
    return check_log, visitor


def check_out(db: Session, actor, qr_data, location: Optional[str] = None, notes: Optional[str] = None,
              method: str = METHOD_QR_SCAN, device_info: Optional[str] = None):
    """Returns (check_log, visitor)."""
    authorize("checklog.check_out", actor)
    _validate_telemetry(method, None)

    payload = decode_pass_payload(qr_data)
    pass_ = resolve_pass(db, payload)
    pass_id, visitor_id = pass_.id, pass_.visitor_id

    with transaction(db):
        visitor = get_visitor_for_update(db, visitor_id)
        if not visitor:
            raise NotFoundError("Visitor not found")
        if visitor.status != STATUS_CHECKED_IN:
            raise InvalidStateError("Visitor is not checked in", current_state=visitor.status,
                                    context={"visitorStatus": visitor.status})

        now = datetime.utcnow()
        check_log = CheckLog(
            visitor_id=visitor.id,
            pass_id=pass_id,
            type=CHECK_OUT,
            timestamp=now,
            location=location,
            checked_by=actor.id,
            method=method,
            notes=notes,
            device_info=device_info,
            created_at=now,
        )
        db.add(check_log)
        visitor.status = STATUS_CHECKED_OUT
        visitor.actual_departure = now
        visitor.updated_at = now

    logger.info(f"[CHECKOUT] Visitor {visitor.id} checked out at {location or 'unspecified'} by user {actor.id}")
    return check_log, visitor


# ── Queries ──────────────────────────────────────────────────────────────────
def list_check_logs(db: Session, actor, page: int = 1, limit: int = 10, visitor_id: Optional[int] = None,
                    type: Optional[str] = None, start_date: Optional[datetime] = None,
                    end_date: Optional[datetime] = None, search: Optional[str] = None) -> Page:
    """search matches visitor name or pass number."""
    authorize("checklog.list", actor)
    if type and type not in CHECK_TYPES:
        raise InvalidPayloadError(f"Invalid type: {type}")

    q = db.query(CheckLog)
    if visitor_id:
        q = q.filter(CheckLog.visitor_id == visitor_id)
    if type:
        q = q.filter(CheckLog.type == type)
    if start_date:
        q = q.filter(CheckLog.timestamp >= start_date)
    if end_date:
        q = q.filter(CheckLog.timestamp <= end_date)
    if search:
        pattern = f"%{search}%"
        named = db.query(Visitor.id).filter(Visitor.name.ilike(pattern))
        numbered = db.query(Pass.id).filter(Pass.pass_number.ilike(pattern))
        q = q.filter(or_(CheckLog.visitor_id.in_(named), CheckLog.pass_id.in_(numbered)))
    if is_scoped_to_own_visitors(actor):
        hosted = db.query(Visitor.id).filter(Visitor.host_id == actor.id)
        q = q.filter(CheckLog.visitor_id.in_(hosted))

    return paginate(q.order_by(CheckLog.timestamp.desc(), CheckLog.id.desc()), page, limit)


def get_check_log(db: Session, actor, check_log_id: int) -> CheckLog:
    authorize("checklog.read", actor)
    check_log = db.get(CheckLog, check_log_id)
    if not check_log:
        raise NotFoundError("Check log not found")
    authorize("checklog.read", actor, check_log)
    return check_log


def visitor_history(db: Session, actor, visitor_id: int) -> list[CheckLog]:
    authorize("checklog.history", actor)
    visitor = db.get(Visitor, visitor_id)
    if not visitor:
        raise NotFoundError("Visitor not found")
    authorize("checklog.history", actor, visitor)
    return (
        db.query(CheckLog)
        .filter(CheckLog.visitor_id == visitor_id)
        .order_by(CheckLog.timestamp.desc(), CheckLog.id.desc())
        .all()
    )


def _period_start(period: str, now: datetime) -> datetime:
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == "week":
        return now - timedelta(days=7)
    if period == "month":
        return today.replace(day=1)
    return today


def check_log_stats(db: Session, actor, period: str = "today") -> dict:
    """Counts since the start of the period (unknown periods fall back to today)."""
    authorize("checklog.stats", actor)
    if period not in STATS_PERIODS:
        period = "today"
    start = _period_start(period, datetime.utcnow())

    rows = (
        db.query(CheckLog.type, func.count(CheckLog.id))
        .filter(CheckLog.timestamp >= start)
        .group_by(CheckLog.type)
        .all()
    )
    counts = dict(rows)
    total_in = counts.get(CHECK_IN, 0)
    total_out = counts.get(CHECK_OUT, 0)

    current = (
        db.query(func.count(Visitor.id))
        .filter(Visitor.status == STATUS_CHECKED_IN, Visitor.actual_arrival >= start)
        .scalar()
    )
    return {
        "period": period,
        "total_check_ins": total_in,
        "total_check_outs": total_out,
        "current_checked_in": current or 0,
        "check_in_out_ratio": f"{total_in / total_out:.2f}" if total_out > 0 else "N/A",
    }
