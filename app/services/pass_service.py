"""
Pass issuance, revocation and lookup.

Issuance is a read-check-insert sequence serialized per visitor: the visitor
row is locked (where supported) and its version bumped in the same
transaction that inserts the pass, so two concurrent issuances for one
visitor cannot both commit. The partial unique index on passes backs this up.

A visitor keeps at most one blocking pass (active or expired). An expired
pass has to be revoked before a new one can be issued.
"""

import secrets
import string
import time
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session, lazyload

from app.config import settings
from app.database import transaction
from app.errors import InvalidPayloadError, InvalidStateError, NotFoundError
from app.models.visitor import Visitor, STATUS_APPROVED
from app.models.visitor_pass import (
    Pass, PASS_ACTIVE, PASS_REVOKED, BLOCKING_PASS_STATUSES, ACCESS_LEVELS, ACCESS_STANDARD,
)
from app.services.access_policy import authorize, is_scoped_to_own_visitors
from app.services.badge_service import badge_pdf_url
from app.services.verification_service import expire_pass, get_pass_for_update
from app.services.visitor_service import get_visitor_for_update
from app.utils.logger import get_logger
from app.utils.pagination import Page, paginate
from app.utils.qr_payload import encode_pass_payload, render_qr_data_url

logger = get_logger(__name__)

PASS_NUMBER_ALPHABET = string.ascii_uppercase + string.digits


def generate_pass_number() -> str:
    """PASS-<last 6 digits of epoch ms>-<6 random uppercase alphanumerics>."""
    stamp = str(int(time.time() * 1000))[-6:]
    block = "".join(secrets.choice(PASS_NUMBER_ALPHABET) for _ in range(6))
    return f"{settings.PASS_NUMBER_PREFIX}-{stamp}-{block}"


def generate_token() -> str:
    return secrets.token_hex(settings.PASS_TOKEN_BYTES)


def find_blocking_pass(db: Session, visitor_id: int) -> Optional[Pass]:
    return (
        db.query(Pass)
        .options(lazyload("*"))
        .filter(Pass.visitor_id == visitor_id, Pass.status.in_(BLOCKING_PASS_STATUSES))
        .first()
    )


def issue_pass(db: Session, actor, visitor_id: int, valid_from: datetime, valid_to: datetime,
               access_level: str = ACCESS_STANDARD) -> Pass:
    """Visitor lookup and state checks run before the payload checks."""
    authorize("pass.issue", actor)

    with transaction(db):
        visitor = get_visitor_for_update(db, visitor_id)
        if not visitor:
            raise NotFoundError("Visitor not found")
        if visitor.status != STATUS_APPROVED:
            raise InvalidStateError("Visitor must be approved before issuing pass", current_state=visitor.status)

        existing = find_blocking_pass(db, visitor.id)
        if existing:
            raise InvalidStateError("Active pass already exists for this visitor", current_state=existing.status)
        if access_level not in ACCESS_LEVELS:
            raise InvalidPayloadError(f"Invalid access level: {access_level}")
        if valid_to <= valid_from:
            raise InvalidPayloadError("validTo must be after validFrom")

        now = datetime.utcnow()
        pass_ = Pass(
            visitor_id=visitor.id,
            pass_number=generate_pass_number(),
            token=generate_token(),
            issued_by=actor.id,
            issued_at=now,
            expires_at=valid_to,
            valid_from=valid_from,
            valid_to=valid_to,
            status=PASS_ACTIVE,
            access_level=access_level,
            created_at=now,
            updated_at=now,
        )
        db.add(pass_)
        visitor.updated_at = now     # version bump: a concurrent issuer for this visitor fails on flush
        db.flush()

        # The payload embeds the pass id, so it is built once the insert has one
        pass_.qr_data = encode_pass_payload(pass_.id, visitor.id, pass_.pass_number, pass_.token,
                                            pass_.issued_at, pass_.expires_at)
        pass_.qr_code = render_qr_data_url(pass_.qr_data)
        pass_.pdf_url = badge_pdf_url(pass_.pass_number)

    logger.info(f"[PASS] Issued {pass_.pass_number} ({access_level}) to visitor {visitor.id} "
                f"by user {actor.id}, valid until {valid_to}")
    return pass_


def revoke_pass(db: Session, actor, pass_id: int) -> Pass:
    authorize("pass.revoke", actor)
    with transaction(db):
        pass_ = get_pass_for_update(db, pass_id)
        if not pass_:
            raise NotFoundError("Pass not found")
        if pass_.status == PASS_REVOKED:
            raise InvalidStateError("Pass is already revoked", current_state=pass_.status)
        pass_.status = PASS_REVOKED
        pass_.updated_at = datetime.utcnow()

    logger.info(f"[PASS] Revoked {pass_.pass_number} by user {actor.id}")
    return pass_


def list_passes(db: Session, actor, page: int = 1, limit: int = 10, status: Optional[str] = None,
                visitor_id: Optional[int] = None, search: Optional[str] = None) -> Page:
    authorize("pass.list", actor)

    q = db.query(Pass)
    if status:
        q = q.filter(Pass.status == status)
    if visitor_id:
        q = q.filter(Pass.visitor_id == visitor_id)
    if search:
        q = q.filter(Pass.pass_number.ilike(f"%{search}%"))
    if is_scoped_to_own_visitors(actor):
        hosted = db.query(Visitor.id).filter(Visitor.host_id == actor.id)
        q = q.filter(Pass.visitor_id.in_(hosted))

    return paginate(q.order_by(Pass.issued_at.desc(), Pass.id.desc()), page, limit)


def get_pass(db: Session, actor, pass_id: int) -> Pass:
    """Detail read. An active pass past its expiry is flipped to expired before it is returned."""
    authorize("pass.read", actor)
    pass_ = db.get(Pass, pass_id)
    if not pass_:
        raise NotFoundError("Pass not found")
    authorize("pass.read", actor, pass_)

    if pass_.status == PASS_ACTIVE and datetime.utcnow() > pass_.expires_at:
        expire_pass(db, pass_)
    return pass_
