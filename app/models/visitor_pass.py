"""
Visitor passes table.
A pass belongs to exactly one visitor. At most one pass per visitor may sit in
a blocking state (active or expired); the partial unique index backs the
issuance check so two racing inserts cannot both land.
Status: active → expired (lazily, on verify/scan) | revoked (explicit).
"""

from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, CheckConstraint, Index, text
from sqlalchemy.orm import relationship
from app.database import Base

PASS_ACTIVE = "active"
PASS_EXPIRED = "expired"
PASS_REVOKED = "revoked"
PASS_STATUSES = (PASS_ACTIVE, PASS_EXPIRED, PASS_REVOKED)
BLOCKING_PASS_STATUSES = (PASS_ACTIVE, PASS_EXPIRED)

ACCESS_STANDARD = "standard"
ACCESS_VIP = "vip"
ACCESS_RESTRICTED = "restricted"
ACCESS_LEVELS = (ACCESS_STANDARD, ACCESS_VIP, ACCESS_RESTRICTED)

_BLOCKING_WHERE = text("status IN ('active', 'expired')")


class Pass(Base):
    __tablename__ = "passes"
    __table_args__ = (
        CheckConstraint("status IN ('active', 'expired', 'revoked')", name="ck_passes_status"),
        CheckConstraint("access_level IN ('standard', 'vip', 'restricted')", name="ck_passes_access_level"),
        Index(
            "uq_passes_visitor_blocking", "visitor_id", unique=True,
            postgresql_where=_BLOCKING_WHERE, sqlite_where=_BLOCKING_WHERE,
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    visitor_id = Column(Integer, ForeignKey("visitors.id"), nullable=False, index=True)
    pass_number = Column(String(50), unique=True, nullable=False, index=True)
    token = Column(String(128), nullable=False)          # hex CSPRNG token embedded in the QR payload
    qr_data = Column(Text)                               # JSON payload encoded in the QR image
    qr_code = Column(Text)                               # data:image/png;base64,...
    pdf_url = Column(String(500))
    issued_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    issued_at = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)
    valid_from = Column(DateTime, nullable=False)
    valid_to = Column(DateTime, nullable=False)
    status = Column(String(20), nullable=False, default=PASS_ACTIVE, index=True)
    access_level = Column(String(20), nullable=False, default=ACCESS_STANDARD)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime)
    updated_at = Column(DateTime)

    visitor = relationship("Visitor", lazy="joined")
    issuer = relationship("User", lazy="joined")

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<Pass {self.pass_number} visitor={self.visitor_id} status={self.status}>"
