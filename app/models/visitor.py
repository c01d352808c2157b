"""
Visitors table.
Status lifecycle: pending → approved | rejected, approved → checked_in ⇄ checked_out.
actual_arrival / actual_departure are written only by the check-in engine.
`version` is an optimistic-lock counter: a concurrent writer that read an
older version fails its UPDATE instead of overwriting.
"""

from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from app.database import Base

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"
STATUS_CHECKED_IN = "checked_in"
STATUS_CHECKED_OUT = "checked_out"
VISITOR_STATUSES = (STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED, STATUS_CHECKED_IN, STATUS_CHECKED_OUT)


class Visitor(Base):
    __tablename__ = "visitors"
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'checked_in', 'checked_out')",
            name="ck_visitors_status",
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    phone = Column(String(50), nullable=False)
    company = Column(String(200))
    purpose = Column(Text, nullable=False)
    host_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    photo_url = Column(String(500))
    id_proof_url = Column(String(500))
    status = Column(String(20), nullable=False, default=STATUS_PENDING, index=True)
    expected_arrival = Column(DateTime, nullable=False)
    expected_departure = Column(DateTime, nullable=False)
    actual_arrival = Column(DateTime)
    actual_departure = Column(DateTime)
    notes = Column(Text)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime)
    updated_at = Column(DateTime)

    host = relationship("User", lazy="joined")

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<Visitor {self.id} {self.name} status={self.status}>"
