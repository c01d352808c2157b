"""
Check-in / check-out audit trail.
Append-only: rows are inserted by checkin_service and never updated or deleted.
The (visitor_id, timestamp) index serves the "latest entry in the last 24h" lookup.
"""

from sqlalchemy import Column, Integer, String, DateTime, Text, Float, ForeignKey, CheckConstraint, Index
from sqlalchemy.orm import relationship
from app.database import Base

CHECK_IN = "check_in"
CHECK_OUT = "check_out"
CHECK_TYPES = (CHECK_IN, CHECK_OUT)

METHOD_QR_SCAN = "qr_scan"
METHOD_MANUAL = "manual"
METHOD_FACIAL_RECOGNITION = "facial_recognition"
CHECK_METHODS = (METHOD_QR_SCAN, METHOD_MANUAL, METHOD_FACIAL_RECOGNITION)


class CheckLog(Base):
    __tablename__ = "check_logs"
    __table_args__ = (
        CheckConstraint("type IN ('check_in', 'check_out')", name="ck_check_logs_type"),
        Index("ix_check_logs_visitor_timestamp", "visitor_id", "timestamp"),
        Index("ix_check_logs_type_timestamp", "type", "timestamp"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    visitor_id = Column(Integer, ForeignKey("visitors.id"), nullable=False)
    pass_id = Column(Integer, ForeignKey("passes.id"))
    type = Column(String(20), nullable=False)
    timestamp = Column(DateTime, nullable=False)
    location = Column(String(200))
    checked_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    method = Column(String(30), nullable=False, default=METHOD_QR_SCAN)
    notes = Column(Text)
    temperature = Column(Float)        # °C, optional health screening reading
    device_info = Column(String(200))  # scanning device identifier
    created_at = Column(DateTime)

    visitor = relationship("Visitor", lazy="joined")
    visitor_pass = relationship("Pass", lazy="joined")
    checker = relationship("User", lazy="joined")

    def __repr__(self):
        return f"<CheckLog {self.id} visitor={self.visitor_id} type={self.type}>"
