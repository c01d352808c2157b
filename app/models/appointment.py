"""
Appointments table — scheduling only, no lifecycle rules beyond its status.
Attendees are other users invited to the meeting (appointment_attendees).
"""

from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, Table
from sqlalchemy.orm import relationship
from app.database import Base

APPOINTMENT_STATUSES = ("pending", "approved", "rejected", "completed", "cancelled")
APPOINTMENT_STATUS_UPDATES = ("approved", "rejected", "completed", "cancelled")

appointment_attendees = Table(
    "appointment_attendees",
    Base.metadata,
    Column("appointment_id", Integer, ForeignKey("appointments.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id"), primary_key=True),
)


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    visitor_id = Column(Integer, ForeignKey("visitors.id"), nullable=False, index=True)
    host_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text)
    date = Column(DateTime, nullable=False, index=True)
    start_time = Column(String(10), nullable=False)   # HH:MM
    end_time = Column(String(10), nullable=False)
    status = Column(String(20), nullable=False, default="pending")
    location = Column(String(200))
    notes = Column(Text)
    created_at = Column(DateTime)
    updated_at = Column(DateTime)

    visitor = relationship("Visitor", lazy="joined")
    host = relationship("User", lazy="joined")
    attendees = relationship("User", secondary=appointment_attendees, lazy="selectin")

    def __repr__(self):
        return f"<Appointment {self.id} '{self.title}' status={self.status}>"
