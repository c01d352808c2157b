"""
Users table — staff identities (admin, security, employee).
Employees and admins act as hosts for visitors and appointments.
The upstream auth layer resolves a request to one of these rows.
"""

from sqlalchemy import Column, Integer, String, DateTime, Boolean, CheckConstraint
from app.database import Base

ROLE_ADMIN = "admin"
ROLE_SECURITY = "security"
ROLE_EMPLOYEE = "employee"
ROLES = (ROLE_ADMIN, ROLE_SECURITY, ROLE_EMPLOYEE)
HOST_ROLES = (ROLE_EMPLOYEE, ROLE_ADMIN)


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("role IN ('admin', 'security', 'employee')", name="ck_users_role"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    role = Column(String(20), nullable=False, default=ROLE_EMPLOYEE)
    department = Column(String(100))
    phone = Column(String(50))
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime)

    def __repr__(self):
        return f"<User {self.id} {self.email} role={self.role}>"
