"""Auth & user models."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from .base import Base

STAFF_ROLES = ("employee", "admin")


class User(Base):
    """Customers and staff. Sessions are issued by the external auth service."""

    __tablename__ = "users"
    id = Column(Integer, primary_key=True)
    email = Column(String(255), unique=True, nullable=False)
    name = Column(String(255))
    role = Column(String(20), default="customer")  # customer | employee | admin
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES
