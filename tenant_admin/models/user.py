from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship, validates

from ..clock import utcnow
from ..database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(254), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False, default="")
    password_digest = Column(String(255), nullable=False)

    failed_login_attempts = Column(Integer, nullable=False, default=0)
    last_failed_login_at = Column(DateTime)
    locked_until = Column(DateTime)
    last_login_at = Column(DateTime)
    password_changed_at = Column(DateTime)

    # Plain reference; cleared explicitly when the organization is deleted
    last_selected_organization_id = Column(Integer, index=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    profile = relationship(
        "Profile", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    memberships = relationship("OrganizationMember", back_populates="user")

    @validates("username")
    def validate_username(self, key, username):
        if not username or not username.strip():
            raise ValueError("Email is required")
        return username.strip().lower()

    @property
    def email(self) -> str:
        return self.username

    def locked_(self, now: Optional[datetime] = None) -> bool:
        now = now or utcnow()
        return self.locked_until is not None and self.locked_until > now

    def remaining_lock_time(self, now: Optional[datetime] = None) -> timedelta:
        now = now or utcnow()
        if not self.locked_(now):
            return timedelta(0)
        return self.locked_until - now

    def record_failed_login_(self, now: datetime, max_attempts: int, lockout: timedelta) -> bool:
        """Count a failed attempt; returns True when this attempt locks the account."""
        self.failed_login_attempts = (self.failed_login_attempts or 0) + 1
        self.last_failed_login_at = now
        if self.failed_login_attempts >= max_attempts:
            self.locked_until = now + lockout
            return True
        return False

    def record_successful_login_(self, now: datetime) -> None:
        self.failed_login_attempts = 0
        self.locked_until = None
        self.last_login_at = now

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.username,
            "name": self.name,
            "last_selected_organization_id": self.last_selected_organization_id,
            "profile": self.profile.to_dict() if self.profile else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}')>"


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    street = Column(String(255))
    city = Column(String(120))
    district = Column(String(120))
    zip_code = Column(String(20))
    phone = Column(String(40))

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="profile")

    EDITABLE_FIELDS = ("street", "city", "district", "zip_code", "phone")

    def to_dict(self) -> Dict[str, Any]:
        return {field: getattr(self, field) for field in self.EDITABLE_FIELDS}
