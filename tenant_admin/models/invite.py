from datetime import datetime, timedelta
from typing import Any, Dict, Optional
import secrets

from sqlalchemy import Column, DateTime, Enum as SQLEnum, ForeignKey, Integer, String
from sqlalchemy.orm import relationship, validates

from ..clock import utcnow
from ..database import Base
from .enums import InviteStatus, OrgRole


class OrganizationInvite(Base):
    __tablename__ = "organization_invites"

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(
        Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    email = Column(String(254), nullable=False, index=True)
    role = Column(SQLEnum(OrgRole, values_callable=lambda e: [m.value for m in e]), nullable=False, default=OrgRole.USER)
    invited_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    token = Column(String(64), unique=True, nullable=False)
    status = Column(
        SQLEnum(InviteStatus, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=InviteStatus.PENDING,
    )
    expires_at = Column(DateTime, nullable=False)
    accepted_at = Column(DateTime)
    revoked_at = Column(DateTime)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    # Bumped on every UPDATE; a write based on a stale read raises StaleDataError
    version_id = Column(Integer, nullable=False)

    organization = relationship("Organization", back_populates="invites")
    inviter = relationship("User", foreign_keys=[invited_by])

    __mapper_args__ = {"version_id_col": version_id}

    DEFAULT_EXPIRATION_DAYS = 7

    @staticmethod
    def generate_token() -> str:
        """256-bit random token, hex encoded"""
        return secrets.token_hex(32)

    @validates("email")
    def validate_email(self, key, email):
        if not email or not email.strip():
            raise ValueError("Email is required")
        return email.strip().lower()

    def expired_(self, now: Optional[datetime] = None) -> bool:
        now = now or utcnow()
        return now > self.expires_at

    def effective_status(self, now: Optional[datetime] = None) -> InviteStatus:
        """Stored status, with a lapsed pending invite reported as expired."""
        if self.status == InviteStatus.PENDING and self.expired_(now):
            return InviteStatus.EXPIRED
        return self.status

    def pending_(self, now: Optional[datetime] = None) -> bool:
        return self.effective_status(now) == InviteStatus.PENDING

    def accept_(self, now: datetime) -> None:
        self.status = InviteStatus.ACCEPTED
        self.accepted_at = now

    def revoke_(self, now: datetime) -> None:
        self.status = InviteStatus.REVOKED
        self.revoked_at = now

    def expire_(self) -> None:
        self.status = InviteStatus.EXPIRED

    def regenerate_(self, now: datetime, expiration: timedelta) -> None:
        self.token = self.generate_token()
        self.expires_at = now + expiration

    def to_dict(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "email": self.email,
            "role": self.role.value,
            "invited_by": self.invited_by,
            "status": self.effective_status(now).value,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "accepted_at": self.accepted_at.isoformat() if self.accepted_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<OrganizationInvite(id={self.id}, email='{self.email}', status='{self.status.value}')>"
