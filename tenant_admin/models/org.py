from typing import Any, Dict

from sqlalchemy import Column, DateTime, Enum as SQLEnum, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship, validates

from ..clock import utcnow
from ..database import Base
from .enums import OrgRole


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    creator = relationship("User", foreign_keys=[created_by])
    members = relationship(
        "OrganizationMember", back_populates="organization", cascade="all, delete-orphan"
    )
    invites = relationship(
        "OrganizationInvite", back_populates="organization", cascade="all, delete-orphan"
    )
    notification_preferences = relationship(
        "NotificationPreference", back_populates="organization", cascade="all, delete-orphan"
    )

    @validates("name")
    def validate_name(self, key, name):
        if not name or not name.strip():
            raise ValueError("Organization name is required")
        return name.strip()

    def creator_(self, user_id: int) -> bool:
        return self.created_by == user_id

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Organization(id={self.id}, name='{self.name}')>"


class OrganizationMember(Base):
    __tablename__ = "organization_members"
    __table_args__ = (
        UniqueConstraint("organization_id", "user_id", name="uq_organization_member"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(
        Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    role = Column(SQLEnum(OrgRole, values_callable=lambda e: [m.value for m in e]), nullable=False, default=OrgRole.USER)
    joined_at = Column(DateTime, default=utcnow)

    organization = relationship("Organization", back_populates="members")
    user = relationship("User", back_populates="memberships")

    def admin_(self) -> bool:
        return self.role == OrgRole.ADMIN

    def to_dict(self) -> Dict[str, Any]:
        return {
            "organization_id": self.organization_id,
            "user_id": self.user_id,
            "email": self.user.username if self.user else None,
            "name": self.user.name if self.user else None,
            "role": self.role.value,
            "joined_at": self.joined_at.isoformat() if self.joined_at else None,
        }
