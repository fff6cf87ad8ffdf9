from typing import Any, Dict

from sqlalchemy import Boolean, Column, DateTime, Enum as SQLEnum, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship

from ..clock import utcnow
from ..database import Base
from .enums import NotificationEvent


class NotificationPreference(Base):
    """Event toggle for an organization; a row with user_id set is that user's override."""

    __tablename__ = "notification_preferences"
    __table_args__ = (
        UniqueConstraint("organization_id", "user_id", "event_type", name="uq_notification_preference"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(
        Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"))
    event_type = Column(
        SQLEnum(NotificationEvent, values_callable=lambda e: [m.value for m in e]), nullable=False
    )
    enabled = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    organization = relationship("Organization", back_populates="notification_preferences")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": self.event_type.value,
            "description": self.event_type.description,
            "enabled": self.enabled,
            "user_id": self.user_id,
        }
