from typing import Any, Dict

from sqlalchemy import JSON, Boolean, Column, DateTime, Enum as SQLEnum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from ..clock import utcnow
from ..database import Base
from .enums import NotificationType


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"))
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(
        SQLEnum(NotificationType, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=NotificationType.INFO,
    )
    read = Column(Boolean, nullable=False, default=False)
    read_at = Column(DateTime)
    data = Column(JSON)

    created_at = Column(DateTime, default=utcnow)

    user = relationship("User")

    def mark_read_(self, now) -> None:
        self.read = True
        self.read_at = now

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "title": self.title,
            "message": self.message,
            "type": self.type.value,
            "read": self.read,
            "read_at": self.read_at.isoformat() if self.read_at else None,
            "data": self.data,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
