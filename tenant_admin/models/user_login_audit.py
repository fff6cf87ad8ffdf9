from sqlalchemy import Column, DateTime, Enum as SQLEnum, ForeignKey, Integer, String, Text

from ..clock import utcnow
from ..database import Base
from .enums import LoginAttemptType


class UserLoginAudit(Base):
    """One row per authentication attempt against an email."""

    __tablename__ = "user_login_audits"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), index=True)
    email_attempted = Column(String(254), nullable=False)
    attempt_type = Column(
        SQLEnum(LoginAttemptType, values_callable=lambda e: [m.value for m in e]), nullable=False
    )
    ip_address = Column(String(45))  # IPv6 max length
    user_agent = Column(Text)
    failure_reason = Column(String(255))
    created_at = Column(DateTime, default=utcnow, nullable=False)
