from datetime import datetime
from typing import Optional

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from ..clock import utcnow
from ..database import Base


class PasswordResetToken(Base):
    """Single-use reset token; only the sha256 digest of the raw token is stored."""

    __tablename__ = "password_reset_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token_digest = Column(String(64), unique=True, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    used_at = Column(DateTime)
    created_at = Column(DateTime, default=utcnow)
    version_id = Column(Integer, nullable=False)

    user = relationship("User")

    __mapper_args__ = {"version_id_col": version_id}

    def used_(self) -> bool:
        return self.used_at is not None

    def expired_(self, now: Optional[datetime] = None) -> bool:
        now = now or utcnow()
        return self.expires_at <= now

    def valid_(self, now: Optional[datetime] = None) -> bool:
        return not self.expired_(now) and not self.used_()
