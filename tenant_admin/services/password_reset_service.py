"""
Password reset token lifecycle.
"""

import hashlib
import logging
import secrets
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..auth.jwt_auth import PasswordHasher, PasswordPolicy
from ..clock import utcnow
from ..config import Settings
from ..errors import TokenInvalidOrExpired, UserNotFound
from ..models.enums import LoginAttemptType
from ..models.password_reset import PasswordResetToken
from ..models.user_login_audit import UserLoginAudit
from ..repositories import (
    LoginAuditRepository,
    PasswordResetRepository,
    SQLAlchemyLoginAuditRepository,
    SQLAlchemyPasswordResetRepository,
    SQLAlchemyUserRepository,
    UserRepository,
)
from .common import unit_of_work
from .mail_dispatcher import MailDispatcher

logger = logging.getLogger(__name__)


def digest_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class PasswordResetService:

    TOKEN_BYTES = 32

    def __init__(
        self,
        db: Session,
        settings: Settings,
        mailer: MailDispatcher,
        users: Optional[UserRepository] = None,
        tokens: Optional[PasswordResetRepository] = None,
        audits: Optional[LoginAuditRepository] = None,
        hasher: Optional[PasswordHasher] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.settings = settings
        self.mailer = mailer
        self.users = users or SQLAlchemyUserRepository(db)
        self.tokens = tokens or SQLAlchemyPasswordResetRepository(db)
        self.audits = audits or SQLAlchemyLoginAuditRepository(db)
        self.hasher = hasher or PasswordHasher.from_settings(settings)
        self.clock = clock
        self.token_lifetime = timedelta(minutes=settings.PASSWORD_RESET_TOKEN_EXPIRE_MINUTES)

    def request_reset(self, email: str, now: Optional[datetime] = None) -> None:
        """
        Issue a reset token for the account, replacing any earlier one.

        Returns None whether or not the account exists.
        """
        now = now or self.clock()
        email = (email or "").strip().lower()

        with unit_of_work(self.db):
            user = self.users.get_by_username_for_update(email) if email else None
            if user is None:
                logger.info("Password reset requested for unknown account")
                return None

            self.tokens.delete_user_tokens(user.id)
            raw_token = secrets.token_hex(self.TOKEN_BYTES)
            self.tokens.create(
                PasswordResetToken(
                    user_id=user.id,
                    token_digest=digest_token(raw_token),
                    expires_at=now + self.token_lifetime,
                    created_at=now,
                )
            )
            recipient = user.username
            user_id = user.id

        logger.info(f"Password reset token issued for user {user_id}")
        self.mailer.password_reset(recipient, raw_token)
        return None

    def confirm_reset(self, token: str, new_password: str, now: Optional[datetime] = None) -> None:
        now = now or self.clock()
        PasswordPolicy.validate(new_password)

        if not token:
            raise TokenInvalidOrExpired()
        password_digest = self.hasher.hash_password(new_password)

        with unit_of_work(self.db):
            reset = self.tokens.get_by_digest(digest_token(token), for_update=True)
            if reset is None or not reset.valid_(now):
                raise TokenInvalidOrExpired()

            user = self.users.get_by_id_for_update(reset.user_id)
            if user is None:
                raise UserNotFound()
            user_id = user.id

            self.users.update_password(user_id, password_digest, now)
            self.audits.record(
                UserLoginAudit(
                    user_id=user_id,
                    email_attempted=user.username,
                    attempt_type=LoginAttemptType.PASSWORD_RESET,
                    created_at=now,
                )
            )

            try:
                with self.db.begin_nested():
                    self.tokens.mark_used(reset, now)
            except StaleDataError:
                # Another confirm consumed the token after our read
                raise TokenInvalidOrExpired()
            except SQLAlchemyError as exc:
                # Only the savepoint is rolled back; the token still expires on its own
                logger.warning(f"Could not mark reset token used for user {user_id}: {exc}")

        logger.info(f"Password reset completed for user {user_id}")

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        now = now or self.clock()
        with unit_of_work(self.db):
            removed = self.tokens.delete_expired(now)
        if removed:
            logger.info(f"Purged {removed} expired password reset token(s)")
        return removed
