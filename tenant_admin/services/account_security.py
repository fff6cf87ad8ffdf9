"""
Account security engine: credential verification with progressive lockout,
registration and token issuance.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth.jwt_auth import PasswordHasher, PasswordPolicy, TokenIssuer
from ..clock import utcnow
from ..config import Settings
from ..errors import (
    AccountLocked,
    InsufficientPermissions,
    InvalidCredentials,
    OrganizationNotFound,
    UserAlreadyExists,
    UserNotFound,
    ValidationError,
)
from ..models.enums import LoginAttemptType
from ..models.user import User
from ..models.user_login_audit import UserLoginAudit
from ..repositories import (
    LoginAuditRepository,
    OrganizationRepository,
    SQLAlchemyLoginAuditRepository,
    SQLAlchemyOrganizationRepository,
    SQLAlchemyUserRepository,
    UserRepository,
)
from .common import normalize_email, unit_of_work

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthResult:
    user: User
    token: str

    def to_dict(self):
        return {"token": self.token, "user": self.user.to_dict()}


class AuthService:
    """Authenticates users and tracks failed attempts"""

    def __init__(
        self,
        db: Session,
        settings: Settings,
        users: Optional[UserRepository] = None,
        audits: Optional[LoginAuditRepository] = None,
        organizations: Optional[OrganizationRepository] = None,
        hasher: Optional[PasswordHasher] = None,
        issuer: Optional[TokenIssuer] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.settings = settings
        self.users = users or SQLAlchemyUserRepository(db)
        self.audits = audits or SQLAlchemyLoginAuditRepository(db)
        self.organizations = organizations or SQLAlchemyOrganizationRepository(db)
        self.hasher = hasher or PasswordHasher.from_settings(settings)
        self.issuer = issuer or TokenIssuer(settings)
        self.clock = clock
        self.max_attempts = settings.MAX_LOGIN_ATTEMPTS
        self.lockout_duration = timedelta(minutes=settings.ACCOUNT_LOCKOUT_MINUTES)
        self._dummy_digest = None

    def authenticate(
        self,
        email: str,
        password: str,
        client_ip: Optional[str] = None,
        user_agent: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> AuthResult:
        """
        Verify credentials for the account identified by email.

        Unknown accounts and wrong passwords both raise InvalidCredentials.
        A locked account raises AccountLocked without counting the attempt.
        The counter update and the audit row are written in one transaction
        while the user row is locked.
        """
        now = now or self.clock()
        email = (email or "").strip().lower()
        failure = None

        with unit_of_work(self.db):
            user = self.users.get_by_username_for_update(email) if email else None

            if user is None:
                # Equalise work with the known-account path
                self.hasher.verify_password(password or "", self._dummy_hash())
                self._audit(None, email, LoginAttemptType.FAILURE, client_ip, user_agent, "unknown_account", now)
                failure = InvalidCredentials()

            elif user.locked_(now):
                self._audit(user.id, email, LoginAttemptType.LOCKED_OUT, client_ip, user_agent, "account_locked", now)
                logger.info(f"Login attempt for locked user {user.id}")
                failure = AccountLocked(remaining=user.remaining_lock_time(now))

            elif not self.hasher.verify_password(password or "", user.password_digest):
                locked_now = user.record_failed_login_(now, self.max_attempts, self.lockout_duration)
                attempt = LoginAttemptType.LOCKOUT if locked_now else LoginAttemptType.FAILURE
                self._audit(user.id, email, attempt, client_ip, user_agent, "invalid_password", now)
                if locked_now:
                    logger.warning(
                        f"User {user.id} locked until {user.locked_until.isoformat()} "
                        f"after {user.failed_login_attempts} failed attempts"
                    )
                failure = InvalidCredentials()

            else:
                user.record_successful_login_(now)
                self._audit(user.id, email, LoginAttemptType.SUCCESS, client_ip, user_agent, None, now)

        if failure is not None:
            raise failure

        token = self.issuer.issue(user.id)
        logger.info(f"User {user.id} authenticated")
        return AuthResult(user=user, token=token)

    def register(self, email: str, name: str, password: str) -> AuthResult:
        email = normalize_email(email)
        if not name or not name.strip():
            raise ValidationError("Name is required")
        PasswordPolicy.validate(password)

        if self.users.get_by_username(email) is not None:
            raise UserAlreadyExists()

        try:
            with unit_of_work(self.db):
                user = self.users.create(
                    User(
                        username=email,
                        name=name.strip(),
                        password_digest=self.hasher.hash_password(password),
                        failed_login_attempts=0,
                    )
                )
        except IntegrityError:
            raise UserAlreadyExists()

        logger.info(f"Registered user {user.id}")
        return AuthResult(user=user, token=self.issuer.issue(user.id))

    def update_last_selected_organization(self, user_id: int, organization_id: Optional[int]) -> User:
        """Remember the organization the user last worked in; None clears it"""
        user = self.users.get_by_id(user_id)
        if user is None:
            raise UserNotFound()

        if organization_id is not None:
            organization = self.organizations.get_by_id(organization_id)
            if organization is None:
                raise OrganizationNotFound()
            if not organization.creator_(user_id) and self.organizations.get_member(organization_id, user_id) is None:
                raise InsufficientPermissions("You are not a member of this organization")

        with unit_of_work(self.db):
            user.last_selected_organization_id = organization_id
            self.users.update(user)
        return user

    def _audit(self, user_id, email, attempt_type, client_ip, user_agent, reason, now) -> None:
        self.audits.record(
            UserLoginAudit(
                user_id=user_id,
                email_attempted=email[:254],
                attempt_type=attempt_type,
                ip_address=client_ip[:45] if client_ip else None,
                user_agent=user_agent,
                failure_reason=reason,
                created_at=now,
            )
        )

    def _dummy_hash(self) -> str:
        if self._dummy_digest is None:
            self._dummy_digest = self.hasher.hash_password("unused-Dummy-passw0rd!")
        return self._dummy_digest
