"""
Organization invitation lifecycle.

    pending -> accepted   (invitee accepts with a matching account)
    pending -> revoked    (admin)
    pending -> expired    (observed lazily once expires_at has passed)

Expiry is never swept; validate and accept compute the effective status
at read time. Resend regenerates the token and pushes expiry forward while
the invite stays pending.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..auth.permissions import OrganizationAuthorizer, OrgRequirement
from ..clock import utcnow
from ..config import Settings
from ..errors import (
    ConflictAlreadyMember,
    ConflictAlreadyPending,
    ConflictEmailMismatch,
    Gone,
    InvitationNotFound,
    UserNotFound,
    ValidationError,
)
from ..models.enums import InviteStatus
from ..models.invite import OrganizationInvite
from ..models.org import OrganizationMember
from ..repositories import (
    OrganizationRepository,
    SQLAlchemyOrganizationRepository,
    SQLAlchemyUserRepository,
    UserRepository,
)
from .common import normalize_email, parse_role, unit_of_work
from .mail_dispatcher import MailDispatcher
from .notification_service import NotificationService

logger = logging.getLogger(__name__)


class InvitationService:

    def __init__(
        self,
        db: Session,
        settings: Settings,
        mailer: MailDispatcher,
        organizations: Optional[OrganizationRepository] = None,
        users: Optional[UserRepository] = None,
        notifications: Optional[NotificationService] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.settings = settings
        self.mailer = mailer
        self.organizations = organizations or SQLAlchemyOrganizationRepository(db)
        self.users = users or SQLAlchemyUserRepository(db)
        self.notifications = notifications or NotificationService(
            db, organizations=self.organizations, users=self.users, clock=clock
        )
        self.authorizer = OrganizationAuthorizer(self.organizations)
        self.clock = clock
        self.expiration = timedelta(days=settings.INVITE_EXPIRATION_DAYS)

    def invite(
        self, organization_id: int, email: str, role, inviter_id: int, now: Optional[datetime] = None
    ) -> OrganizationInvite:
        now = now or self.clock()
        organization = self.authorizer.require(organization_id, inviter_id, OrgRequirement.ADMIN)
        email = normalize_email(email)
        role = parse_role(role)

        existing_user = self.users.get_by_username(email)
        if existing_user is not None and self.organizations.get_member(organization_id, existing_user.id):
            raise ConflictAlreadyMember()

        with unit_of_work(self.db):
            pending = self.organizations.get_pending_invite(organization_id, email)
            if pending is not None:
                if not pending.expired_(now):
                    raise ConflictAlreadyPending()
                # Persist the lapse so only one pending invite exists for the pair
                pending.expire_()
                self.organizations.update_invite(pending)

            invite = self.organizations.create_invite(
                OrganizationInvite(
                    organization_id=organization_id,
                    email=email,
                    role=role,
                    invited_by=inviter_id,
                    token=OrganizationInvite.generate_token(),
                    status=InviteStatus.PENDING,
                    expires_at=now + self.expiration,
                    created_at=now,
                )
            )

        logger.info(f"User {inviter_id} invited a new member to organization {organization_id}")
        self._send_invite_email(invite, organization.name, inviter_id)
        return invite

    def validate(self, token: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Describe an actionable invite without requiring authentication"""
        now = now or self.clock()
        invite = self._find_by_token(token)
        if invite.effective_status(now) is not InviteStatus.PENDING:
            raise Gone()

        return {
            "valid": True,
            "email": invite.email,
            "user_exists": self.users.get_by_username(invite.email) is not None,
            "organization": {"id": invite.organization.id, "name": invite.organization.name},
            "role": invite.role.value,
            "expires_at": invite.expires_at.isoformat(),
        }

    def accept(self, token: str, caller_id: int, now: Optional[datetime] = None) -> OrganizationMember:
        """Join the organization; member creation and invite status change commit together"""
        now = now or self.clock()
        try:
            with unit_of_work(self.db):
                invite = self._find_by_token(token, for_update=True)
                if invite.effective_status(now) is not InviteStatus.PENDING:
                    raise Gone()

                user = self.users.get_by_id(caller_id)
                if user is None:
                    raise UserNotFound()
                if user.username.strip().lower() != invite.email:
                    raise ConflictEmailMismatch()
                if self.organizations.get_member(invite.organization_id, caller_id) is not None:
                    raise ConflictAlreadyMember()

                member = self.organizations.add_member(
                    OrganizationMember(
                        organization_id=invite.organization_id,
                        user_id=caller_id,
                        role=invite.role,
                        joined_at=now,
                    )
                )
                invite.accept_(now)
                self.organizations.update_invite(invite)
        except IntegrityError:
            raise ConflictAlreadyMember()
        except StaleDataError:
            raise Gone()

        organization_id = member.organization_id
        logger.info(f"User {caller_id} accepted invite {invite.id} to organization {organization_id}")
        self._notify_member_joined(organization_id, caller_id)
        return member

    def revoke(self, invite_id: int, caller_id: int, now: Optional[datetime] = None) -> OrganizationInvite:
        now = now or self.clock()
        invite = self._find_by_id(invite_id)
        self.authorizer.require(invite.organization_id, caller_id, OrgRequirement.ADMIN)

        message = "Only pending invitations can be revoked"
        try:
            with unit_of_work(self.db):
                invite = self._find_pending_for_update(invite_id, now, message)
                invite.revoke_(now)
                self.organizations.update_invite(invite)
        except StaleDataError:
            raise ValidationError(message)
        logger.info(f"User {caller_id} revoked invite {invite_id}")
        return invite

    def resend(self, invite_id: int, caller_id: int, now: Optional[datetime] = None) -> OrganizationInvite:
        now = now or self.clock()
        invite = self._find_by_id(invite_id)
        organization = self.authorizer.require(invite.organization_id, caller_id, OrgRequirement.ADMIN)

        message = "Cannot resend non-pending invitation"
        try:
            with unit_of_work(self.db):
                invite = self._find_pending_for_update(invite_id, now, message)
                invite.regenerate_(now, self.expiration)
                self.organizations.update_invite(invite)
        except StaleDataError:
            raise ValidationError(message)

        logger.info(f"User {caller_id} resent invite {invite_id}")
        self._send_invite_email(invite, organization.name, caller_id)
        return invite

    def list_invites(self, organization_id: int, caller_id: int) -> List[OrganizationInvite]:
        self.authorizer.require(organization_id, caller_id, OrgRequirement.ADMIN)
        return self.organizations.list_invites(organization_id)

    def _find_by_token(self, token: str, for_update: bool = False) -> OrganizationInvite:
        invite = self.organizations.get_invite_by_token(token, for_update=for_update) if token else None
        if invite is None:
            raise InvitationNotFound()
        return invite

    def _find_by_id(self, invite_id: int) -> OrganizationInvite:
        invite = self.organizations.get_invite_by_id(invite_id)
        if invite is None:
            raise InvitationNotFound()
        return invite

    def _find_pending_for_update(self, invite_id: int, now: datetime, message: str) -> OrganizationInvite:
        invite = self.organizations.get_invite_by_id(invite_id, for_update=True)
        if invite is None:
            raise InvitationNotFound()
        if invite.effective_status(now) is not InviteStatus.PENDING:
            raise ValidationError(message)
        return invite

    def _send_invite_email(self, invite: OrganizationInvite, organization_name: str, inviter_id: int) -> None:
        inviter = self.users.get_by_id(inviter_id)
        inviter_name = (inviter.name or inviter.username) if inviter else "A team member"
        self.mailer.organization_invite(invite.email, organization_name, inviter_name, invite.token)

    def _notify_member_joined(self, organization_id: int, user_id: int) -> None:
        try:
            self.notifications.notify_member_joined(organization_id, user_id)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.warning(f"Failed to notify admins of organization {organization_id}: {exc}")
