"""
Organization, membership and invitation persistence.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from sqlalchemy.orm import Session, joinedload

from ..models.enums import InviteStatus, OrgRole
from ..models.invite import OrganizationInvite
from ..models.notification import Notification
from ..models.org import Organization, OrganizationMember


class OrganizationRepository(ABC):

    @abstractmethod
    def create(self, organization: Organization) -> Organization:
        ...

    @abstractmethod
    def get_by_id(self, organization_id: int) -> Optional[Organization]:
        ...

    @abstractmethod
    def update(self, organization: Organization) -> Organization:
        ...

    @abstractmethod
    def delete(self, organization: Organization) -> None:
        ...

    # Members

    @abstractmethod
    def add_member(self, member: OrganizationMember) -> OrganizationMember:
        ...

    @abstractmethod
    def get_member(self, organization_id: int, user_id: int) -> Optional[OrganizationMember]:
        ...

    @abstractmethod
    def list_members(self, organization_id: int) -> List[OrganizationMember]:
        ...

    @abstractmethod
    def list_admins(self, organization_id: int) -> List[OrganizationMember]:
        ...

    @abstractmethod
    def update_member(self, member: OrganizationMember) -> OrganizationMember:
        ...

    @abstractmethod
    def remove_member(self, member: OrganizationMember) -> None:
        ...

    @abstractmethod
    def list_user_memberships(self, user_id: int) -> List[OrganizationMember]:
        ...

    # Invites

    @abstractmethod
    def create_invite(self, invite: OrganizationInvite) -> OrganizationInvite:
        ...

    @abstractmethod
    def get_invite_by_id(self, invite_id: int, for_update: bool = False) -> Optional[OrganizationInvite]:
        ...

    @abstractmethod
    def get_invite_by_token(self, token: str, for_update: bool = False) -> Optional[OrganizationInvite]:
        ...

    @abstractmethod
    def get_pending_invite(self, organization_id: int, email: str) -> Optional[OrganizationInvite]:
        """Stored-pending invite for the pair, regardless of expiry."""

    @abstractmethod
    def list_invites(self, organization_id: int) -> List[OrganizationInvite]:
        ...

    @abstractmethod
    def update_invite(self, invite: OrganizationInvite) -> OrganizationInvite:
        ...


class SQLAlchemyOrganizationRepository(OrganizationRepository):

    def __init__(self, db: Session):
        self.db = db

    def create(self, organization: Organization) -> Organization:
        self.db.add(organization)
        self.db.flush()
        return organization

    def get_by_id(self, organization_id: int) -> Optional[Organization]:
        return self.db.get(Organization, organization_id)

    def update(self, organization: Organization) -> Organization:
        self.db.add(organization)
        self.db.flush()
        return organization

    def delete(self, organization: Organization) -> None:
        self.db.query(Notification).filter(
            Notification.organization_id == organization.id
        ).delete(synchronize_session="fetch")
        # members, invites and preferences go with the ORM cascade
        self.db.delete(organization)
        self.db.flush()

    def add_member(self, member: OrganizationMember) -> OrganizationMember:
        self.db.add(member)
        self.db.flush()
        return member

    def get_member(self, organization_id: int, user_id: int) -> Optional[OrganizationMember]:
        return self.db.query(OrganizationMember).filter(
            OrganizationMember.organization_id == organization_id,
            OrganizationMember.user_id == user_id,
        ).first()

    def list_members(self, organization_id: int) -> List[OrganizationMember]:
        return (
            self.db.query(OrganizationMember)
            .options(joinedload(OrganizationMember.user))
            .filter(OrganizationMember.organization_id == organization_id)
            .order_by(OrganizationMember.joined_at, OrganizationMember.id)
            .all()
        )

    def list_admins(self, organization_id: int) -> List[OrganizationMember]:
        return self.db.query(OrganizationMember).filter(
            OrganizationMember.organization_id == organization_id,
            OrganizationMember.role == OrgRole.ADMIN,
        ).all()

    def update_member(self, member: OrganizationMember) -> OrganizationMember:
        self.db.add(member)
        self.db.flush()
        return member

    def remove_member(self, member: OrganizationMember) -> None:
        self.db.delete(member)
        self.db.flush()

    def list_user_memberships(self, user_id: int) -> List[OrganizationMember]:
        return (
            self.db.query(OrganizationMember)
            .options(joinedload(OrganizationMember.organization))
            .filter(OrganizationMember.user_id == user_id)
            .order_by(OrganizationMember.joined_at, OrganizationMember.id)
            .all()
        )

    def create_invite(self, invite: OrganizationInvite) -> OrganizationInvite:
        self.db.add(invite)
        self.db.flush()
        return invite

    def get_invite_by_id(self, invite_id: int, for_update: bool = False) -> Optional[OrganizationInvite]:
        if not for_update:
            return self.db.get(OrganizationInvite, invite_id)
        return (
            self.db.query(OrganizationInvite)
            .filter(OrganizationInvite.id == invite_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def get_invite_by_token(self, token: str, for_update: bool = False) -> Optional[OrganizationInvite]:
        query = self.db.query(OrganizationInvite).filter(OrganizationInvite.token == token)
        if for_update:
            query = query.with_for_update().populate_existing()
        return query.first()

    def get_pending_invite(self, organization_id: int, email: str) -> Optional[OrganizationInvite]:
        return self.db.query(OrganizationInvite).filter(
            OrganizationInvite.organization_id == organization_id,
            OrganizationInvite.email == email.strip().lower(),
            OrganizationInvite.status == InviteStatus.PENDING,
        ).first()

    def list_invites(self, organization_id: int) -> List[OrganizationInvite]:
        return (
            self.db.query(OrganizationInvite)
            .filter(OrganizationInvite.organization_id == organization_id)
            .order_by(OrganizationInvite.created_at.desc(), OrganizationInvite.id.desc())
            .all()
        )

    def update_invite(self, invite: OrganizationInvite) -> OrganizationInvite:
        self.db.add(invite)
        self.db.flush()
        return invite
