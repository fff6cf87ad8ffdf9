"""
Organization and membership management.

Every operation is gated by the organization authorizer:
update needs admin, delete needs the creator, reads need membership.
The creator's membership is fixed as admin and cannot be removed.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from ..auth.permissions import OrganizationAuthorizer, OrgRequirement
from ..clock import utcnow
from ..errors import InsufficientPermissions, MemberNotFound, UserNotFound, ValidationError
from ..models.enums import OrgRole
from ..models.org import Organization, OrganizationMember
from ..repositories import (
    NotificationPreferenceRepository,
    OrganizationRepository,
    SQLAlchemyNotificationPreferenceRepository,
    SQLAlchemyOrganizationRepository,
    SQLAlchemyUserRepository,
    UserRepository,
)
from .common import parse_role, unit_of_work
from .notification_preference_service import NotificationPreferenceService

logger = logging.getLogger(__name__)


class OrganizationService:

    UPDATABLE_FIELDS = ("name", "description")

    def __init__(
        self,
        db: Session,
        organizations: Optional[OrganizationRepository] = None,
        users: Optional[UserRepository] = None,
        preferences: Optional[NotificationPreferenceRepository] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.organizations = organizations or SQLAlchemyOrganizationRepository(db)
        self.users = users or SQLAlchemyUserRepository(db)
        self.preferences = NotificationPreferenceService(
            db,
            preferences=preferences or SQLAlchemyNotificationPreferenceRepository(db),
            organizations=self.organizations,
        )
        self.authorizer = OrganizationAuthorizer(self.organizations)
        self.clock = clock

    def create_organization(self, name: str, description: Optional[str], caller_id: int) -> Organization:
        """Create the organization with the caller as its creator and first admin"""
        if self.users.get_by_id(caller_id) is None:
            raise UserNotFound()
        if not name or not name.strip():
            raise ValidationError("Organization name is required")

        now = self.clock()
        with unit_of_work(self.db):
            organization = self.organizations.create(
                Organization(name=name, description=description, created_by=caller_id, created_at=now)
            )
            self.organizations.add_member(
                OrganizationMember(
                    organization_id=organization.id,
                    user_id=caller_id,
                    role=OrgRole.ADMIN,
                    joined_at=now,
                )
            )
            self.preferences.seed_defaults(organization.id)

        logger.info(f"Organization {organization.id} created by user {caller_id}")
        return organization

    def get_organization(self, organization_id: int, caller_id: int) -> Organization:
        return self.authorizer.require(organization_id, caller_id, OrgRequirement.MEMBER)

    def update_organization(self, organization_id: int, patch: Dict[str, Any], caller_id: int) -> Organization:
        organization = self.authorizer.require(organization_id, caller_id, OrgRequirement.ADMIN)

        unknown = set(patch) - set(self.UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Cannot update field(s): {', '.join(sorted(unknown))}")
        if "name" in patch and (not patch["name"] or not str(patch["name"]).strip()):
            raise ValidationError("Organization name cannot be empty")

        with unit_of_work(self.db):
            for field, value in patch.items():
                setattr(organization, field, value)
            self.organizations.update(organization)
        return organization

    def delete_organization(self, organization_id: int, caller_id: int) -> None:
        organization = self.authorizer.require(organization_id, caller_id, OrgRequirement.CREATOR)
        with unit_of_work(self.db):
            self.users.clear_last_selected_organization(organization_id)
            self.organizations.delete(organization)
        logger.info(f"Organization {organization_id} deleted by user {caller_id}")

    def list_members(self, organization_id: int, caller_id: int) -> List[OrganizationMember]:
        self.authorizer.require(organization_id, caller_id, OrgRequirement.MEMBER)
        return self.organizations.list_members(organization_id)

    def update_member_role(
        self, organization_id: int, target_user_id: int, role, caller_id: int
    ) -> OrganizationMember:
        organization = self.authorizer.require(organization_id, caller_id, OrgRequirement.ADMIN)
        role = parse_role(role)

        member = self.organizations.get_member(organization_id, target_user_id)
        if member is None:
            raise MemberNotFound()

        if organization.creator_(target_user_id):
            if role is not OrgRole.ADMIN:
                raise InsufficientPermissions("The organization creator must remain an admin")
            return member

        if member.role is role:
            return member

        with unit_of_work(self.db):
            member.role = role
            self.organizations.update_member(member)
        logger.info(
            f"User {caller_id} set role of user {target_user_id} in organization {organization_id} to {role.value}"
        )
        return member

    def remove_member(self, organization_id: int, target_user_id: int, caller_id: int) -> None:
        organization = self.authorizer.require(organization_id, caller_id, OrgRequirement.ADMIN)
        if organization.creator_(target_user_id):
            raise InsufficientPermissions("The organization creator cannot be removed")

        member = self.organizations.get_member(organization_id, target_user_id)
        if member is None:
            raise MemberNotFound()

        self._drop_membership(member)
        logger.info(f"User {caller_id} removed user {target_user_id} from organization {organization_id}")

    def leave_organization(self, organization_id: int, caller_id: int) -> None:
        organization = self.authorizer.require(organization_id, caller_id, OrgRequirement.MEMBER)
        if organization.creator_(caller_id):
            raise InsufficientPermissions("The organization creator cannot leave the organization")

        member = self.organizations.get_member(organization_id, caller_id)
        if member is None:
            raise MemberNotFound()

        self._drop_membership(member)
        logger.info(f"User {caller_id} left organization {organization_id}")

    def list_user_organizations(self, caller_id: int) -> List[Dict[str, Any]]:
        return [
            {**membership.organization.to_dict(), "role": membership.role.value}
            for membership in self.organizations.list_user_memberships(caller_id)
        ]

    def _drop_membership(self, member: OrganizationMember) -> None:
        with unit_of_work(self.db):
            user = self.users.get_by_id(member.user_id)
            if user is not None and user.last_selected_organization_id == member.organization_id:
                user.last_selected_organization_id = None
                self.users.update(user)
            self.organizations.remove_member(member)
