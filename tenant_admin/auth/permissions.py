"""
Organization authorization engine.

Each organization operation declares an OrgRequirement; the authorizer
evaluates it against the caller's membership row. The organization creator
always satisfies every requirement.
"""

from enum import Enum
from typing import Optional

from ..errors import InsufficientPermissions, OrganizationNotFound
from ..models.org import Organization, OrganizationMember
from ..repositories.organization_repository import OrganizationRepository


class OrgRequirement(Enum):
    MEMBER = "member"
    ADMIN = "admin"
    CREATOR = "creator"


class OrganizationAuthorizer:

    def __init__(self, organizations: OrganizationRepository):
        self.organizations = organizations

    def satisfies(
        self,
        organization: Organization,
        membership: Optional[OrganizationMember],
        user_id: int,
        requirement: OrgRequirement,
    ) -> bool:
        if requirement is OrgRequirement.CREATOR:
            return organization.creator_(user_id)
        if requirement is OrgRequirement.ADMIN:
            return organization.creator_(user_id) or (membership is not None and membership.admin_())
        if requirement is OrgRequirement.MEMBER:
            return organization.creator_(user_id) or membership is not None
        raise ValueError(f"Unhandled requirement: {requirement}")

    def require(self, organization_id: int, user_id: int, requirement: OrgRequirement) -> Organization:
        """Load the organization and enforce the requirement for the caller"""
        organization = self.organizations.get_by_id(organization_id)
        if organization is None:
            raise OrganizationNotFound()
        membership = self.organizations.get_member(organization_id, user_id)
        if not self.satisfies(organization, membership, user_id, requirement):
            raise InsufficientPermissions(
                f"This action requires the organization {requirement.value} role"
            )
        return organization
