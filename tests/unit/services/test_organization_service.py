"""
Tests for organization management and member role rules.
"""
import pytest

from tenant_admin.errors import (
    InsufficientPermissions,
    MemberNotFound,
    OrganizationNotFound,
    UserNotFound,
    ValidationError,
)
from tenant_admin.models.enums import NotificationEvent, OrgRole
from tenant_admin.models.invite import OrganizationInvite
from tenant_admin.models.notification_preference import NotificationPreference
from tenant_admin.models.org import Organization, OrganizationMember
from tenant_admin.services.organization_service import OrganizationService
from tests.factories import OrganizationInviteFactory, add_member, create_organization, create_user


@pytest.fixture
def org_service(db_session, clock):
    return OrganizationService(db_session, clock=clock)


@pytest.mark.unit
@pytest.mark.services
class TestCreateOrganization:

    def test_creator_becomes_admin_member(self, db_session, org_service):
        creator = create_user(db=db_session)

        organization = org_service.create_organization("Acme", "Rockets", creator.id)

        assert organization.created_by == creator.id
        members = org_service.list_members(organization.id, creator.id)
        assert [(m.user_id, m.role) for m in members] == [(creator.id, OrgRole.ADMIN)]

    def test_default_preferences_seeded(self, db_session, org_service):
        creator = create_user(db=db_session)
        organization = org_service.create_organization("Acme", None, creator.id)

        preferences = db_session.query(NotificationPreference).filter_by(organization_id=organization.id).all()
        assert {p.event_type for p in preferences} == set(NotificationEvent)
        assert all(p.enabled for p in preferences)

    def test_unknown_creator(self, org_service):
        with pytest.raises(UserNotFound):
            org_service.create_organization("Acme", None, 999)

    def test_blank_name_rejected(self, db_session, org_service):
        creator = create_user(db=db_session)
        with pytest.raises(ValidationError):
            org_service.create_organization("   ", None, creator.id)


@pytest.mark.unit
@pytest.mark.services
class TestUpdateAndDeleteOrganization:

    def test_admin_can_update(self, db_session, org_service):
        organization = create_organization(db=db_session)
        admin = add_member(db=db_session, organization=organization, role=OrgRole.ADMIN).user

        updated = org_service.update_organization(organization.id, {"name": "Renamed"}, admin.id)

        assert updated.name == "Renamed"

    def test_plain_member_cannot_update(self, db_session, org_service):
        organization = create_organization(db=db_session)
        member = add_member(db=db_session, organization=organization).user

        with pytest.raises(InsufficientPermissions):
            org_service.update_organization(organization.id, {"name": "Nope"}, member.id)

    def test_unknown_fields_rejected(self, db_session, org_service):
        organization = create_organization(db=db_session)
        with pytest.raises(ValidationError):
            org_service.update_organization(organization.id, {"created_by": 5}, organization.created_by)

    def test_only_creator_can_delete(self, db_session, org_service):
        organization = create_organization(db=db_session)
        admin = add_member(db=db_session, organization=organization, role=OrgRole.ADMIN).user

        with pytest.raises(InsufficientPermissions):
            org_service.delete_organization(organization.id, admin.id)

    def test_delete_cascades_and_clears_selection(self, db_session, org_service):
        organization = create_organization(db=db_session)
        member = add_member(db=db_session, organization=organization).user
        member.last_selected_organization_id = organization.id
        db_session.commit()
        OrganizationInviteFactory(organization=organization)
        organization_id = organization.id

        org_service.delete_organization(organization_id, organization.created_by)

        assert db_session.get(Organization, organization_id) is None
        assert db_session.query(OrganizationMember).filter_by(organization_id=organization_id).count() == 0
        assert db_session.query(OrganizationInvite).filter_by(organization_id=organization_id).count() == 0
        db_session.refresh(member)
        assert member.last_selected_organization_id is None

    def test_missing_organization(self, db_session, org_service):
        user = create_user(db=db_session)
        with pytest.raises(OrganizationNotFound):
            org_service.delete_organization(404, user.id)


@pytest.mark.unit
@pytest.mark.services
class TestMembers:

    def test_members_listed_for_members_only(self, db_session, org_service):
        organization = create_organization(db=db_session)
        member = add_member(db=db_session, organization=organization).user
        outsider = create_user(db=db_session)

        assert len(org_service.list_members(organization.id, member.id)) == 2
        with pytest.raises(InsufficientPermissions):
            org_service.list_members(organization.id, outsider.id)

    def test_admin_changes_member_role(self, db_session, org_service):
        organization = create_organization(db=db_session)
        member = add_member(db=db_session, organization=organization).user

        updated = org_service.update_member_role(organization.id, member.id, "admin", organization.created_by)

        assert updated.role is OrgRole.ADMIN

    def test_invalid_role_rejected(self, db_session, org_service):
        organization = create_organization(db=db_session)
        member = add_member(db=db_session, organization=organization).user

        with pytest.raises(ValidationError):
            org_service.update_member_role(organization.id, member.id, "owner", organization.created_by)

    def test_creator_cannot_be_demoted(self, db_session, org_service):
        organization = create_organization(db=db_session)
        admin = add_member(db=db_session, organization=organization, role=OrgRole.ADMIN).user

        with pytest.raises(InsufficientPermissions):
            org_service.update_member_role(organization.id, organization.created_by, OrgRole.USER, admin.id)
        with pytest.raises(InsufficientPermissions):
            org_service.update_member_role(
                organization.id, organization.created_by, OrgRole.USER, organization.created_by
            )

        membership = db_session.query(OrganizationMember).filter_by(
            organization_id=organization.id, user_id=organization.created_by
        ).one()
        assert membership.role is OrgRole.ADMIN

    def test_creator_admin_reassertion_is_noop(self, db_session, org_service):
        organization = create_organization(db=db_session)
        member = org_service.update_member_role(
            organization.id, organization.created_by, OrgRole.ADMIN, organization.created_by
        )
        assert member.role is OrgRole.ADMIN

    def test_plain_member_cannot_change_roles(self, db_session, org_service):
        organization = create_organization(db=db_session)
        member = add_member(db=db_session, organization=organization).user
        other = add_member(db=db_session, organization=organization).user

        with pytest.raises(InsufficientPermissions):
            org_service.update_member_role(organization.id, other.id, OrgRole.ADMIN, member.id)

    def test_role_change_for_non_member(self, db_session, org_service):
        organization = create_organization(db=db_session)
        outsider = create_user(db=db_session)

        with pytest.raises(MemberNotFound):
            org_service.update_member_role(organization.id, outsider.id, OrgRole.ADMIN, organization.created_by)

    def test_admin_removes_member(self, db_session, org_service):
        organization = create_organization(db=db_session)
        member = add_member(db=db_session, organization=organization).user

        org_service.remove_member(organization.id, member.id, organization.created_by)

        assert db_session.query(OrganizationMember).filter_by(
            organization_id=organization.id, user_id=member.id
        ).count() == 0

    def test_creator_cannot_be_removed(self, db_session, org_service):
        organization = create_organization(db=db_session)
        admin = add_member(db=db_session, organization=organization, role=OrgRole.ADMIN).user

        for caller_id in (admin.id, organization.created_by):
            with pytest.raises(InsufficientPermissions):
                org_service.remove_member(organization.id, organization.created_by, caller_id)

    def test_remove_missing_member(self, db_session, org_service):
        organization = create_organization(db=db_session)
        with pytest.raises(MemberNotFound):
            org_service.remove_member(organization.id, 777, organization.created_by)

    def test_member_can_leave(self, db_session, org_service):
        organization = create_organization(db=db_session)
        member = add_member(db=db_session, organization=organization).user

        org_service.leave_organization(organization.id, member.id)

        with pytest.raises(InsufficientPermissions):
            org_service.list_members(organization.id, member.id)

    def test_creator_cannot_leave(self, db_session, org_service):
        organization = create_organization(db=db_session)
        with pytest.raises(InsufficientPermissions):
            org_service.leave_organization(organization.id, organization.created_by)

    def test_list_user_organizations(self, db_session, org_service):
        user = create_user(db=db_session)
        own = org_service.create_organization("Own", None, user.id)
        other = create_organization(db=db_session, name="Other")
        add_member(db=db_session, organization=other, user=user)

        organizations = org_service.list_user_organizations(user.id)

        assert {(o["id"], o["role"]) for o in organizations} == {(own.id, "admin"), (other.id, "user")}
