"""
Tests for notification preferences and in-app notifications.
"""
import pytest

from tenant_admin.errors import InsufficientPermissions, NotificationNotFound, ValidationError
from tenant_admin.models.enums import NotificationEvent, NotificationType, OrgRole
from tenant_admin.services.notification_preference_service import NotificationPreferenceService
from tenant_admin.services.notification_service import NotificationService
from tenant_admin.services.organization_service import OrganizationService
from tests.factories import add_member, create_organization, create_user


@pytest.fixture
def preference_service(db_session):
    return NotificationPreferenceService(db_session)


@pytest.fixture
def notification_service(db_session, clock):
    return NotificationService(db_session, clock=clock)


@pytest.mark.unit
@pytest.mark.services
class TestNotificationPreferences:

    def test_available_events_cover_every_event(self):
        events = NotificationPreferenceService.available_events()
        assert [e["event_type"] for e in events] == [e.value for e in NotificationEvent]
        assert all(e["description"] for e in events)

    def test_defaults_seeded_lazily(self, db_session, preference_service):
        organization = create_organization(db=db_session)

        preferences = preference_service.get_organization_preferences(organization.id, organization.created_by)

        assert len(preferences) == len(NotificationEvent)
        assert all(p["enabled"] for p in preferences)

    def test_admin_bulk_update_and_reset(self, db_session, preference_service):
        organization = create_organization(db=db_session)
        caller = organization.created_by

        preference_service.update_organization_preferences(
            organization.id,
            [{"event_type": "member_joined", "enabled": False}, {"event_type": "invitation_sent", "enabled": False}],
            caller,
        )
        assert preference_service.is_event_enabled(organization.id, "member_joined") is False
        assert preference_service.is_event_enabled(organization.id, "member_left") is True

        preference_service.reset_to_defaults(organization.id, caller)
        assert preference_service.is_event_enabled(organization.id, "member_joined") is True

    def test_members_cannot_change_organization_preferences(self, db_session, preference_service):
        organization = create_organization(db=db_session)
        member = add_member(db=db_session, organization=organization).user

        with pytest.raises(InsufficientPermissions):
            preference_service.update_organization_preferences(
                organization.id, [{"event_type": "member_joined", "enabled": False}], member.id
            )

    def test_unknown_event_rejected(self, db_session, preference_service):
        organization = create_organization(db=db_session)
        with pytest.raises(ValidationError):
            preference_service.update_organization_preferences(
                organization.id, [{"event_type": "birthday", "enabled": True}], organization.created_by
            )

    def test_user_override_wins_over_organization_setting(self, db_session, preference_service):
        organization = create_organization(db=db_session)
        member = add_member(db=db_session, organization=organization).user
        preference_service.update_organization_preferences(
            organization.id, [{"event_type": "member_joined", "enabled": False}], organization.created_by
        )

        preference_service.set_user_preference(organization.id, "member_joined", True, member.id)

        assert preference_service.is_event_enabled(organization.id, "member_joined", member.id) is True
        assert preference_service.is_event_enabled(organization.id, "member_joined", organization.created_by) is False
        effective = {p["event_type"]: p["enabled"] for p in preference_service.get_user_preferences(organization.id, member.id)}
        assert effective["member_joined"] is True

    def test_missing_preference_means_enabled(self, db_session, preference_service):
        organization = create_organization(db=db_session)
        assert preference_service.is_event_enabled(organization.id, NotificationEvent.ORGANIZATION_UPDATE) is True


@pytest.mark.unit
@pytest.mark.services
class TestNotifications:

    def test_member_joined_skips_new_member_and_non_admins(self, db_session, notification_service):
        organization = create_organization(db=db_session)
        plain = add_member(db=db_session, organization=organization).user
        newcomer = add_member(db=db_session, organization=organization, role=OrgRole.ADMIN).user

        notified = notification_service.notify_member_joined(organization.id, newcomer.id)

        assert notified == 1
        assert notification_service.unread_count(organization.created_by) == 1
        assert notification_service.unread_count(plain.id) == 0
        assert notification_service.unread_count(newcomer.id) == 0

    def test_member_joined_respects_disabled_event(self, db_session, notification_service):
        creator = create_user(db=db_session)
        organization = OrganizationService(db_session).create_organization("Quiet", None, creator.id)
        NotificationPreferenceService(db_session).update_organization_preferences(
            organization.id, [{"event_type": "member_joined", "enabled": False}], creator.id
        )
        newcomer = add_member(db=db_session, organization=organization).user

        assert notification_service.notify_member_joined(organization.id, newcomer.id) == 0

    def test_read_tracking(self, db_session, notification_service):
        user = create_user(db=db_session)
        first = notification_service.create_notification(user.id, "One", "first")
        notification_service.create_notification(user.id, "Two", "second", NotificationType.WARNING)

        assert notification_service.unread_count(user.id) == 2
        notification_service.mark_as_read(first.id, user.id)
        assert notification_service.unread_count(user.id) == 1
        assert [n.title for n in notification_service.list_for_user(user.id, unread_only=True)] == ["Two"]

        assert notification_service.mark_all_as_read(user.id) == 1
        assert notification_service.unread_count(user.id) == 0

    def test_cannot_read_someone_elses_notification(self, db_session, notification_service):
        owner = create_user(db=db_session)
        other = create_user(db=db_session)
        notification = notification_service.create_notification(owner.id, "Private", "hello")

        with pytest.raises(NotificationNotFound):
            notification_service.mark_as_read(notification.id, other.id)
