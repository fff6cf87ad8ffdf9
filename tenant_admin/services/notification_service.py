"""
In-app notifications.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from ..clock import utcnow
from ..errors import NotificationNotFound
from ..models.enums import NotificationEvent, NotificationType
from ..models.notification import Notification
from ..repositories import (
    NotificationRepository,
    OrganizationRepository,
    SQLAlchemyNotificationRepository,
    SQLAlchemyOrganizationRepository,
    SQLAlchemyUserRepository,
    UserRepository,
)
from .common import unit_of_work
from .notification_preference_service import NotificationPreferenceService

logger = logging.getLogger(__name__)


class NotificationService:

    def __init__(
        self,
        db: Session,
        notifications: Optional[NotificationRepository] = None,
        organizations: Optional[OrganizationRepository] = None,
        users: Optional[UserRepository] = None,
        preferences: Optional[NotificationPreferenceService] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.notifications = notifications or SQLAlchemyNotificationRepository(db)
        self.organizations = organizations or SQLAlchemyOrganizationRepository(db)
        self.users = users or SQLAlchemyUserRepository(db)
        self.preferences = preferences or NotificationPreferenceService(db, organizations=self.organizations)
        self.clock = clock

    def create_notification(
        self,
        user_id: int,
        title: str,
        message: str,
        notification_type: NotificationType = NotificationType.INFO,
        organization_id: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> Notification:
        with unit_of_work(self.db):
            notification = self.notifications.create(
                Notification(
                    user_id=user_id,
                    organization_id=organization_id,
                    title=title,
                    message=message,
                    type=notification_type,
                    data=data,
                    created_at=self.clock(),
                )
            )
        return notification

    def notify_member_joined(self, organization_id: int, new_member_id: int) -> int:
        """Tell every other admin that a member joined; returns the number notified"""
        organization = self.organizations.get_by_id(organization_id)
        member = self.users.get_by_id(new_member_id)
        if organization is None or member is None:
            return 0

        event = NotificationEvent.MEMBER_JOINED
        if not self.preferences.is_event_enabled(organization_id, event):
            return 0

        display_name = member.name or member.username
        notified = 0
        with unit_of_work(self.db):
            for admin in self.organizations.list_admins(organization_id):
                if admin.user_id == new_member_id:
                    continue
                if not self.preferences.is_event_enabled(organization_id, event, admin.user_id):
                    continue
                self.notifications.create(
                    Notification(
                        user_id=admin.user_id,
                        organization_id=organization_id,
                        title="New member joined",
                        message=f"{display_name} joined {organization.name}",
                        type=NotificationType.INFO,
                        data={
                            "event": event.value,
                            "organization_id": organization_id,
                            "user_id": new_member_id,
                        },
                        created_at=self.clock(),
                    )
                )
                notified += 1
        return notified

    def list_for_user(self, user_id: int, unread_only: bool = False, limit: int = 50) -> List[Notification]:
        return self.notifications.list_for_user(user_id, unread_only=unread_only, limit=limit)

    def unread_count(self, user_id: int) -> int:
        return self.notifications.unread_count(user_id)

    def mark_as_read(self, notification_id: int, user_id: int) -> Notification:
        notification = self.notifications.get_by_id(notification_id)
        if notification is None or notification.user_id != user_id:
            raise NotificationNotFound()
        if not notification.read:
            with unit_of_work(self.db):
                notification.mark_read_(self.clock())
        return notification

    def mark_all_as_read(self, user_id: int) -> int:
        with unit_of_work(self.db):
            updated = self.notifications.mark_all_read(user_id, self.clock())
        return updated
