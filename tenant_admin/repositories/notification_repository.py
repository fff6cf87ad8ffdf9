"""
Notification preference, in-app notification and login audit persistence.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from ..models.enums import NotificationEvent
from ..models.notification import Notification
from ..models.notification_preference import NotificationPreference
from ..models.user_login_audit import UserLoginAudit


class NotificationPreferenceRepository(ABC):

    @abstractmethod
    def list_for_organization(self, organization_id: int) -> List[NotificationPreference]:
        """Organization-wide rows (no user)."""

    @abstractmethod
    def list_for_user(self, organization_id: int, user_id: int) -> List[NotificationPreference]:
        ...

    @abstractmethod
    def get(
        self, organization_id: int, event: NotificationEvent, user_id: Optional[int] = None
    ) -> Optional[NotificationPreference]:
        ...

    @abstractmethod
    def upsert(
        self, organization_id: int, event: NotificationEvent, enabled: bool, user_id: Optional[int] = None
    ) -> NotificationPreference:
        ...

    @abstractmethod
    def delete_for_organization(self, organization_id: int) -> int:
        ...


class SQLAlchemyNotificationPreferenceRepository(NotificationPreferenceRepository):

    def __init__(self, db: Session):
        self.db = db

    def list_for_organization(self, organization_id: int) -> List[NotificationPreference]:
        return self.db.query(NotificationPreference).filter(
            NotificationPreference.organization_id == organization_id,
            NotificationPreference.user_id.is_(None),
        ).order_by(NotificationPreference.id).all()

    def list_for_user(self, organization_id: int, user_id: int) -> List[NotificationPreference]:
        return self.db.query(NotificationPreference).filter(
            NotificationPreference.organization_id == organization_id,
            NotificationPreference.user_id == user_id,
        ).order_by(NotificationPreference.id).all()

    def get(
        self, organization_id: int, event: NotificationEvent, user_id: Optional[int] = None
    ) -> Optional[NotificationPreference]:
        query = self.db.query(NotificationPreference).filter(
            NotificationPreference.organization_id == organization_id,
            NotificationPreference.event_type == event,
        )
        if user_id is None:
            query = query.filter(NotificationPreference.user_id.is_(None))
        else:
            query = query.filter(NotificationPreference.user_id == user_id)
        return query.first()

    def upsert(
        self, organization_id: int, event: NotificationEvent, enabled: bool, user_id: Optional[int] = None
    ) -> NotificationPreference:
        preference = self.get(organization_id, event, user_id)
        if preference is None:
            preference = NotificationPreference(
                organization_id=organization_id, user_id=user_id, event_type=event, enabled=enabled
            )
            self.db.add(preference)
        else:
            preference.enabled = enabled
        self.db.flush()
        return preference

    def delete_for_organization(self, organization_id: int) -> int:
        return self.db.query(NotificationPreference).filter(
            NotificationPreference.organization_id == organization_id,
            NotificationPreference.user_id.is_(None),
        ).delete(synchronize_session="fetch")


class NotificationRepository(ABC):

    @abstractmethod
    def create(self, notification: Notification) -> Notification:
        ...

    @abstractmethod
    def get_by_id(self, notification_id: int) -> Optional[Notification]:
        ...

    @abstractmethod
    def list_for_user(self, user_id: int, unread_only: bool = False, limit: int = 50) -> List[Notification]:
        ...

    @abstractmethod
    def unread_count(self, user_id: int) -> int:
        ...

    @abstractmethod
    def mark_all_read(self, user_id: int, now: datetime) -> int:
        ...


class SQLAlchemyNotificationRepository(NotificationRepository):

    def __init__(self, db: Session):
        self.db = db

    def create(self, notification: Notification) -> Notification:
        self.db.add(notification)
        self.db.flush()
        return notification

    def get_by_id(self, notification_id: int) -> Optional[Notification]:
        return self.db.get(Notification, notification_id)

    def list_for_user(self, user_id: int, unread_only: bool = False, limit: int = 50) -> List[Notification]:
        query = self.db.query(Notification).filter(Notification.user_id == user_id)
        if unread_only:
            query = query.filter(Notification.read.is_(False))
        return query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()

    def unread_count(self, user_id: int) -> int:
        return self.db.query(Notification).filter(
            Notification.user_id == user_id,
            Notification.read.is_(False),
        ).count()

    def mark_all_read(self, user_id: int, now: datetime) -> int:
        result = self.db.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.read.is_(False))
            .values(read=True, read_at=now)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount


class LoginAuditRepository(ABC):

    @abstractmethod
    def record(self, audit: UserLoginAudit) -> UserLoginAudit:
        ...

    @abstractmethod
    def list_for_user(self, user_id: int, limit: int = 20) -> List[UserLoginAudit]:
        ...


class SQLAlchemyLoginAuditRepository(LoginAuditRepository):

    def __init__(self, db: Session):
        self.db = db

    def record(self, audit: UserLoginAudit) -> UserLoginAudit:
        self.db.add(audit)
        self.db.flush()
        return audit

    def list_for_user(self, user_id: int, limit: int = 20) -> List[UserLoginAudit]:
        return (
            self.db.query(UserLoginAudit)
            .filter(UserLoginAudit.user_id == user_id)
            .order_by(UserLoginAudit.created_at.desc(), UserLoginAudit.id.desc())
            .limit(limit)
            .all()
        )
