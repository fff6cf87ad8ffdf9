from .user_repository import SQLAlchemyUserRepository, UserRepository
from .password_reset_repository import PasswordResetRepository, SQLAlchemyPasswordResetRepository
from .organization_repository import OrganizationRepository, SQLAlchemyOrganizationRepository
from .notification_repository import (
    LoginAuditRepository,
    NotificationPreferenceRepository,
    NotificationRepository,
    SQLAlchemyLoginAuditRepository,
    SQLAlchemyNotificationPreferenceRepository,
    SQLAlchemyNotificationRepository,
)

__all__ = [
    "UserRepository",
    "SQLAlchemyUserRepository",
    "PasswordResetRepository",
    "SQLAlchemyPasswordResetRepository",
    "OrganizationRepository",
    "SQLAlchemyOrganizationRepository",
    "NotificationPreferenceRepository",
    "SQLAlchemyNotificationPreferenceRepository",
    "NotificationRepository",
    "SQLAlchemyNotificationRepository",
    "LoginAuditRepository",
    "SQLAlchemyLoginAuditRepository",
]
