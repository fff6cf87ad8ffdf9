from .account_security import AuthResult, AuthService
from .invitation_service import InvitationService
from .mail_dispatcher import CeleryMailDispatcher, MailDispatcher
from .notification_preference_service import NotificationPreferenceService
from .notification_service import NotificationService
from .organization_service import OrganizationService
from .password_reset_service import PasswordResetService
from .user_service import UserService

__all__ = [
    "AuthResult",
    "AuthService",
    "InvitationService",
    "MailDispatcher",
    "CeleryMailDispatcher",
    "NotificationPreferenceService",
    "NotificationService",
    "OrganizationService",
    "PasswordResetService",
    "UserService",
]
