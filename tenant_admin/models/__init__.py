from .enums import InviteStatus, LoginAttemptType, NotificationEvent, NotificationType, OrgRole
from .user import Profile, User
from .password_reset import PasswordResetToken
from .org import Organization, OrganizationMember
from .invite import OrganizationInvite
from .notification_preference import NotificationPreference
from .notification import Notification
from .user_login_audit import UserLoginAudit

__all__ = [
    "InviteStatus",
    "LoginAttemptType",
    "NotificationEvent",
    "NotificationType",
    "OrgRole",
    "Profile",
    "User",
    "PasswordResetToken",
    "Organization",
    "OrganizationMember",
    "OrganizationInvite",
    "NotificationPreference",
    "Notification",
    "UserLoginAudit",
]
