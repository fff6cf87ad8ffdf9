"""
Closed enumerations shared by models and services.
"""

from enum import Enum


class OrgRole(str, Enum):
    ADMIN = "admin"
    USER = "user"


class InviteStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"
    REVOKED = "revoked"


class NotificationType(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class NotificationEvent(str, Enum):
    MEMBER_JOINED = "member_joined"
    MEMBER_LEFT = "member_left"
    MEMBER_ROLE_CHANGED = "member_role_changed"
    INVITATION_SENT = "invitation_sent"
    INVITATION_ACCEPTED = "invitation_accepted"
    INVITATION_EXPIRED = "invitation_expired"
    ORGANIZATION_UPDATE = "organization_update"

    @property
    def description(self) -> str:
        return NOTIFICATION_EVENT_DESCRIPTIONS[self]


NOTIFICATION_EVENT_DESCRIPTIONS = {
    NotificationEvent.MEMBER_JOINED: "When a new member joins the organization",
    NotificationEvent.MEMBER_LEFT: "When a member leaves the organization",
    NotificationEvent.MEMBER_ROLE_CHANGED: "When a member's role is changed",
    NotificationEvent.INVITATION_SENT: "When an invitation is sent",
    NotificationEvent.INVITATION_ACCEPTED: "When an invitation is accepted",
    NotificationEvent.INVITATION_EXPIRED: "When an invitation expires",
    NotificationEvent.ORGANIZATION_UPDATE: "When organization details are updated",
}


class LoginAttemptType(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    LOCKOUT = "lockout"
    LOCKED_OUT = "locked_out"
    PASSWORD_RESET = "password_reset"
