"""
Outbound mail dispatch used by the core services.
Dispatch is fire-and-forget: a broker failure is logged and swallowed so
that it never fails the operation that triggered it.
"""

import logging
from abc import ABC, abstractmethod

from ..config import Settings

logger = logging.getLogger(__name__)


class MailDispatcher(ABC):

    @abstractmethod
    def password_reset(self, email: str, token: str) -> None:
        ...

    @abstractmethod
    def organization_invite(self, email: str, organization_name: str, inviter_name: str, token: str) -> None:
        ...


class CeleryMailDispatcher(MailDispatcher):
    """Enqueues the e-mail tasks on the Celery broker"""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled

    @classmethod
    def from_settings(cls, settings: Settings) -> "CeleryMailDispatcher":
        return cls(enabled=settings.MAIL_DISPATCH_ENABLED)

    def password_reset(self, email: str, token: str) -> None:
        from ..tasks.email_tasks import send_password_reset_email

        self._enqueue("password reset", send_password_reset_email, email, token)

    def organization_invite(self, email: str, organization_name: str, inviter_name: str, token: str) -> None:
        from ..tasks.email_tasks import send_organization_invite_email

        self._enqueue("organization invite", send_organization_invite_email, email, organization_name, inviter_name, token)

    def _enqueue(self, kind: str, task, *args) -> None:
        if not self.enabled:
            logger.info(f"Mail dispatch disabled; skipping {kind} email")
            return
        try:
            task.delay(*args)
        except Exception as exc:
            logger.warning(f"Failed to enqueue {kind} email: {exc}")
