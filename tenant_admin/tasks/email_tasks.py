"""
E-mail tasks for password resets and organization invitations.
"""

import asyncio
import logging
from typing import List, Optional

from fastapi_mail import ConnectionConfig, FastMail, MessageSchema, MessageType

from ..celery_app import celery_app
from ..config import Settings, get_settings

logger = logging.getLogger(__name__)


def build_mail_config(settings: Settings) -> ConnectionConfig:
    return ConnectionConfig(
        MAIL_USERNAME=settings.SMTP_USERNAME,
        MAIL_PASSWORD=settings.SMTP_PASSWORD,
        MAIL_FROM=settings.SMTP_FROM_EMAIL,
        MAIL_PORT=settings.SMTP_PORT,
        MAIL_SERVER=settings.SMTP_HOST,
        MAIL_STARTTLS=settings.SMTP_USE_TLS,
        MAIL_SSL_TLS=False,
        USE_CREDENTIALS=bool(settings.SMTP_USERNAME),
        VALIDATE_CERTS=True,
    )


def password_reset_link(settings: Settings, token: str) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}/reset-password?token={token}"


def invitation_link(settings: Settings, token: str) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}/invitations/accept?token={token}"


@celery_app.task(bind=True, max_retries=3)
def send_email(self, recipients: List[str], subject: str, body: str, html_body: Optional[str] = None):
    """Deliver a single message through SMTP"""
    try:
        message = MessageSchema(
            subject=subject,
            recipients=recipients,
            body=html_body or body,
            subtype=MessageType.html if html_body else MessageType.plain,
        )
        fastmail = FastMail(build_mail_config(get_settings()))
        asyncio.run(fastmail.send_message(message))
        logger.info(f"Sent email '{subject}' to {len(recipients)} recipient(s)")
        return {"status": "sent", "recipients": len(recipients)}
    except Exception as exc:
        logger.error(f"Failed to send email '{subject}': {exc}")
        raise self.retry(exc=exc, countdown=60)


@celery_app.task
def send_password_reset_email(user_email: str, reset_token: str):
    settings = get_settings()
    reset_url = password_reset_link(settings, reset_token)
    subject = "Reset your password"
    body = (
        "We received a request to reset your password.\n\n"
        f"Open the link below within the next hour to choose a new one:\n{reset_url}\n\n"
        "If you did not request this, you can ignore this email."
    )
    html_body = f"""
    <html>
    <body>
        <h2>Password reset</h2>
        <p>We received a request to reset your password.</p>
        <p><a href="{reset_url}">Choose a new password</a> (valid for one hour)</p>
        <p>If you did not request this, you can ignore this email.</p>
    </body>
    </html>
    """
    return send_email.delay([user_email], subject, body, html_body)


@celery_app.task
def send_organization_invite_email(invitee_email: str, organization_name: str, inviter_name: str, invite_token: str):
    settings = get_settings()
    accept_url = invitation_link(settings, invite_token)
    subject = f"You have been invited to join {organization_name}"
    body = (
        f"{inviter_name} invited you to join {organization_name}.\n\n"
        f"Accept the invitation: {accept_url}\n\n"
        f"The invitation expires in {settings.INVITE_EXPIRATION_DAYS} days."
    )
    html_body = f"""
    <html>
    <body>
        <h2>Join {organization_name}</h2>
        <p>{inviter_name} invited you to join <strong>{organization_name}</strong>.</p>
        <p><a href="{accept_url}">Accept the invitation</a></p>
        <p>The invitation expires in {settings.INVITE_EXPIRATION_DAYS} days.</p>
    </body>
    </html>
    """
    return send_email.delay([invitee_email], subject, body, html_body)
