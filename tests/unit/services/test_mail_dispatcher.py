"""
Tests for the Celery-backed mail dispatcher.
"""
import pytest

from tenant_admin.services.mail_dispatcher import CeleryMailDispatcher
from tenant_admin.services.password_reset_service import PasswordResetService
from tenant_admin.tasks import email_tasks
from tests.factories import create_user


class RecordingTask:
    def __init__(self):
        self.calls = []

    def delay(self, *args):
        self.calls.append(args)


class BrokenTask:
    def delay(self, *args):
        raise ConnectionError("broker unavailable")


@pytest.mark.unit
@pytest.mark.services
class TestCeleryMailDispatcher:

    def test_enqueues_password_reset(self, monkeypatch):
        task = RecordingTask()
        monkeypatch.setattr(email_tasks, "send_password_reset_email", task)

        CeleryMailDispatcher().password_reset("a@x.com", "abc123")

        assert task.calls == [("a@x.com", "abc123")]

    def test_enqueues_invite(self, monkeypatch):
        task = RecordingTask()
        monkeypatch.setattr(email_tasks, "send_organization_invite_email", task)

        CeleryMailDispatcher().organization_invite("b@x.com", "Acme", "Carol", "tok")

        assert task.calls == [("b@x.com", "Acme", "Carol", "tok")]

    def test_disabled_dispatcher_sends_nothing(self, monkeypatch):
        task = RecordingTask()
        monkeypatch.setattr(email_tasks, "send_password_reset_email", task)

        CeleryMailDispatcher(enabled=False).password_reset("a@x.com", "abc123")

        assert task.calls == []

    def test_from_settings_honours_dispatch_flag(self, monkeypatch, test_settings):
        task = RecordingTask()
        monkeypatch.setattr(email_tasks, "send_password_reset_email", task)

        CeleryMailDispatcher.from_settings(test_settings).password_reset("a@x.com", "abc123")
        assert task.calls == []

        enabled = test_settings.model_copy(update={"MAIL_DISPATCH_ENABLED": True})
        CeleryMailDispatcher.from_settings(enabled).password_reset("a@x.com", "abc123")
        assert task.calls == [("a@x.com", "abc123")]

    def test_broker_failure_is_swallowed(self, monkeypatch):
        monkeypatch.setattr(email_tasks, "send_password_reset_email", BrokenTask())
        CeleryMailDispatcher().password_reset("a@x.com", "abc123")

    def test_reset_request_survives_broker_failure(self, monkeypatch, db_session, test_settings, clock):
        monkeypatch.setattr(email_tasks, "send_password_reset_email", BrokenTask())
        create_user(db=db_session, username="a@x.com")
        service = PasswordResetService(db_session, test_settings, CeleryMailDispatcher(), clock=clock)

        assert service.request_reset("a@x.com") is None


@pytest.mark.unit
class TestEmailLinks:

    def test_links_use_frontend_url(self, test_settings):
        settings = test_settings.model_copy(update={"FRONTEND_URL": "https://app.acme.io/"})

        assert email_tasks.password_reset_link(settings, "t1") == "https://app.acme.io/reset-password?token=t1"
        assert email_tasks.invitation_link(settings, "t2") == "https://app.acme.io/invitations/accept?token=t2"
