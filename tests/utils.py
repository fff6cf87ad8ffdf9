"""
Test utilities and helpers.
"""
from datetime import datetime, timedelta
from typing import Any, Dict, List

from tenant_admin.services.mail_dispatcher import MailDispatcher

T0 = datetime(2030, 1, 1, 12, 0, 0)


class FixedClock:
    """Callable clock that only moves when told to"""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class RecordingMailDispatcher(MailDispatcher):
    """Keeps dispatched mail in memory"""

    def __init__(self):
        self.sent: List[Dict[str, Any]] = []

    def password_reset(self, email: str, token: str) -> None:
        self.sent.append({"kind": "password_reset", "email": email, "token": token})

    def organization_invite(self, email: str, organization_name: str, inviter_name: str, token: str) -> None:
        self.sent.append({
            "kind": "organization_invite",
            "email": email,
            "organization_name": organization_name,
            "inviter_name": inviter_name,
            "token": token,
        })

    def last(self, kind: str) -> Dict[str, Any]:
        matching = [message for message in self.sent if message["kind"] == kind]
        assert matching, f"no {kind} mail was dispatched"
        return matching[-1]


class ProblemResponseHelper:
    """Assertions for problem-details responses"""

    @staticmethod
    def assert_problem(response, status_code: int, title: str = None) -> Dict[str, Any]:
        assert response.status_code == status_code
        assert response.headers["content-type"].startswith("application/problem+json")
        body = response.json()
        assert body["status"] == status_code
        if title is not None:
            assert body["title"] == title
        return body
