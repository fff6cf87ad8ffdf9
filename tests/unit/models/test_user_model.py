"""
Tests for User lockout bookkeeping.
"""
from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from tests.factories import create_user

NOW = datetime(2030, 1, 1, 12, 0, 0)
LOCKOUT = timedelta(minutes=15)


@pytest.mark.unit
@pytest.mark.models
class TestUserLockout:

    def test_new_user_is_unlocked(self, db_session):
        user = create_user(db=db_session)
        assert user.failed_login_attempts == 0
        assert user.locked_(NOW) is False
        assert user.remaining_lock_time(NOW) == timedelta(0)

    def test_username_is_lowercased(self, db_session):
        user = create_user(db=db_session, username="Mixed.Case@Acme.io")
        assert user.username == "mixed.case@acme.io"

    def test_username_unique(self, db_session):
        create_user(db=db_session, username="dup@acme.io")
        with pytest.raises(IntegrityError):
            create_user(db=db_session, username="dup@acme.io")

    def test_locks_when_threshold_reached(self, db_session):
        user = create_user(db=db_session)

        results = [user.record_failed_login_(NOW, 3, LOCKOUT) for _ in range(3)]

        assert results == [False, False, True]
        assert user.locked_until == NOW + LOCKOUT
        assert user.locked_(NOW + timedelta(minutes=14)) is True
        assert user.remaining_lock_time(NOW + timedelta(minutes=5)) == timedelta(minutes=10)

    def test_lock_lapses_after_window(self, db_session):
        user = create_user(db=db_session, failed_login_attempts=3, locked_until=NOW)
        assert user.locked_(NOW) is False
        assert user.locked_(NOW - timedelta(seconds=1)) is True

    def test_successful_login_resets_state(self, db_session):
        user = create_user(db=db_session, failed_login_attempts=4, locked_until=NOW + LOCKOUT)

        user.record_successful_login_(NOW)

        assert user.failed_login_attempts == 0
        assert user.locked_until is None
        assert user.last_login_at == NOW
