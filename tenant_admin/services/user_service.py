"""
Account self-service: profile reads and edits, password change.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from sqlalchemy.orm import Session

from ..auth.jwt_auth import PasswordHasher, PasswordPolicy
from ..clock import utcnow
from ..config import Settings
from ..errors import InvalidCredentials, UserNotFound, ValidationError
from ..models.user import Profile, User
from ..repositories import SQLAlchemyUserRepository, UserRepository
from .common import unit_of_work

logger = logging.getLogger(__name__)


class UserService:

    def __init__(
        self,
        db: Session,
        settings: Settings,
        users: Optional[UserRepository] = None,
        hasher: Optional[PasswordHasher] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.settings = settings
        self.users = users or SQLAlchemyUserRepository(db)
        self.hasher = hasher or PasswordHasher.from_settings(settings)
        self.clock = clock

    def get_user(self, user_id: int) -> User:
        user = self.users.get_by_id(user_id)
        if user is None:
            raise UserNotFound()
        return user

    def update_profile(self, user_id: int, fields: Dict[str, Any]) -> User:
        """Update the display name and/or the address and contact profile"""
        user = self.get_user(user_id)
        allowed = set(Profile.EDITABLE_FIELDS) | {"name"}
        unknown = set(fields) - allowed
        if unknown:
            raise ValidationError(f"Cannot update field(s): {', '.join(sorted(unknown))}")

        profile_fields = {key: value for key, value in fields.items() if key in Profile.EDITABLE_FIELDS}
        with unit_of_work(self.db):
            if "name" in fields:
                name = (fields["name"] or "").strip()
                if not name:
                    raise ValidationError("Name cannot be empty")
                user.name = name
                self.users.update(user)
            if profile_fields:
                self.users.upsert_profile(user, profile_fields)
        return user

    def change_password(self, user_id: int, current_password: str, new_password: str) -> None:
        user = self.get_user(user_id)
        if not self.hasher.verify_password(current_password or "", user.password_digest):
            raise InvalidCredentials("Current password is incorrect")
        PasswordPolicy.validate(new_password)

        with unit_of_work(self.db):
            self.users.update_password(user.id, self.hasher.hash_password(new_password), self.clock())
        logger.info(f"Password changed for user {user_id}")
