"""
User persistence: abstract interface plus the SQLAlchemy implementation.
Lookups return None when the row does not exist; storage failures
propagate as SQLAlchemy exceptions.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from ..models.user import Profile, User


class UserRepository(ABC):

    @abstractmethod
    def get_by_id(self, user_id: int) -> Optional[User]:
        ...

    @abstractmethod
    def get_by_username(self, username: str) -> Optional[User]:
        ...

    @abstractmethod
    def get_by_username_for_update(self, username: str) -> Optional[User]:
        """Fetch and row-lock the user for a read-modify-write."""

    @abstractmethod
    def get_by_id_for_update(self, user_id: int) -> Optional[User]:
        ...

    @abstractmethod
    def create(self, user: User) -> User:
        ...

    @abstractmethod
    def update(self, user: User) -> User:
        ...

    @abstractmethod
    def update_password(self, user_id: int, password_digest: str, changed_at: datetime) -> None:
        ...

    @abstractmethod
    def upsert_profile(self, user: User, fields: dict) -> Profile:
        ...

    @abstractmethod
    def clear_last_selected_organization(self, organization_id: int) -> None:
        ...


class SQLAlchemyUserRepository(UserRepository):

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self.db.get(User, user_id)

    def get_by_username(self, username: str) -> Optional[User]:
        return self.db.query(User).filter(
            func.lower(User.username) == username.strip().lower()
        ).first()

    def get_by_username_for_update(self, username: str) -> Optional[User]:
        return (
            self.db.query(User)
            .filter(func.lower(User.username) == username.strip().lower())
            .with_for_update()
            .populate_existing()
            .first()
        )

    def get_by_id_for_update(self, user_id: int) -> Optional[User]:
        return (
            self.db.query(User)
            .filter(User.id == user_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def create(self, user: User) -> User:
        self.db.add(user)
        self.db.flush()
        return user

    def update(self, user: User) -> User:
        self.db.add(user)
        self.db.flush()
        return user

    def update_password(self, user_id: int, password_digest: str, changed_at: datetime) -> None:
        # Touches only the credential columns so concurrent profile edits survive
        self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(
                password_digest=password_digest,
                password_changed_at=changed_at,
                failed_login_attempts=0,
                locked_until=None,
            )
            .execution_options(synchronize_session="fetch")
        )

    def upsert_profile(self, user: User, fields: dict) -> Profile:
        profile = user.profile
        if profile is None:
            profile = Profile(user=user)
            self.db.add(profile)
        for key, value in fields.items():
            setattr(profile, key, value)
        self.db.flush()
        return profile

    def clear_last_selected_organization(self, organization_id: int) -> None:
        self.db.execute(
            update(User)
            .where(User.last_selected_organization_id == organization_id)
            .values(last_selected_organization_id=None)
            .execution_options(synchronize_session="fetch")
        )
