from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ..models.password_reset import PasswordResetToken


class PasswordResetRepository(ABC):

    @abstractmethod
    def create(self, token: PasswordResetToken) -> PasswordResetToken:
        ...

    @abstractmethod
    def get_by_digest(self, token_digest: str, for_update: bool = False) -> Optional[PasswordResetToken]:
        ...

    @abstractmethod
    def delete_user_tokens(self, user_id: int) -> int:
        ...

    @abstractmethod
    def mark_used(self, token: PasswordResetToken, now: datetime) -> None:
        ...

    @abstractmethod
    def delete_expired(self, now: datetime) -> int:
        ...


class SQLAlchemyPasswordResetRepository(PasswordResetRepository):

    def __init__(self, db: Session):
        self.db = db

    def create(self, token: PasswordResetToken) -> PasswordResetToken:
        self.db.add(token)
        self.db.flush()
        return token

    def get_by_digest(self, token_digest: str, for_update: bool = False) -> Optional[PasswordResetToken]:
        query = self.db.query(PasswordResetToken).filter(PasswordResetToken.token_digest == token_digest)
        if for_update:
            query = query.with_for_update().populate_existing()
        return query.first()

    def delete_user_tokens(self, user_id: int) -> int:
        return self.db.query(PasswordResetToken).filter(
            PasswordResetToken.user_id == user_id
        ).delete(synchronize_session="fetch")

    def mark_used(self, token: PasswordResetToken, now: datetime) -> None:
        token.used_at = now
        self.db.flush()

    def delete_expired(self, now: datetime) -> int:
        return self.db.query(PasswordResetToken).filter(
            PasswordResetToken.expires_at <= now
        ).delete(synchronize_session=False)
