"""
Helpers shared by the service layer.
"""

from contextlib import contextmanager
from typing import Iterator, Optional

from email_validator import EmailNotValidError, validate_email
from sqlalchemy.orm import Session

from ..errors import ValidationError
from ..models.enums import OrgRole


@contextmanager
def unit_of_work(db: Session) -> Iterator[Session]:
    """Commit when the block completes, roll back on any exception."""
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


def normalize_email(email: Optional[str]) -> str:
    if not email or not email.strip():
        raise ValidationError("Email is required")
    try:
        result = validate_email(email.strip(), check_deliverability=False)
    except EmailNotValidError as exc:
        raise ValidationError(f"Invalid email address: {exc}")
    return result.normalized.lower()


def parse_role(role) -> OrgRole:
    if isinstance(role, OrgRole):
        return role
    try:
        return OrgRole(role)
    except ValueError:
        allowed = ", ".join(r.value for r in OrgRole)
        raise ValidationError(f"Invalid role '{role}'. Must be one of: {allowed}")
