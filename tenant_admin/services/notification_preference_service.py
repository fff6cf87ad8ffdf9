"""
Per-organization notification preferences with per-user overrides.
"""

import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from ..auth.permissions import OrganizationAuthorizer, OrgRequirement
from ..errors import ValidationError
from ..models.enums import NotificationEvent
from ..repositories import (
    NotificationPreferenceRepository,
    OrganizationRepository,
    SQLAlchemyNotificationPreferenceRepository,
    SQLAlchemyOrganizationRepository,
)
from .common import unit_of_work

logger = logging.getLogger(__name__)


def parse_event(event) -> NotificationEvent:
    if isinstance(event, NotificationEvent):
        return event
    try:
        return NotificationEvent(event)
    except ValueError:
        raise ValidationError(f"Unknown notification event '{event}'")


class NotificationPreferenceService:

    def __init__(
        self,
        db: Session,
        preferences: Optional[NotificationPreferenceRepository] = None,
        organizations: Optional[OrganizationRepository] = None,
    ):
        self.db = db
        self.preferences = preferences or SQLAlchemyNotificationPreferenceRepository(db)
        self.organizations = organizations or SQLAlchemyOrganizationRepository(db)
        self.authorizer = OrganizationAuthorizer(self.organizations)

    @staticmethod
    def available_events() -> List[Dict[str, str]]:
        return [{"event_type": event.value, "description": event.description} for event in NotificationEvent]

    def seed_defaults(self, organization_id: int) -> None:
        """Enable every event for the organization. Caller owns the transaction."""
        for event in NotificationEvent:
            if self.preferences.get(organization_id, event) is None:
                self.preferences.upsert(organization_id, event, True)

    def get_organization_preferences(self, organization_id: int, caller_id: int) -> List[Dict]:
        self.authorizer.require(organization_id, caller_id, OrgRequirement.MEMBER)
        rows = self.preferences.list_for_organization(organization_id)
        if not rows:
            with unit_of_work(self.db):
                self.seed_defaults(organization_id)
            rows = self.preferences.list_for_organization(organization_id)
        return [row.to_dict() for row in rows]

    def update_organization_preferences(
        self, organization_id: int, items: Iterable[Dict], caller_id: int
    ) -> List[Dict]:
        """Bulk upsert of {"event_type": ..., "enabled": ...} items"""
        self.authorizer.require(organization_id, caller_id, OrgRequirement.ADMIN)
        parsed = []
        for item in items:
            if "enabled" not in item or not isinstance(item["enabled"], bool):
                raise ValidationError("Each preference needs a boolean 'enabled' value")
            parsed.append((parse_event(item.get("event_type")), item["enabled"]))

        with unit_of_work(self.db):
            for event, enabled in parsed:
                self.preferences.upsert(organization_id, event, enabled)
        logger.info(f"Updated {len(parsed)} notification preference(s) for organization {organization_id}")
        return [row.to_dict() for row in self.preferences.list_for_organization(organization_id)]

    def reset_to_defaults(self, organization_id: int, caller_id: int) -> List[Dict]:
        self.authorizer.require(organization_id, caller_id, OrgRequirement.ADMIN)
        with unit_of_work(self.db):
            self.preferences.delete_for_organization(organization_id)
            self.seed_defaults(organization_id)
        return [row.to_dict() for row in self.preferences.list_for_organization(organization_id)]

    def get_user_preferences(self, organization_id: int, caller_id: int) -> List[Dict]:
        """Effective setting of every event for the caller"""
        self.authorizer.require(organization_id, caller_id, OrgRequirement.MEMBER)
        return [
            {
                "event_type": event.value,
                "description": event.description,
                "enabled": self.is_event_enabled(organization_id, event, caller_id),
            }
            for event in NotificationEvent
        ]

    def set_user_preference(self, organization_id: int, event, enabled: bool, caller_id: int) -> Dict:
        self.authorizer.require(organization_id, caller_id, OrgRequirement.MEMBER)
        event = parse_event(event)
        with unit_of_work(self.db):
            preference = self.preferences.upsert(organization_id, event, bool(enabled), user_id=caller_id)
        return preference.to_dict()

    def is_event_enabled(self, organization_id: int, event, user_id: Optional[int] = None) -> bool:
        """User override, then organization setting; missing means enabled"""
        event = parse_event(event)
        if user_id is not None:
            override = self.preferences.get(organization_id, event, user_id)
            if override is not None:
                return override.enabled
        preference = self.preferences.get(organization_id, event)
        if preference is None:
            return True
        return preference.enabled
