import logging
from typing import Any, Dict

from sqlalchemy.orm import Session

from intavia.core.errors import ValidationError
from intavia.core.timeutils import utcnow
from intavia.db.models.notification_preference import (
    DEFAULT_PREFERENCES,
    DIGEST_FREQUENCIES,
    NOTIFICATION_CATEGORIES,
    NOTIFICATION_CHANNELS,
    NotificationPreference,
)

logger = logging.getLogger(__name__)


class NotificationPreferencesService:
    """Per-user opt-in matrix. A missing row means DEFAULT_PREFERENCES."""

    def __init__(self, db: Session):
        self.db = db

    def _row(self, user_id: str):
        return self.db.query(NotificationPreference).filter(NotificationPreference.user_id == user_id).first()

    def get(self, user_id: str) -> Dict[str, Any]:
        row = self._row(user_id)
        if not row:
            return dict(DEFAULT_PREFERENCES)
        return {key: getattr(row, key) for key in DEFAULT_PREFERENCES}

    def allows(self, user_id: str, channel: str, category: str) -> bool:
        if channel not in NOTIFICATION_CHANNELS or category not in NOTIFICATION_CATEGORIES:
            raise ValueError(f"Unknown preference {channel}/{category}")
        row = self._row(user_id)
        if not row:
            return bool(DEFAULT_PREFERENCES[f"{channel}_enabled"] and DEFAULT_PREFERENCES[f"{channel}_{category}"])
        return row.allows(channel, category)

    def update(self, user_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        unknown = [key for key in changes if key not in DEFAULT_PREFERENCES]
        if unknown:
            raise ValidationError(f"Unknown preference fields: {', '.join(sorted(unknown))}")
        frequency = changes.get("email_digest_frequency")
        if frequency is not None and frequency not in DIGEST_FREQUENCIES:
            raise ValidationError(f"email_digest_frequency must be one of {', '.join(DIGEST_FREQUENCIES)}")

        row = self._row(user_id)
        if not row:
            row = NotificationPreference(user_id=user_id, **DEFAULT_PREFERENCES)
            self.db.add(row)
        for key, value in changes.items():
            setattr(row, key, value)
        row.updated_at = utcnow()
        self.db.commit()
        self.db.refresh(row)
        logger.info(f"Notification preferences updated user_id={user_id} fields={sorted(changes)}")
        return self.get(user_id)
