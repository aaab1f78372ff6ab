from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey

from intavia.core.timeutils import utcnow
from intavia.db.base import Base
from intavia.db.models._ids import new_id

NOTIFICATION_CATEGORIES = (
    "job_applications",
    "interview_scheduled",
    "interview_reminders",
    "candidate_updates",
    "system_updates",
)
NOTIFICATION_CHANNELS = ("email", "push", "in_app")
DIGEST_FREQUENCIES = ("immediate", "daily", "weekly", "never")

# Policy applied when a user has no preference row
DEFAULT_PREFERENCES = {
    "email_enabled": True,
    "push_enabled": True,
    "in_app_enabled": True,
    "email_marketing": False,
    "email_digest_frequency": "daily",
    "quiet_hours_start": "22:00",
    "quiet_hours_end": "08:00",
}
for _channel in NOTIFICATION_CHANNELS:
    for _category in NOTIFICATION_CATEGORIES:
        DEFAULT_PREFERENCES[f"{_channel}_{_category}"] = True


class NotificationPreference(Base):
    __tablename__ = "notification_preferences"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, unique=True)

    email_enabled = Column(Boolean, nullable=False, default=True)
    push_enabled = Column(Boolean, nullable=False, default=True)
    in_app_enabled = Column(Boolean, nullable=False, default=True)

    email_job_applications = Column(Boolean, nullable=False, default=True)
    email_interview_scheduled = Column(Boolean, nullable=False, default=True)
    email_interview_reminders = Column(Boolean, nullable=False, default=True)
    email_candidate_updates = Column(Boolean, nullable=False, default=True)
    email_system_updates = Column(Boolean, nullable=False, default=True)

    push_job_applications = Column(Boolean, nullable=False, default=True)
    push_interview_scheduled = Column(Boolean, nullable=False, default=True)
    push_interview_reminders = Column(Boolean, nullable=False, default=True)
    push_candidate_updates = Column(Boolean, nullable=False, default=True)
    push_system_updates = Column(Boolean, nullable=False, default=True)

    in_app_job_applications = Column(Boolean, nullable=False, default=True)
    in_app_interview_scheduled = Column(Boolean, nullable=False, default=True)
    in_app_interview_reminders = Column(Boolean, nullable=False, default=True)
    in_app_candidate_updates = Column(Boolean, nullable=False, default=True)
    in_app_system_updates = Column(Boolean, nullable=False, default=True)

    email_marketing = Column(Boolean, nullable=False, default=False)
    email_digest_frequency = Column(String, nullable=False, default="daily")
    quiet_hours_start = Column(String(5), nullable=True, default="22:00")
    quiet_hours_end = Column(String(5), nullable=True, default="08:00")

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def allows(self, channel: str, category: str) -> bool:
        """True when both the channel master switch and the channel/category flag are on."""
        if not getattr(self, f"{channel}_enabled", False):
            return False
        return bool(getattr(self, f"{channel}_{category}", False))
