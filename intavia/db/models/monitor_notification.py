from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint

from intavia.core.timeutils import utcnow
from intavia.db.base import Base
from intavia.db.models._ids import new_id


class MonitorNotification(Base):
    """
    De-duplication cursor for the subscription monitor.

    One row per (subscription, check, window). The monitor inserts the row before
    dispatching and deletes it again if the dispatch fails, so concurrent sweeps
    collide on the unique constraint instead of sending twice.
    """
    __tablename__ = "monitor_notifications"

    id = Column(String(36), primary_key=True, default=new_id)
    subscription_id = Column(String(36), ForeignKey("subscriptions.id"), nullable=False, index=True)
    check_name = Column(String, nullable=False)
    window_key = Column(String, nullable=False)
    message_id = Column(String, nullable=True)
    sent_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("subscription_id", "check_name", "window_key", name="uq_monitor_notification_window"),
    )
