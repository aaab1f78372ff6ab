import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from intavia.core.config import Settings
from intavia.services import email_templates
from intavia.services.email_service import EmailClient

logger = logging.getLogger(__name__)


@dataclass
class NotificationResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"success": self.success}
        if self.message_id:
            body["messageId"] = self.message_id
        if self.error:
            body["error"] = self.error
        return body


class NotificationDispatcher:
    """
    Formats and sends lifecycle emails.

    Stateless per call. Delivery failures come back as NotificationResult(success=False)
    and never raise; callers own any once-only gate (e.g. interview reminders).
    """

    def __init__(self, settings: Settings, email_client: EmailClient):
        self.settings = settings
        self.email_client = email_client

    def send(
        self,
        kind: str,
        recipient: str,
        template_data: Optional[Dict[str, Any]] = None,
        reply_to: Optional[str] = None,
    ) -> NotificationResult:
        # unknown kinds are a caller bug, not a delivery failure
        if kind not in email_templates.NOTIFICATION_KINDS:
            raise ValueError(f"Unknown notification kind: {kind}")

        if not recipient:
            return NotificationResult(success=False, error="Recipient email is missing")

        try:
            rendered = email_templates.render(kind, template_data or {}, app_name=self.settings.app_name)
        except Exception as e:
            logger.error(f"Failed to render notification kind={kind}: {e}", exc_info=True)
            return NotificationResult(success=False, error=f"Template error: {e}")

        result = self.email_client.send(
            to=recipient,
            subject=rendered.subject,
            html=rendered.html,
            text=rendered.text,
            reply_to=reply_to,
        )
        if result.success:
            logger.info(f"Notification sent kind={kind} message_id={result.message_id}")
        else:
            logger.warning(f"Notification failed kind={kind}: {result.error}")
        return NotificationResult(success=result.success, message_id=result.message_id, error=result.error)
