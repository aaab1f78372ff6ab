"""
Outbound email over the Resend REST API.

Without RESEND_API_KEY the client runs in dev mode: nothing is sent and the
message id is "dev-mode".
"""
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from intavia.core.config import Settings

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"
DEV_MODE_MESSAGE_ID = "dev-mode"


@dataclass
class EmailResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class EmailClient:
    def __init__(self, settings: Settings, http_client: Optional[httpx.Client] = None):
        self.settings = settings
        self._http = http_client

    def _client(self) -> httpx.Client:
        if self._http is None:
            self._http = httpx.Client(timeout=self.settings.http_timeout_seconds)
        return self._http

    def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: Optional[str] = None,
        reply_to: Optional[str] = None,
    ) -> EmailResult:
        """Send one email. Delivery failures are returned, never raised."""
        if not self.settings.resend_api_key:
            logger.warning(f"RESEND_API_KEY not set, skipping email to={to} subject={subject!r}")
            return EmailResult(success=True, message_id=DEV_MODE_MESSAGE_ID)

        payload = {
            "from": self.settings.email_from,
            "to": [to],
            "subject": subject,
            "html": html,
        }
        if text:
            payload["text"] = text
        if reply_to:
            payload["reply_to"] = reply_to

        try:
            response = self._client().post(
                RESEND_API_URL,
                json=payload,
                headers={"Authorization": f"Bearer {self.settings.resend_api_key}"},
                timeout=self.settings.http_timeout_seconds,
            )
        except httpx.HTTPError as e:
            logger.error(f"Email transport error to={to}: {e}")
            return EmailResult(success=False, error=str(e) or e.__class__.__name__)

        if response.status_code >= 400:
            try:
                message = response.json().get("message") or response.text
            except ValueError:
                message = response.text
            logger.error(f"Email rejected to={to} status={response.status_code}: {message}")
            return EmailResult(success=False, error=message or f"HTTP {response.status_code}")

        try:
            message_id = response.json().get("id")
        except ValueError:
            # accepted, but the body is not JSON
            message_id = None
        logger.info(f"Email sent to={to} message_id={message_id}")
        return EmailResult(success=True, message_id=message_id)
