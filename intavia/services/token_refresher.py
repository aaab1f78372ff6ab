"""
Google OAuth access tokens for calendar integrations.

get_valid_access_token() hands back the stored token while it is still valid and
refreshes it transparently once expired. A None result means "integration unusable";
callers carry on without calendar sync.
"""
import logging
from datetime import timedelta
from typing import Any, Dict, Optional

import httpx
from sqlalchemy.orm import Session
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from intavia.core.config import Settings
from intavia.core.timeutils import as_utc, utcnow
from intavia.db.models.integration import Integration

logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_PROVIDER = "google"


class TokenRefreshError(Exception):
    def __init__(self, message: str, invalid_grant: bool = False):
        super().__init__(message)
        self.invalid_grant = invalid_grant


class TokenRefresher:
    def __init__(
        self,
        db: Session,
        settings: Settings,
        http_client: Optional[httpx.Client] = None,
        retry_wait=None,
    ):
        self.db = db
        self.settings = settings
        self._http = http_client
        self.retry_wait = retry_wait if retry_wait is not None else wait_exponential(multiplier=0.5, max=4)

    def _client(self) -> httpx.Client:
        if self._http is None:
            self._http = httpx.Client(timeout=self.settings.http_timeout_seconds)
        return self._http

    def _get_integration(self, user_id: str, company_id: str) -> Optional[Integration]:
        return (
            self.db.query(Integration)
            .filter(
                Integration.user_id == user_id,
                Integration.company_id == company_id,
                Integration.provider == GOOGLE_PROVIDER,
            )
            .first()
        )

    def is_connected(self, user_id: str, company_id: str) -> bool:
        integration = self._get_integration(user_id, company_id)
        if not integration:
            return False
        return integration.status != "disconnected" and bool(integration.refresh_token)

    def get_valid_access_token(self, user_id: str, company_id: str) -> Optional[str]:
        integration = self._get_integration(user_id, company_id)
        if not integration or integration.status == "disconnected":
            return None

        expires_at = as_utc(integration.expires_at)
        if expires_at is None or expires_at > utcnow():
            return integration.access_token

        if not integration.refresh_token:
            logger.warning(f"Google token expired without refresh token integration_id={integration.id}")
            return None

        try:
            return self.refresh_integration(integration)
        except TokenRefreshError as e:
            logger.error(f"Failed to refresh Google access token integration_id={integration.id}: {e}")
            return None

    def refresh_integration(self, integration: Integration) -> str:
        """
        Exchange the refresh token for a new access token and persist it.

        Raises TokenRefreshError. On invalid_grant the integration is marked
        disconnected and its tokens cleared before raising.
        """
        try:
            token_data = self._request_refresh(integration.refresh_token)
        except TokenRefreshError as e:
            if e.invalid_grant:
                logger.warning(f"Refresh token revoked, disconnecting integration_id={integration.id}")
                self._mark_disconnected(integration)
            raise

        access_token = token_data.get("access_token")
        if not access_token:
            raise TokenRefreshError("Token response missing access_token")

        now = utcnow()
        values: Dict[str, Any] = {
            Integration.access_token: access_token,
            Integration.expires_at: now + timedelta(seconds=int(token_data.get("expires_in") or 3600)),
            Integration.updated_at: now,
        }
        # Google only rotates the refresh token occasionally
        if token_data.get("refresh_token"):
            values[Integration.refresh_token] = token_data["refresh_token"]
        if token_data.get("scope"):
            values[Integration.scope] = token_data["scope"]

        try:
            self.db.query(Integration).filter(Integration.id == integration.id).update(
                values, synchronize_session=False
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(integration)
        logger.info(f"Google access token refreshed integration_id={integration.id}")
        return access_token

    def _request_refresh(self, refresh_token: str) -> Dict[str, Any]:
        if not self.settings.google_client_id or not self.settings.google_client_secret:
            raise TokenRefreshError("Google OAuth credentials not configured")

        form = {
            "client_id": self.settings.google_client_id,
            "client_secret": self.settings.google_client_secret,
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        }

        # Only transport errors are retried; an HTTP error response is final.
        try:
            for attempt in Retrying(
                stop=stop_after_attempt(max(1, self.settings.token_refresh_attempts)),
                wait=self.retry_wait,
                retry=retry_if_exception_type(httpx.TransportError),
                reraise=True,
            ):
                with attempt:
                    response = self._client().post(
                        GOOGLE_TOKEN_URL, data=form, timeout=self.settings.http_timeout_seconds
                    )
        except httpx.TransportError as e:
            raise TokenRefreshError(f"Google token endpoint unreachable: {e}") from e

        if response.status_code >= 400:
            try:
                error_code = response.json().get("error", "")
            except ValueError:
                error_code = ""
            raise TokenRefreshError(
                f"Google token refresh failed: {response.status_code} - {response.text}",
                invalid_grant=error_code == "invalid_grant",
            )
        return response.json()

    def _mark_disconnected(self, integration: Integration) -> None:
        try:
            self.db.query(Integration).filter(Integration.id == integration.id).update(
                {
                    Integration.access_token: None,
                    Integration.refresh_token: None,
                    Integration.expires_at: None,
                    Integration.status: "disconnected",
                    Integration.updated_at: utcnow(),
                },
                synchronize_session=False,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.error(f"Failed to mark integration disconnected integration_id={integration.id}", exc_info=True)

    def refresh_expiring_tokens(self, within: Optional[timedelta] = None) -> Dict[str, Any]:
        """
        Proactively refresh Google tokens expiring inside the window that have not expired yet.
        One failing integration never stops the batch.
        """
        window = within or timedelta(hours=self.settings.token_refresh_window_hours)
        now = utcnow()
        integrations = (
            self.db.query(Integration)
            .filter(
                Integration.provider == GOOGLE_PROVIDER,
                Integration.refresh_token.isnot(None),
                Integration.status != "disconnected",
                Integration.expires_at.isnot(None),
                Integration.expires_at <= now + window,
                Integration.expires_at > now,
            )
            .all()
        )

        refreshed = 0
        errors = []
        for integration in integrations:
            try:
                self.refresh_integration(integration)
                refreshed += 1
            except Exception as e:
                logger.error(f"Scheduled token refresh failed integration_id={integration.id}: {e}")
                errors.append({"integration_id": integration.id, "user_id": integration.user_id, "error": str(e)})

        logger.info(f"Token refresh sweep processed={len(integrations)} refreshed={refreshed} errors={len(errors)}")
        return {"processed": len(integrations), "refreshed": refreshed, "errors": errors}
