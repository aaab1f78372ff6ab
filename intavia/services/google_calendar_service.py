"""
Google Calendar v3 events over REST.

Every call raises CalendarError on failure; interview flows treat calendar sync as
best-effort and turn that into a warning.
"""
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from intavia.core.config import Settings

logger = logging.getLogger(__name__)

CALENDAR_EVENTS_URL = "https://www.googleapis.com/calendar/v3/calendars/primary/events"


class CalendarError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class CalendarEventInput:
    summary: str
    description: str
    start: str  # local ISO datetime without offset
    end: str
    timezone_id: str
    attendees: List[str] = field(default_factory=list)

    def to_body(self) -> Dict[str, Any]:
        return {
            "summary": self.summary,
            "description": self.description,
            "start": {"dateTime": self.start, "timeZone": self.timezone_id},
            "end": {"dateTime": self.end, "timeZone": self.timezone_id},
            "attendees": [{"email": email} for email in self.attendees if email],
            "conferenceData": {
                "createRequest": {
                    "requestId": uuid.uuid4().hex,
                    "conferenceSolutionKey": {"type": "hangoutsMeet"},
                }
            },
        }


@dataclass
class CalendarEventResult:
    event_id: str
    meet_link: Optional[str] = None


class GoogleCalendarClient:
    def __init__(self, settings: Settings, http_client: Optional[httpx.Client] = None):
        self.settings = settings
        self._http = http_client

    def _client(self) -> httpx.Client:
        if self._http is None:
            self._http = httpx.Client(timeout=self.settings.http_timeout_seconds)
        return self._http

    def _request(self, method: str, url: str, access_token: str, **kwargs) -> httpx.Response:
        try:
            response = self._client().request(
                method,
                url,
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=self.settings.http_timeout_seconds,
                **kwargs,
            )
        except httpx.HTTPError as e:
            raise CalendarError(f"Calendar request failed: {e}") from e
        if response.status_code >= 400:
            raise CalendarError(
                f"Calendar API error {response.status_code}: {response.text}", status_code=response.status_code
            )
        return response

    @staticmethod
    def _result(data: Dict[str, Any]) -> CalendarEventResult:
        entry_points = (data.get("conferenceData") or {}).get("entryPoints") or []
        meet_link = next((e.get("uri") for e in entry_points if e.get("entryPointType") == "video"), None)
        return CalendarEventResult(event_id=data["id"], meet_link=meet_link or data.get("hangoutLink"))

    def create_event(self, access_token: str, event: CalendarEventInput) -> CalendarEventResult:
        response = self._request(
            "POST",
            CALENDAR_EVENTS_URL,
            access_token,
            params={"conferenceDataVersion": 1, "sendUpdates": "all"},
            json=event.to_body(),
        )
        result = self._result(response.json())
        logger.info(f"Calendar event created event_id={result.event_id}")
        return result

    def update_event(self, access_token: str, event_id: str, event: CalendarEventInput) -> CalendarEventResult:
        response = self._request(
            "PATCH",
            f"{CALENDAR_EVENTS_URL}/{event_id}",
            access_token,
            params={"conferenceDataVersion": 1, "sendUpdates": "all"},
            json=event.to_body(),
        )
        return self._result(response.json())

    def delete_event(self, access_token: str, event_id: str) -> None:
        try:
            self._request("DELETE", f"{CALENDAR_EVENTS_URL}/{event_id}", access_token, params={"sendUpdates": "all"})
        except CalendarError as e:
            # already gone on Google's side
            if e.status_code in (404, 410):
                logger.info(f"Calendar event already deleted event_id={event_id}")
                return
            raise
        logger.info(f"Calendar event deleted event_id={event_id}")
