"""
Google Calendar API v3 client for writing, listing and deleting events.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

import google_auth_httplib2
import httplib2
from google.auth.exceptions import TransportError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from pendulum import DateTime

from .. import GENERATED_BY_TAG
from ..domain.exceptions import CalendarAPIError
from ..domain.models import CalendarEvent, EventDraft

logger = logging.getLogger(__name__)


class GoogleCalendarClient:
    """
    Client for Google Calendar event operations.

    The discovery-based service is blocking, so every request runs in a
    worker thread. ``httplib2.Http`` is not thread-safe; each request gets
    its own authorized transport.
    """

    def __init__(self, credentials: Credentials, calendar_id: str = "primary"):
        """
        Initialize the Calendar API client.

        Args:
            credentials: Valid Google OAuth credentials
            calendar_id: Calendar to operate on
        """
        self.credentials = credentials
        self.calendar_id = calendar_id
        self.service = build("calendar", "v3", credentials=credentials, cache_discovery=False)

    def _new_http(self) -> google_auth_httplib2.AuthorizedHttp:
        return google_auth_httplib2.AuthorizedHttp(self.credentials, http=httplib2.Http())

    def _execute(self, request) -> Dict[str, Any]:
        try:
            return request.execute(http=self._new_http()) or {}
        except HttpError as exc:
            raise CalendarAPIError(f"Google Calendar request failed: {exc}") from exc
        except (TransportError, httplib2.HttpLib2Error, OSError) as exc:
            raise CalendarAPIError(f"Could not reach Google Calendar: {exc}") from exc

    async def insert_event(self, draft: EventDraft) -> CalendarEvent:
        """
        Create an event from a scheduled draft.

        Raises:
            CalendarAPIError: If the API call fails
        """
        request = self.service.events().insert(
            calendarId=self.calendar_id,
            body=build_event_body(draft),
        )
        created = await asyncio.to_thread(self._execute, request)
        return parse_event(created)

    async def list_events(self, time_min: DateTime, time_max: DateTime) -> List[CalendarEvent]:
        """
        List single events between ``time_min`` and ``time_max``, following pagination.

        Raises:
            CalendarAPIError: If the API call fails
        """
        events: List[CalendarEvent] = []
        page_token: Optional[str] = None

        while True:
            request = self.service.events().list(
                calendarId=self.calendar_id,
                timeMin=time_min.to_iso8601_string(),
                timeMax=time_max.to_iso8601_string(),
                singleEvents=True,
                orderBy="startTime",
                pageToken=page_token,
            )
            response = await asyncio.to_thread(self._execute, request)

            for item in response.get("items", []):
                events.append(parse_event(item))

            page_token = response.get("nextPageToken")
            if not page_token:
                break

        logger.debug("Listed %d events between %s and %s", len(events), time_min, time_max)
        return events

    async def delete_event(self, event_id: str) -> None:
        """
        Delete an event by id.

        Raises:
            CalendarAPIError: If the API call fails
        """
        request = self.service.events().delete(calendarId=self.calendar_id, eventId=event_id)
        await asyncio.to_thread(self._execute, request)


def build_event_body(draft: EventDraft) -> Dict[str, Any]:
    """
    Build the Calendar API event resource for a draft.

    The private extended property ``generated_by`` marks events this tool
    created so they can be listed and deleted later.
    """
    return {
        "summary": draft.title,
        "description": draft.description(),
        "start": {
            "dateTime": draft.interval.start.to_iso8601_string(),
            "timeZone": draft.timezone,
        },
        "end": {
            "dateTime": draft.interval.end.to_iso8601_string(),
            "timeZone": draft.timezone,
        },
        "extendedProperties": {
            "private": {
                "generated_by": GENERATED_BY_TAG,
                "user_input": draft.user_input,
                "duration": str(draft.duration_minutes),
            }
        },
    }


def parse_event(item: Dict[str, Any]) -> CalendarEvent:
    """
    Parse a Calendar API event resource into our domain model.

    All-day events only carry ``date``; timed events carry ``dateTime``.
    """
    start = item.get("start", {})
    end = item.get("end", {})
    private = item.get("extendedProperties", {}).get("private", {})

    duration: Optional[int]
    try:
        duration = int(private["duration"])
    except (KeyError, TypeError, ValueError):
        duration = None

    return CalendarEvent(
        id=item.get("id", ""),
        title=item.get("summary", "(no title)"),
        start=start.get("dateTime") or start.get("date", ""),
        end=end.get("dateTime") or end.get("date", ""),
        user_input=private.get("user_input") or "general activities",
        generated_by=private.get("generated_by"),
        duration_minutes=duration,
        html_link=item.get("htmlLink"),
    )
