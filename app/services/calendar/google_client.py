"""
Google Calendar adapter.
Translates between Calendar v3 events and the canonical Event shape.

Google accepts a client-chosen event id, so blocker events are created under the
system id and no provider-native id needs to be stored.
"""

import uuid
from datetime import datetime
from typing import Any

from app.config import settings
from app.infrastructure.observability.logging import get_logger
from app.models.domain.event_group_domain import Attendee, DirectoryUser, Event, Provider
from app.services.attendee_reconciliation import CONFIRMED_PROVIDER_STATUS, map_response_status
from app.services.calendar.base import (
    CalendarProvider,
    ProviderEventInput,
    ProviderEventResult,
    ProviderEventsResult,
    parse_provider_datetime,
    to_utc,
)
from app.services.errors import ProviderError

logger = get_logger(__name__)

CALENDAR_API_BASE_URL = "https://www.googleapis.com/calendar/v3"
CALENDAR_PRIMARY = "primary"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
PEOPLE_API_BASE_URL = "https://people.googleapis.com/v1"

# Marker stored in extendedProperties.private on system-created events
MARKER_FLAG_KEY = "isAgreeToEvent"
MARKER_ID_KEY = "agreeToId"

DEFAULT_CONFERENCE_SOLUTION = "hangoutsMeet"
MAX_RESULTS = 250
DIRECTORY_PAGE_SIZE = 50
DIRECTORY_SOURCES = ["DIRECTORY_SOURCE_TYPE_DOMAIN_PROFILE", "DIRECTORY_SOURCE_TYPE_DOMAIN_CONTACT"]


class GoogleCalendarService(CalendarProvider):
    """Calendar v3 operations on the account's primary calendar."""

    provider = Provider.GOOGLE
    token_url = GOOGLE_TOKEN_URL

    def _refresh_payload(self) -> dict[str, str]:
        return {
            "client_id": settings.GOOGLE_CLIENT_ID or "",
            "client_secret": settings.GOOGLE_CLIENT_SECRET or "",
            "refresh_token": self._refresh_token or "",
            "grant_type": "refresh_token",
        }

    def provider_event_id(self, event: Event) -> str | None:
        return event.id

    def _events_url(self, event_id: str | None = None) -> str:
        url = f"{CALENDAR_API_BASE_URL}/calendars/{CALENDAR_PRIMARY}/events"
        return f"{url}/{event_id}" if event_id else url

    def _to_event(self, item: dict[str, Any]) -> Event:
        marker = item.get("extendedProperties", {}).get("private", {})
        start = item.get("start", {})
        end = item.get("end", {})

        return Event(
            id=marker.get(MARKER_ID_KEY) or item.get("id"),
            title=item.get("summary") or "-",
            description=item.get("description") or "",
            start_date=parse_provider_datetime(start.get("dateTime") or start.get("date")),
            end_date=parse_provider_datetime(end.get("dateTime") or end.get("date")),
            is_agree_to_event=marker.get(MARKER_FLAG_KEY) == "true",
            attendees=[
                Attendee(
                    email=a["email"],
                    name=a.get("displayName") or "",
                    provider=self.provider.value,
                    response_status=map_response_status(a.get("responseStatus")),
                )
                for a in item.get("attendees", [])
                if a.get("email")
            ],
        )

    async def get_events(
        self, start_date: datetime | None = None, end_date: datetime | None = None
    ) -> ProviderEventsResult:
        params: dict[str, Any] = {
            "maxResults": MAX_RESULTS,
            "singleEvents": "true",
            "orderBy": "startTime",
        }
        if start_date:
            params["timeMin"] = to_utc(start_date).isoformat()
        if end_date:
            params["timeMax"] = to_utc(end_date).isoformat()

        try:
            items: list[dict[str, Any]] = []
            pages = 0
            while True:
                data = await self._request("GET", self._events_url(), "get_events", params=params)
                items.extend(data.get("items", []))
                pages += 1

                page_token = data.get("nextPageToken")
                if not page_token:
                    break
                params["pageToken"] = page_token

            events = [
                self._to_event(item) for item in items if item.get("status") != "cancelled"
            ]
            logger.info("Google events listed", event_count=len(events), pages=pages)
            return ProviderEventsResult(raw_data={"items": items}, events=events)

        except ProviderError:
            raise
        except Exception as e:
            logger.error("Unexpected error listing Google events", error=str(e))
            raise self._error(f"Failed to list events: {e}", cause=e) from e

    async def create_event(self, data: ProviderEventInput) -> ProviderEventResult:
        body = {
            "id": data.id,
            "summary": data.title,
            "start": {"dateTime": to_utc(data.start_date).isoformat(), "timeZone": "UTC"},
            "end": {"dateTime": to_utc(data.end_date).isoformat(), "timeZone": "UTC"},
            "attendees": [{"email": email, "optional": False} for email in data.attendee_emails],
            "extendedProperties": {
                "private": {MARKER_FLAG_KEY: "true", MARKER_ID_KEY: data.id},
            },
        }

        try:
            logger.info("Creating Google event", event_id=data.id)
            response = await self._request("POST", self._events_url(), "create_event", json=body)
            return ProviderEventResult(raw_data=response, event=self._to_event(response))

        except ProviderError:
            raise
        except Exception as e:
            logger.error("Unexpected error creating Google event", event_id=data.id, error=str(e))
            raise self._error(f"Failed to create event: {e}", cause=e) from e

    async def update_event(
        self,
        provider_event_id: str,
        title: str | None = None,
        attendee_emails: list[str] | None = None,
        has_conference: bool = False,
    ) -> ProviderEventResult:
        body: dict[str, Any] = {}
        params: dict[str, Any] = {}

        if attendee_emails is not None:
            body["attendees"] = [
                {"email": email, "responseStatus": CONFIRMED_PROVIDER_STATUS}
                for email in attendee_emails
            ]
        if has_conference:
            solution = await self.get_allowed_conference_solution()
            body["conferenceData"] = {
                "createRequest": {
                    "requestId": uuid.uuid4().hex,
                    "conferenceSolutionKey": {"type": solution},
                }
            }
            params["conferenceDataVersion"] = 1
        if title:
            body["summary"] = title

        try:
            logger.info(
                "Updating Google event",
                event_id=provider_event_id,
                fields_updated=list(body.keys()),
            )
            response = await self._request(
                "PATCH",
                self._events_url(provider_event_id),
                "update_event",
                params=params or None,
                json=body,
            )
            return ProviderEventResult(raw_data=response, event=self._to_event(response))

        except ProviderError:
            raise
        except Exception as e:
            logger.error(
                "Unexpected error updating Google event", event_id=provider_event_id, error=str(e)
            )
            raise self._error(f"Failed to update event: {e}", cause=e) from e

    async def get_allowed_conference_solution(self) -> str:
        """hangoutsMeet if allowed, else the first allowed type; hangoutsMeet on any failure."""
        try:
            data = await self._request(
                "GET",
                f"{CALENDAR_API_BASE_URL}/users/me/calendarList/{CALENDAR_PRIMARY}",
                "get_calendar",
            )
            allowed = data.get("conferenceProperties", {}).get("allowedConferenceSolutionTypes", [])
        except Exception as e:
            logger.debug("Could not read allowed conference solutions", error=str(e))
            return DEFAULT_CONFERENCE_SOLUTION

        if DEFAULT_CONFERENCE_SOLUTION in allowed:
            return DEFAULT_CONFERENCE_SOLUTION
        return allowed[0] if allowed else DEFAULT_CONFERENCE_SOLUTION

    async def search_directory(self, query: str) -> list[DirectoryUser]:
        """
        Search the account's Workspace directory (People API).

        Consumer accounts have no directory and get an empty list from Google.
        People without an email address are skipped.
        """
        params: dict[str, Any] = {
            "query": query,
            "readMask": "names,emailAddresses",
            "sources": DIRECTORY_SOURCES,
            "pageSize": DIRECTORY_PAGE_SIZE,
        }

        try:
            data = await self._request(
                "GET",
                f"{PEOPLE_API_BASE_URL}/people:searchDirectoryPeople",
                "search_directory",
                params=params,
            )
        except ProviderError:
            raise
        except Exception as e:
            logger.error("Unexpected error searching Google directory", error=str(e))
            raise self._error(f"Failed to search directory: {e}", cause=e) from e

        users = []
        for person in data.get("people", []):
            email = next(
                (e["value"] for e in person.get("emailAddresses", []) if e.get("value")), None
            )
            if not email:
                continue
            names = (person.get("names") or [{}])[0]
            users.append(
                DirectoryUser(
                    email=email,
                    name=names.get("givenName") or names.get("displayName") or "",
                    surname=names.get("familyName") or "",
                    provider=self.provider.value,
                )
            )
        return users

    async def delete_event(self, provider_event_id: str) -> None:
        try:
            logger.info("Deleting Google event", event_id=provider_event_id)
            await self._request("DELETE", self._events_url(provider_event_id), "delete_event")

        except ProviderError:
            raise
        except Exception as e:
            logger.error(
                "Unexpected error deleting Google event", event_id=provider_event_id, error=str(e)
            )
            raise self._error(f"Failed to delete event: {e}", cause=e) from e
