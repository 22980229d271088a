"""
Microsoft Graph calendar adapter.

Graph assigns its own event ids, so create results carry that id as
microsoft_id for the caller to persist. The system id travels in a
single-value extended property so events read back can be matched.
"""

from datetime import datetime
from typing import Any

from app.config import settings
from app.infrastructure.observability.logging import get_logger
from app.models.domain.event_group_domain import Attendee, Event, Provider
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

GRAPH_API_BASE_URL = "https://graph.microsoft.com/v1.0"
MICROSOFT_TOKEN_URL = "https://login.microsoftonline.com/common/oauth2/v2.0/token"
AZURE_SCOPES = "openid profile email offline_access User.Read Calendars.ReadWrite"

EXTENDED_PROP_FLAG = "String {66f5a359-4659-4830-9070-00047ec6ac6e} Name isAgreeToEvent"
EXTENDED_PROP_ID = "String {66f5a359-4659-4830-9070-00047ec6ac6e} Name id"

# teamsForBusiness > skypeForBusiness > skypeForConsumer > first allowed
MEETING_PROVIDER_PRIORITY = ("teamsForBusiness", "skypeForBusiness", "skypeForConsumer")
DEFAULT_MEETING_PROVIDER = "skypeForConsumer"
PAGE_SIZE = 100

GRAPH_DATETIME_FORMAT = "%Y-%m-%dT%H:%M:%S"


def _extended_property(item: dict[str, Any], prop_id: str) -> str | None:
    for prop in item.get("singleValueExtendedProperties") or []:
        if str(prop.get("id", "")).lower() == prop_id.lower():
            return prop.get("value")
    return None


class MicrosoftCalendarService(CalendarProvider):
    """Graph operations on the signed-in user's default calendar."""

    provider = Provider.AZURE_AD
    token_url = MICROSOFT_TOKEN_URL

    def _refresh_payload(self) -> dict[str, str]:
        return {
            "client_id": settings.AZURE_AD_CLIENT_ID or "",
            "client_secret": settings.AZURE_AD_CLIENT_SECRET or "",
            "refresh_token": self._refresh_token or "",
            "grant_type": "refresh_token",
            "scope": AZURE_SCOPES,
        }

    def provider_event_id(self, event: Event) -> str | None:
        return event.microsoft_id

    def _to_event(self, item: dict[str, Any]) -> Event:
        system_id = _extended_property(item, EXTENDED_PROP_ID)

        return Event(
            id=system_id or item.get("id"),
            microsoft_id=item.get("id"),
            title=item.get("subject") or "-",
            description=(item.get("body") or {}).get("content") or "",
            start_date=parse_provider_datetime((item.get("start") or {}).get("dateTime")),
            end_date=parse_provider_datetime((item.get("end") or {}).get("dateTime")),
            is_agree_to_event=_extended_property(item, EXTENDED_PROP_FLAG) == "true",
            attendees=[
                Attendee(
                    email=a["emailAddress"]["address"],
                    name=a["emailAddress"].get("name") or "",
                    provider=self.provider.value,
                    response_status=map_response_status((a.get("status") or {}).get("response")),
                )
                for a in item.get("attendees") or []
                if (a.get("emailAddress") or {}).get("address")
            ],
        )

    def _attendees_payload(self, emails: list[str], response: str | None = None) -> list[dict]:
        attendees = []
        for email in emails:
            attendee: dict[str, Any] = {
                "emailAddress": {"address": email, "name": email},
                "type": "required",
            }
            if response:
                attendee["status"] = {"response": response}
            attendees.append(attendee)
        return attendees

    def _list_request(
        self, start_date: datetime | None, end_date: datetime | None
    ) -> tuple[str, dict[str, Any]]:
        """
        URL and query for the first page of events overlapping the window.

        calendarView expands recurrences but requires both bounds; an open
        window falls back to /me/events filtered on the bound that is given.
        """
        params: dict[str, Any] = {
            "$expand": (
                "singleValueExtendedProperties($filter="
                f"(id eq '{EXTENDED_PROP_FLAG}') or (id eq '{EXTENDED_PROP_ID}'))"
            ),
            "$top": PAGE_SIZE,
        }

        if start_date and end_date:
            params["startDateTime"] = to_utc(start_date).isoformat()
            params["endDateTime"] = to_utc(end_date).isoformat()
            return f"{GRAPH_API_BASE_URL}/me/calendarview", params

        clauses = []
        if start_date:
            clauses.append(
                f"end/dateTime ge '{to_utc(start_date).strftime(GRAPH_DATETIME_FORMAT)}'"
            )
        if end_date:
            clauses.append(
                f"start/dateTime le '{to_utc(end_date).strftime(GRAPH_DATETIME_FORMAT)}'"
            )
        if clauses:
            params["$filter"] = " and ".join(clauses)
        params["$orderby"] = "start/dateTime"
        return f"{GRAPH_API_BASE_URL}/me/events", params

    async def get_events(
        self, start_date: datetime | None = None, end_date: datetime | None = None
    ) -> ProviderEventsResult:
        url, params = self._list_request(start_date, end_date)

        try:
            items: list[dict[str, Any]] = []
            pages = 0
            while url:
                data = await self._request("GET", url, "get_events", params=params)
                items.extend(data.get("value", []))
                pages += 1
                # nextLink already carries every query option
                url, params = data.get("@odata.nextLink"), None

            events = [self._to_event(item) for item in items]
            logger.info("Microsoft events listed", event_count=len(events), pages=pages)
            return ProviderEventsResult(raw_data={"value": items}, events=events)

        except ProviderError:
            raise
        except Exception as e:
            logger.error("Unexpected error listing Microsoft events", error=str(e))
            raise self._error(f"Failed to list events: {e}", cause=e) from e

    async def create_event(self, data: ProviderEventInput) -> ProviderEventResult:
        body = {
            "subject": data.title,
            "start": {
                "dateTime": to_utc(data.start_date).strftime(GRAPH_DATETIME_FORMAT),
                "timeZone": "UTC",
            },
            "end": {
                "dateTime": to_utc(data.end_date).strftime(GRAPH_DATETIME_FORMAT),
                "timeZone": "UTC",
            },
            "attendees": self._attendees_payload(data.attendee_emails),
            "singleValueExtendedProperties": [
                {"id": EXTENDED_PROP_FLAG, "value": "true"},
                {"id": EXTENDED_PROP_ID, "value": data.id},
            ],
        }

        try:
            logger.info("Creating Microsoft event", event_id=data.id)
            response = await self._request(
                "POST", f"{GRAPH_API_BASE_URL}/me/calendar/events", "create_event", json=body
            )
            event = self._to_event(response)
            # The created payload does not echo extended properties unless expanded
            event.id = data.id
            return ProviderEventResult(raw_data=response, event=event)

        except ProviderError:
            raise
        except Exception as e:
            logger.error("Unexpected error creating Microsoft event", event_id=data.id, error=str(e))
            raise self._error(f"Failed to create event: {e}", cause=e) from e

    async def update_event(
        self,
        provider_event_id: str,
        title: str | None = None,
        attendee_emails: list[str] | None = None,
        has_conference: bool = False,
    ) -> ProviderEventResult:
        body: dict[str, Any] = {}

        if attendee_emails is not None:
            body["attendees"] = self._attendees_payload(
                attendee_emails, response=CONFIRMED_PROVIDER_STATUS
            )
        if has_conference:
            # Not every meeting provider is enabled for every tenant
            body["isOnlineMeeting"] = True
            body["onlineMeetingProvider"] = await self.get_allowed_meeting_provider()
        if title:
            body["subject"] = title

        try:
            logger.info(
                "Updating Microsoft event",
                event_id=provider_event_id,
                fields_updated=list(body.keys()),
            )
            response = await self._request(
                "PATCH",
                f"{GRAPH_API_BASE_URL}/me/events/{provider_event_id}",
                "update_event",
                json=body,
            )
            return ProviderEventResult(raw_data=response, event=self._to_event(response))

        except ProviderError:
            raise
        except Exception as e:
            logger.error(
                "Unexpected error updating Microsoft event",
                event_id=provider_event_id,
                error=str(e),
            )
            raise self._error(f"Failed to update event: {e}", cause=e) from e

    async def get_allowed_meeting_provider(self) -> str:
        """Pick the best allowed online-meeting provider; never raises."""
        try:
            calendar = await self._request("GET", f"{GRAPH_API_BASE_URL}/me/calendar", "get_calendar")
            allowed = calendar.get("allowedOnlineMeetingProviders") or []
        except Exception as e:
            logger.debug("Could not read allowed meeting providers", error=str(e))
            return DEFAULT_MEETING_PROVIDER

        for candidate in MEETING_PROVIDER_PRIORITY:
            if candidate in allowed:
                return candidate
        return allowed[0] if allowed else DEFAULT_MEETING_PROVIDER

    async def delete_event(self, provider_event_id: str) -> None:
        try:
            logger.info("Deleting Microsoft event", event_id=provider_event_id)
            await self._request(
                "DELETE",
                f"{GRAPH_API_BASE_URL}/me/calendar/events/{provider_event_id}",
                "delete_event",
            )

        except ProviderError:
            raise
        except Exception as e:
            logger.error(
                "Unexpected error deleting Microsoft event",
                event_id=provider_event_id,
                error=str(e),
            )
            raise self._error(f"Failed to delete event: {e}", cause=e) from e
