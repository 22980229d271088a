"""
Calendar provider adapter contract and shared HTTP plumbing.

Each provider implements the same capability set (get/create/update/delete
events) over its REST API and translates payloads into the canonical Event
shape. Failures of any kind leave an adapter as a ProviderError; nothing is
retried here except a single refresh-token exchange after a 401.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import httpx
from pydantic import BaseModel, Field

from app.config import settings
from app.infrastructure.observability.logging import get_logger
from app.models.domain.event_group_domain import Event, Provider
from app.services.errors import ProviderError

logger = get_logger(__name__)

_http_client: httpx.AsyncClient | None = None


def get_http_client() -> httpx.AsyncClient:
    """Process-wide client shared by all adapters; tokens travel per request."""
    global _http_client
    if _http_client is None or _http_client.is_closed:
        timeout = httpx.Timeout(settings.PROVIDER_REQUEST_TIMEOUT)
        limits = httpx.Limits(max_keepalive_connections=20, max_connections=50)
        _http_client = httpx.AsyncClient(timeout=timeout, limits=limits)
    return _http_client


async def close_http_client() -> None:
    global _http_client
    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None


class ProviderEventInput(BaseModel):
    """Payload for materializing one candidate slot in a provider calendar."""

    id: str
    title: str
    start_date: datetime
    end_date: datetime
    attendee_emails: list[str] = Field(default_factory=list)


@dataclass
class ProviderEventResult:
    raw_data: dict[str, Any]
    event: Event


@dataclass
class ProviderEventsResult:
    raw_data: dict[str, Any]
    events: list[Event] = field(default_factory=list)


def parse_provider_datetime(value: str | None) -> datetime | None:
    """
    Parse provider timestamps into aware datetimes.

    Values without an offset are UTC. Fractional seconds beyond microseconds
    (Graph sends seven digits) are truncated.
    """
    if not value:
        return None

    value = value.replace("Z", "+00:00")
    if "." in value:
        head, _, tail = value.partition(".")
        digits = ""
        rest = tail
        while rest and rest[0].isdigit():
            digits += rest[0]
            rest = rest[1:]
        value = f"{head}.{digits[:6].ljust(6, '0')}{rest}" if digits else head + rest

    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        try:
            parsed = datetime.strptime(value, "%Y-%m-%d")
        except ValueError:
            return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def to_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


class CalendarProvider(ABC):
    """
    One linked account's calendar, reached through the provider's REST API.

    An instance lives for a single workflow operation. A refreshed access token
    is kept on the instance only and never written back to the account record.
    """

    provider: Provider
    token_url: str

    def __init__(
        self,
        access_token: str | None,
        refresh_token: str | None = None,
        *,
        client: httpx.AsyncClient | None = None,
    ):
        self._access_token = access_token
        self._refresh_token = refresh_token
        self._client = client or get_http_client()
        self._refreshed = False

    # ------------------------------------------------------------------
    # Capability set
    # ------------------------------------------------------------------

    @abstractmethod
    async def get_events(
        self, start_date: datetime | None = None, end_date: datetime | None = None
    ) -> ProviderEventsResult: ...

    @abstractmethod
    async def create_event(self, data: ProviderEventInput) -> ProviderEventResult: ...

    @abstractmethod
    async def update_event(
        self,
        provider_event_id: str,
        title: str | None = None,
        attendee_emails: list[str] | None = None,
        has_conference: bool = False,
    ) -> ProviderEventResult: ...

    @abstractmethod
    async def delete_event(self, provider_event_id: str) -> None: ...

    @abstractmethod
    def provider_event_id(self, event: Event) -> str | None:
        """Id under which the provider knows this event, if it was materialized."""

    # ------------------------------------------------------------------
    # HTTP plumbing
    # ------------------------------------------------------------------

    @abstractmethod
    def _refresh_payload(self) -> dict[str, str]:
        """Form fields for the refresh-token grant."""

    def _auth_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._access_token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _error(self, message: str, **kwargs) -> ProviderError:
        return ProviderError(self.provider.value, message, **kwargs)

    async def _request(
        self,
        method: str,
        url: str,
        operation: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Send an authorized request, refreshing the token once on 401."""
        if not self._access_token:
            await self._refresh_access_token()

        response = await self._send(method, url, operation, params=params, json=json)

        if response.status_code == 401 and self._refresh_token and not self._refreshed:
            logger.info(
                "Provider rejected access token, refreshing",
                provider=self.provider.value,
                operation=operation,
            )
            await self._refresh_access_token()
            response = await self._send(method, url, operation, params=params, json=json)

        return self._handle_api_response(response, operation)

    async def _send(
        self,
        method: str,
        url: str,
        operation: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        try:
            return await self._client.request(
                method, url, headers=self._auth_headers(), params=params, json=json
            )
        except httpx.TimeoutException as e:
            logger.warning(
                "Provider request timed out", provider=self.provider.value, operation=operation
            )
            raise self._error(f"{operation} timed out", cause=e) from e
        except httpx.RequestError as e:
            logger.warning(
                "Provider request failed",
                provider=self.provider.value,
                operation=operation,
                error=str(e),
            )
            raise self._error(f"{operation} request failed: {e}", cause=e) from e

    async def _refresh_access_token(self) -> None:
        if not self._refresh_token:
            raise self._error("No refresh token available", status_code=401)

        try:
            response = await self._client.post(self.token_url, data=self._refresh_payload())
        except httpx.RequestError as e:
            raise self._error(f"token refresh failed: {e}", status_code=401, cause=e) from e

        if not response.is_success:
            logger.error(
                "Provider token refresh failed",
                provider=self.provider.value,
                status_code=response.status_code,
            )
            raise self._error("Calendar authorization expired. Please reconnect.", status_code=401)

        try:
            data = response.json()
        except ValueError as e:
            raise self._error("Invalid token refresh response", status_code=401, cause=e) from e

        access_token = data.get("access_token")
        if not access_token:
            raise self._error("Token refresh returned no access token", status_code=401)

        self._access_token = access_token
        if data.get("refresh_token"):
            self._refresh_token = data["refresh_token"]
        self._refreshed = True

    def _handle_api_response(self, response: httpx.Response, operation: str) -> dict[str, Any]:
        logger.debug(
            f"Provider {operation} response",
            provider=self.provider.value,
            status_code=response.status_code,
        )

        if response.is_success:
            if response.status_code == 204 or not response.content:
                return {}
            try:
                return response.json()
            except ValueError as e:
                raise self._error(
                    f"Invalid {operation} response format", status_code=response.status_code, cause=e
                ) from e

        try:
            error_data = response.json() if response.content else {}
        except ValueError:
            error_data = {}

        error_info = error_data.get("error", {}) if isinstance(error_data, dict) else {}
        if isinstance(error_info, dict):
            error_message = error_info.get("message") or f"HTTP {response.status_code}"
        else:
            error_message = str(error_info)

        logger.warning(
            f"Provider {operation} failed",
            provider=self.provider.value,
            status_code=response.status_code,
            error_message=error_message,
        )
        raise self._error(
            f"{operation} failed: {error_message}",
            status_code=response.status_code,
            response_data=error_data if isinstance(error_data, dict) else {},
        )
