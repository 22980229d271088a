"""
Provider dispatch: one adapter class per Provider member.
Adding a provider means adding an entry here; the workflow engine only sees
the CalendarProvider interface.
"""

from app.models.domain.event_group_domain import Account, Provider
from app.services.calendar.base import CalendarProvider
from app.services.calendar.google_client import GoogleCalendarService
from app.services.calendar.microsoft_client import MicrosoftCalendarService
from app.services.errors import UnsupportedProvider

PROVIDER_ADAPTERS: dict[Provider, type[CalendarProvider]] = {
    Provider.GOOGLE: GoogleCalendarService,
    Provider.AZURE_AD: MicrosoftCalendarService,
}


def resolve_provider(value: str | None) -> Provider:
    try:
        return Provider(value)
    except ValueError:
        raise UnsupportedProvider(value) from None


def get_calendar_service(account: Account) -> CalendarProvider:
    """Build a per-operation adapter for the account's provider."""
    adapter_cls = PROVIDER_ADAPTERS.get(resolve_provider(account.provider))
    if adapter_cls is None:
        raise UnsupportedProvider(account.provider)
    return adapter_cls(account.access_token, account.refresh_token)
