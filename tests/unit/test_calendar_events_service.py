"""
Tests for the aggregated calendar view.
"""

from datetime import UTC, datetime, timedelta

import pytest
from conftest import USER_ID, FakeCalendarProvider, make_account

from app.models.domain.event_group_domain import CallerContext, Event, Provider
from app.services.calendar_events_service import list_calendar_events
from app.services.errors import ProviderError

START = datetime(2030, 5, 1, 9, 0, tzinfo=UTC)


def _event(event_id: str, hours: int) -> Event:
    return Event(
        id=event_id,
        title=event_id,
        start_date=START + timedelta(hours=hours),
        end_date=START + timedelta(hours=hours + 1),
    )


@pytest.mark.asyncio
async def test_events_from_all_accounts_sorted_and_tagged():
    google = make_account("acc-google")
    outlook = make_account("acc-outlook", provider="azure-ad", is_primary=False)
    providers = {
        "acc-google": FakeCalendarProvider(Provider.GOOGLE),
        "acc-outlook": FakeCalendarProvider(Provider.AZURE_AD),
    }
    providers["acc-google"].listed_events = [_event("g-late", 5), _event("g-early", 1)]
    providers["acc-outlook"].listed_events = [_event("o-mid", 3)]

    result = await list_calendar_events(
        CallerContext(user_id=USER_ID, accounts=[google, outlook]),
        calendar_factory=lambda account: providers[account.id],
    )

    assert [e.id for e in result.events] == ["g-early", "o-mid", "g-late"]
    assert {e.id: e.account_id for e in result.events} == {
        "g-early": "acc-google",
        "o-mid": "acc-outlook",
        "g-late": "acc-google",
    }
    assert result.failed_account_ids == []


@pytest.mark.asyncio
async def test_failing_account_is_reported_not_fatal():
    google = make_account("acc-google")
    outlook = make_account("acc-outlook", provider="azure-ad", is_primary=False)
    healthy = FakeCalendarProvider(Provider.GOOGLE)
    healthy.listed_events = [_event("g-1", 1)]
    broken = FakeCalendarProvider(Provider.AZURE_AD)
    broken.get_events_error = ProviderError("azure-ad", "get_events failed", status_code=503)

    result = await list_calendar_events(
        CallerContext(user_id=USER_ID, accounts=[google, outlook]),
        calendar_factory=lambda account: healthy if account.id == "acc-google" else broken,
    )

    assert [e.id for e in result.events] == ["g-1"]
    assert result.failed_account_ids == ["acc-outlook"]


@pytest.mark.asyncio
async def test_no_accounts_returns_empty_view():
    result = await list_calendar_events(CallerContext(user_id=USER_ID))

    assert result.events == []
    assert result.failed_account_ids == []
