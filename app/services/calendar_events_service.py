"""
Aggregated calendar view across every account linked by the caller.
"""

from dataclasses import dataclass, field
from datetime import datetime

from app.infrastructure.observability.logging import get_logger
from app.models.domain.event_group_domain import Account, CallerContext, Event
from app.services.calendar.factory import get_calendar_service
from app.services.event_group_service import CalendarFactory
from app.utils.settle import failures, settle_all

logger = get_logger(__name__)


@dataclass
class AggregatedEvents:
    events: list[Event] = field(default_factory=list)
    failed_account_ids: list[str] = field(default_factory=list)


async def list_calendar_events(
    caller: CallerContext,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    *,
    calendar_factory: CalendarFactory = get_calendar_service,
) -> AggregatedEvents:
    """
    Read events from all linked calendars, tagged with their account id.

    An account whose provider fails is left out and reported; the others are
    still returned.
    """

    async def read(account: Account) -> list[Event]:
        result = await calendar_factory(account).get_events(start_date, end_date)
        for event in result.events:
            event.account_id = account.id
        return result.events

    outcomes = await settle_all(caller.accounts, read)

    for outcome in failures(outcomes):
        logger.warning(
            "Could not read calendar for account",
            user_id=caller.user_id,
            account_id=outcome.item.id,
            provider=outcome.item.provider,
            error=str(outcome.error),
        )

    events = [event for outcome in outcomes if outcome.ok for event in outcome.value]
    events.sort(key=lambda e: e.start_date)

    return AggregatedEvents(
        events=events,
        failed_account_ids=[o.item.id for o in failures(outcomes)],
    )
