"""
Event-group workflow engine.

Creates candidate slots (optionally materialized as blocker events in the
organizer's calendar), confirms one slot, and deletes groups. Every operation
receives the caller and the store explicitly; provider adapters come from an
injectable factory.

Failure policy:
    - ownership/existence checks run before any mutation and propagate;
    - per-slot provider failures while creating blockers are captured, logged and
      reported on the result, never rolled back;
    - provider cleanup failures while deleting or confirming are logged and
      swallowed, and the local state still converges.
"""

from collections.abc import Callable
from dataclasses import dataclass, field

from app.infrastructure.observability.logging import get_logger
from app.models.domain.event_group_domain import (
    Account,
    Attendee,
    CallerContext,
    Event,
    EventGroup,
    NewEvent,
)
from app.repositories.event_group_repository import EventGroupRepository
from app.services.access_guard import ensure_group_access
from app.services.attendee_reconciliation import reconcile_confirmed_attendees, unique_emails
from app.services.calendar.base import CalendarProvider, ProviderEventInput
from app.services.calendar.factory import get_calendar_service
from app.services.errors import (
    GroupAlreadyConfirmed,
    NoSlotSelected,
    PrimaryAccountMissing,
    ProviderError,
    UnsupportedProvider,
)
from app.utils.settle import Outcome, failures, settle_all

logger = get_logger(__name__)

CalendarFactory = Callable[[Account], CalendarProvider]


@dataclass
class EventGroupCreation:
    """A created group plus the per-slot outcome of blocker materialization."""

    group: EventGroup
    outcomes: list[Outcome[Event, Event]] = field(default_factory=list)

    @property
    def unmaterialized_event_ids(self) -> list[str]:
        return [o.item.id for o in failures(self.outcomes)]


async def get_event_group(
    caller: CallerContext, store: EventGroupRepository, group_id: str
) -> EventGroup:
    """Load a live group owned by the caller (NotFound, then Unauthorized)."""
    group = await store.get_by_id(group_id)
    return ensure_group_access(group, caller)


async def create_event_group(
    caller: CallerContext,
    store: EventGroupRepository,
    title: str,
    create_blocker: bool,
    events: list[NewEvent],
    *,
    calendar_factory: CalendarFactory = get_calendar_service,
) -> EventGroupCreation:
    primary = caller.primary_account
    if primary is None:
        raise PrimaryAccountMissing(caller.user_id)

    # Resolve the adapter before writing so an unsupported provider leaves no rows
    service = calendar_factory(primary) if create_blocker else None

    group = await store.create(caller.user_id, title, create_blocker, events)

    if service is None:
        return EventGroupCreation(group=group)

    account_emails = caller.account_emails()

    async def materialize(event: Event) -> Event:
        result = await service.create_event(
            ProviderEventInput(
                id=event.id,
                title=event.title,
                start_date=event.start_date,
                end_date=event.end_date,
                attendee_emails=unique_emails(event.attendee_emails(), account_emails),
            )
        )
        if result.event.microsoft_id:
            # Needed later to update or delete the provider copy
            await store.set_microsoft_id(event.id, result.event.microsoft_id)
            event.microsoft_id = result.event.microsoft_id
        return event

    outcomes = await settle_all(group.events, materialize)

    for outcome in failures(outcomes):
        logger.warning(
            "Blocker event could not be created",
            group_id=group.id,
            event_id=outcome.item.id,
            provider=service.provider.value,
            error=str(outcome.error),
            error_type=type(outcome.error).__name__,
        )

    logger.info(
        "Blocker events materialized",
        group_id=group.id,
        requested=len(outcomes),
        failed=len(failures(outcomes)),
    )
    return EventGroupCreation(group=group, outcomes=outcomes)


async def _remove_provider_events(
    service: CalendarProvider, events: list[Event], group_id: str
) -> list[Outcome]:
    """Best-effort delete of provider copies; an already-gone event counts as removed."""
    targets = []
    for event in events:
        provider_event_id = service.provider_event_id(event)
        if provider_event_id:
            targets.append((event, provider_event_id))
        else:
            logger.info(
                "Event was never materialized, skipping provider delete",
                group_id=group_id,
                event_id=event.id,
            )

    async def remove(target: tuple[Event, str]) -> None:
        _, provider_event_id = target
        try:
            await service.delete_event(provider_event_id)
        except ProviderError as e:
            if not e.is_gone:
                raise
            logger.info("Provider event already gone", provider_event_id=provider_event_id)

    outcomes = await settle_all(targets, remove)

    for outcome in failures(outcomes):
        event, provider_event_id = outcome.item
        logger.warning(
            "Failed to delete the event from the calendar service",
            group_id=group_id,
            event_id=event.id,
            provider_event_id=provider_event_id,
            provider=service.provider.value,
            error=str(outcome.error),
        )
    return outcomes


async def delete_event_group(
    caller: CallerContext,
    store: EventGroupRepository,
    group_id: str,
    *,
    calendar_factory: CalendarFactory = get_calendar_service,
) -> EventGroup:
    """Remove provider blockers best-effort, then soft-delete the group and its events."""
    group = await get_event_group(caller, store, group_id)

    if group.create_blocker:
        try:
            service = calendar_factory(group.account)
        except UnsupportedProvider as e:
            logger.error(
                "Cannot clean up blockers for unsupported provider",
                group_id=group.id,
                provider=e.provider,
            )
        else:
            await _remove_provider_events(service, group.live_events(), group.id)

    deleted = await store.soft_delete_group_and_events(group.id)
    logger.info("Event group deleted", group_id=group.id, user_id=caller.user_id)
    return deleted


async def _apply_winner(
    service: CalendarProvider,
    store: EventGroupRepository,
    group: EventGroup,
    event: Event,
    title: str,
    attendee_emails: list[str],
    add_conference: bool,
) -> None:
    """Push the confirmed slot to the provider: update the blocker, or create it."""
    if group.create_blocker:
        provider_event_id = service.provider_event_id(event)
        if provider_event_id:
            try:
                await service.update_event(
                    provider_event_id,
                    title=title,
                    attendee_emails=attendee_emails,
                    has_conference=add_conference,
                )
                return
            except ProviderError as e:
                if not e.is_gone:
                    raise
                logger.info(
                    "Blocker missing at provider, creating confirmed event",
                    group_id=group.id,
                    event_id=event.id,
                )

    result = await service.create_event(
        ProviderEventInput(
            id=event.id,
            title=title,
            start_date=event.start_date,
            end_date=event.end_date,
            attendee_emails=attendee_emails,
        )
    )
    if result.event.microsoft_id:
        await store.set_microsoft_id(event.id, result.event.microsoft_id)
        event.microsoft_id = result.event.microsoft_id

    if add_conference:
        await service.update_event(service.provider_event_id(event), has_conference=True)


async def confirm_event(
    caller: CallerContext,
    store: EventGroupRepository,
    event_id: str | None,
    *,
    title: str | None = None,
    attendees: list[Attendee] | None = None,
    add_conference: bool = False,
    calendar_factory: CalendarFactory = get_calendar_service,
) -> Event:
    """
    Confirm one candidate slot of a group.

    The winner is updated at the provider first; a ProviderError there aborts
    before anything local changes. Losing slots are then removed from the
    provider best-effort, and the store commits winner, losers and group state
    in one transaction.
    """
    if not event_id:
        raise NoSlotSelected()

    event = await store.get_event(event_id)
    group = await get_event_group(caller, store, event.event_group_id)

    if group.is_selection_done:
        raise GroupAlreadyConfirmed(group.id)

    final_title = title or event.title
    final_attendees = (
        reconcile_confirmed_attendees(attendees) if attendees is not None else event.attendees
    )
    provider_emails = unique_emails([a.email for a in final_attendees], caller.account_emails())

    service = calendar_factory(group.account)
    await _apply_winner(
        service, store, group, event, final_title, provider_emails, add_conference
    )

    losers = [e for e in group.live_events() if e.id != event.id]
    if group.create_blocker and losers:
        await _remove_provider_events(service, losers, group.id)

    confirmed = await store.confirm_event(
        group.id, event.id, final_title, final_attendees, [e.id for e in losers]
    )
    logger.info(
        "Event confirmed",
        group_id=group.id,
        event_id=event.id,
        user_id=caller.user_id,
        add_conference=add_conference,
    )
    return confirmed
