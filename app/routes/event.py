"""
Event API Routes
Aggregated calendar view and slot confirmation.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.auth.caller import get_caller, get_event_group_store
from app.infrastructure.observability.logging import get_logger
from app.models.api.event_group_request import ConfirmEventRequest
from app.models.api.event_group_response import CalendarEventsResponse, EventResponse
from app.models.domain.event_group_domain import CallerContext
from app.repositories.event_group_repository import EventGroupRepository
from app.routes.errors import scheduling_http_error
from app.services import calendar_events_service, event_group_service
from app.services.errors import SchedulingError

logger = get_logger(__name__)

router = APIRouter(prefix="/events", tags=["events"])


@router.get("", response_model=CalendarEventsResponse)
async def list_events(
    caller: CallerContext = Depends(get_caller),
    start_date: datetime | None = Query(default=None, description="Window start"),
    end_date: datetime | None = Query(default=None, description="Window end"),
):
    """Events from every linked calendar, sorted by start date."""
    if start_date and end_date and end_date <= start_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="end_date must be after start_date",
        )

    try:
        aggregated = await calendar_events_service.list_calendar_events(
            caller, start_date, end_date
        )
        events = [EventResponse.from_domain(e) for e in aggregated.events]
        return CalendarEventsResponse(
            events=events,
            total_count=len(events),
            failed_account_ids=aggregated.failed_account_ids,
        )

    except SchedulingError as e:
        raise scheduling_http_error(e)
    except Exception as e:
        logger.error("Error listing calendar events", user_id=caller.user_id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list events",
        )


@router.post("/{event_id}/confirm", response_model=EventResponse)
async def confirm_event(
    event_id: str,
    request: ConfirmEventRequest,
    caller: CallerContext = Depends(get_caller),
    store: EventGroupRepository = Depends(get_event_group_store),
):
    """Confirm one slot; the other slots of the group are discarded."""
    try:
        event = await event_group_service.confirm_event(
            caller,
            store,
            event_id,
            title=request.title,
            attendees=request.attendees,
            add_conference=request.add_conference,
        )
        return EventResponse.from_domain(event)

    except SchedulingError as e:
        logger.warning(
            "Event confirmation failed", event_id=event_id, user_id=caller.user_id, error=str(e)
        )
        raise scheduling_http_error(e)
    except Exception as e:
        logger.error("Error confirming event", event_id=event_id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to confirm event",
        )
