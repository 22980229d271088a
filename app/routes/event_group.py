"""
Event Group API Routes
Propose candidate slots, read a group, delete a group.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from app.auth.caller import get_caller, get_event_group_store
from app.infrastructure.observability.logging import get_logger
from app.models.api.event_group_request import CreateEventGroupRequest
from app.models.api.event_group_response import EventGroupResponse
from app.models.domain.event_group_domain import CallerContext
from app.repositories.event_group_repository import EventGroupRepository
from app.routes.errors import scheduling_http_error
from app.services import event_group_service
from app.services.errors import SchedulingError

logger = get_logger(__name__)

router = APIRouter(prefix="/event-groups", tags=["event-groups"])


@router.post("", response_model=EventGroupResponse, status_code=status.HTTP_201_CREATED)
async def create_event_group(
    request: CreateEventGroupRequest,
    caller: CallerContext = Depends(get_caller),
    store: EventGroupRepository = Depends(get_event_group_store),
):
    """Create a group of candidate slots, optionally held in the primary calendar."""
    try:
        creation = await event_group_service.create_event_group(
            caller,
            store,
            request.title,
            request.create_blocker,
            [e.to_new_event() for e in request.events],
        )
        return EventGroupResponse.from_domain(
            creation.group, unmaterialized_event_ids=creation.unmaterialized_event_ids
        )

    except SchedulingError as e:
        logger.warning("Event group creation rejected", user_id=caller.user_id, error=str(e))
        raise scheduling_http_error(e)
    except Exception as e:
        logger.error("Error creating event group", user_id=caller.user_id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create event group",
        )


@router.get("/{group_id}", response_model=EventGroupResponse)
async def get_event_group(
    group_id: str,
    caller: CallerContext = Depends(get_caller),
    store: EventGroupRepository = Depends(get_event_group_store),
):
    try:
        group = await event_group_service.get_event_group(caller, store, group_id)
        return EventGroupResponse.from_domain(group)

    except SchedulingError as e:
        raise scheduling_http_error(e)
    except Exception as e:
        logger.error("Error loading event group", group_id=group_id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load event group",
        )


@router.delete("/{group_id}", response_model=EventGroupResponse)
async def delete_event_group(
    group_id: str,
    caller: CallerContext = Depends(get_caller),
    store: EventGroupRepository = Depends(get_event_group_store),
):
    """Remove calendar blockers (best effort) and soft-delete the group."""
    try:
        group = await event_group_service.delete_event_group(caller, store, group_id)
        return EventGroupResponse.from_domain(group)

    except SchedulingError as e:
        raise scheduling_http_error(e)
    except Exception as e:
        logger.error("Error deleting event group", group_id=group_id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete event group",
        )
