# app/models/api/event_group_response.py
"""
Event group API response models.
Used by routes for output formatting. Tokens never appear here.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from app.models.api.account_response import AccountResponse
from app.models.domain.event_group_domain import Attendee, Event, EventGroup, GroupState


class EventResponse(BaseModel):
    id: str = Field(..., description="System event id")
    event_group_id: str | None = Field(None, description="Owning event group")
    account_id: str | None = Field(None, description="Account whose calendar holds the event")
    microsoft_id: str | None = Field(None, description="Graph id for Microsoft-backed events")
    title: str = Field(..., description="Event title")
    description: str = Field(default="", description="Event description")
    start_date: datetime = Field(..., description="Event start")
    end_date: datetime = Field(..., description="Event end")
    attendees: list[Attendee] = Field(default_factory=list, description="Attendees")
    is_agree_to_event: bool = Field(..., description="Created by this system")
    deleted_at: datetime | None = Field(None, description="Soft-delete timestamp")

    @classmethod
    def from_domain(cls, event: Event) -> "EventResponse":
        return cls(**event.model_dump(exclude={"user_id"}))


class EventGroupResponse(BaseModel):
    id: str = Field(..., description="Event group id")
    user_id: str = Field(..., description="Owner")
    account_id: str = Field(..., description="Account holding the blockers")
    title: str = Field(..., description="Group title")
    create_blocker: bool = Field(..., description="Candidate slots held in the calendar")
    is_selection_done: bool = Field(..., description="A slot has been confirmed")
    state: GroupState = Field(..., description="Lifecycle state")
    confirmed_event_id: str | None = Field(None, description="Confirmed slot")
    created_at: datetime | None = Field(None, description="Creation time")
    updated_at: datetime | None = Field(None, description="Last update time")
    deleted_at: datetime | None = Field(None, description="Soft-delete timestamp")
    events: list[EventResponse] = Field(default_factory=list, description="Slots by start date")
    account: AccountResponse | None = Field(None, description="Owning account")
    unmaterialized_event_ids: list[str] = Field(
        default_factory=list, description="Slots whose calendar blocker could not be created"
    )

    @classmethod
    def from_domain(
        cls, group: EventGroup, unmaterialized_event_ids: list[str] | None = None
    ) -> "EventGroupResponse":
        return cls(
            id=group.id,
            user_id=group.user_id,
            account_id=group.account_id,
            title=group.title,
            create_blocker=group.create_blocker,
            is_selection_done=group.is_selection_done,
            state=group.state,
            confirmed_event_id=group.confirmed_event_id,
            created_at=group.created_at,
            updated_at=group.updated_at,
            deleted_at=group.deleted_at,
            events=[
                EventResponse.from_domain(e)
                for e in sorted(group.events, key=lambda e: e.start_date)
            ],
            account=AccountResponse.from_domain(group.account) if group.account else None,
            unmaterialized_event_ids=unmaterialized_event_ids or [],
        )


class CalendarEventsResponse(BaseModel):
    events: list[EventResponse] = Field(..., description="Events across linked calendars")
    total_count: int = Field(..., description="Number of events")
    failed_account_ids: list[str] = Field(
        default_factory=list, description="Accounts whose calendar could not be read"
    )
