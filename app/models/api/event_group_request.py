# app/models/api/event_group_request.py
"""
Event group API request models.
Used by routes for input validation.
"""

from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from app.models.domain.event_group_domain import Attendee, NewEvent
from app.services.attendee_reconciliation import merge_attendee_emails


class CandidateEventRequest(BaseModel):
    """One proposed time slot."""

    id: str | None = Field(default=None, description="Ignored; ids are assigned server-side")
    title: str = Field(..., max_length=500, description="Slot title")
    start_date: datetime = Field(..., description="Slot start")
    end_date: datetime = Field(..., description="Slot end")
    attendees: list[Attendee] = Field(default_factory=list, description="Resolved attendees")
    attendee_emails: list[str] = Field(
        default_factory=list, description="Additional attendee email addresses"
    )

    @model_validator(mode="after")
    def _check_range(self):
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self

    def to_new_event(self) -> NewEvent:
        return NewEvent(
            title=self.title,
            start_date=self.start_date,
            end_date=self.end_date,
            attendees=merge_attendee_emails(self.attendees, self.attendee_emails),
        )


class CreateEventGroupRequest(BaseModel):
    """Request for proposing a set of candidate slots."""

    title: str = Field(..., max_length=500, description="Group title")
    create_blocker: bool = Field(
        ..., description="Hold every candidate slot as a tentative event in the calendar"
    )
    events: list[CandidateEventRequest] = Field(
        ..., min_length=1, description="Candidate slots"
    )


class ConfirmEventRequest(BaseModel):
    """Request for confirming one candidate slot."""

    add_conference: bool = Field(default=False, description="Attach an online meeting")
    title: str | None = Field(default=None, max_length=500, description="Final event title")
    attendees: list[Attendee] | None = Field(
        default=None, description="Final attendee list (directory and manually typed)"
    )
