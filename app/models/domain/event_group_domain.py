# app/models/domain/event_group_domain.py
"""
Event Group Domain Models
Users, linked calendar accounts, event groups and their candidate events.
Used by the store, the workflow engine and the provider adapters.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class Provider(str, Enum):
    """External calendar systems an Account can be linked to."""

    GOOGLE = "google"
    AZURE_AD = "azure-ad"


class ResponseStatus(str, Enum):
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"
    TENTATIVE = "TENTATIVE"
    NEEDS_ACTION = "NEEDS_ACTION"


class Membership(str, Enum):
    FREE = "FREE"
    PRO = "PRO"
    PREMIUM = "PREMIUM"


class GroupState(str, Enum):
    """
    Lifecycle of an event group.

    SELECTING only exists in the client while the user is picking a slot; the
    server never persists it.
    """

    PROPOSED = "proposed"
    SELECTING = "selecting"
    CONFIRMED = "confirmed"
    DELETED = "deleted"


class Attendee(BaseModel):
    """An invitee of one event, identified by email (case-sensitive)."""

    email: str
    name: str = ""
    surname: str = ""
    provider: str | None = None
    response_status: ResponseStatus = ResponseStatus.NEEDS_ACTION


class DirectoryUser(BaseModel):
    """A person found in a linked account's organization directory."""

    email: str
    name: str = ""
    surname: str = ""
    provider: str = Provider.GOOGLE.value


class User(BaseModel):
    id: str
    email: str | None = None
    name: str | None = None
    membership: Membership = Membership.FREE
    created_at: datetime | None = None


class Account(BaseModel):
    """A linked external calendar identity (tokens are decrypted)."""

    id: str
    user_id: str
    provider: str
    provider_account_id: str | None = None
    email: str | None = None
    access_token: str | None = None
    refresh_token: str | None = None
    is_primary: bool = False
    created_at: datetime | None = None


class Event(BaseModel):
    """One candidate (or confirmed) slot, or an event read from a provider calendar."""

    id: str
    event_group_id: str | None = None
    user_id: str | None = None
    account_id: str | None = None
    microsoft_id: str | None = None
    title: str = ""
    description: str = ""
    start_date: datetime
    end_date: datetime
    attendees: list[Attendee] = Field(default_factory=list)
    is_agree_to_event: bool = False
    deleted_at: datetime | None = None

    @property
    def is_live(self) -> bool:
        return self.deleted_at is None

    def attendee_emails(self) -> list[str]:
        return [attendee.email for attendee in self.attendees]


class EventGroup(BaseModel):
    id: str
    user_id: str
    account_id: str
    title: str = ""
    create_blocker: bool = False
    is_selection_done: bool = False
    confirmed_event_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None
    events: list[Event] = Field(default_factory=list)
    account: Account | None = None

    @property
    def is_live(self) -> bool:
        return self.deleted_at is None

    @property
    def state(self) -> GroupState:
        if not self.is_live:
            return GroupState.DELETED
        if self.is_selection_done:
            return GroupState.CONFIRMED
        return GroupState.PROPOSED

    def live_events(self) -> list[Event]:
        """Live events ordered by start date; the first one is the default slot."""
        return sorted((e for e in self.events if e.is_live), key=lambda e: e.start_date)


class NewEvent(BaseModel):
    """A candidate slot as submitted for group creation."""

    title: str
    start_date: datetime
    end_date: datetime
    description: str = ""
    attendees: list[Attendee] = Field(default_factory=list)


class CallerContext(BaseModel):
    """Authenticated caller of a workflow operation, with their linked accounts."""

    user_id: str
    accounts: list[Account] = Field(default_factory=list)

    @property
    def primary_account(self) -> Account | None:
        return next((a for a in self.accounts if a.is_primary), None)

    def account_emails(self) -> list[str]:
        return [a.email for a in self.accounts if a.email]
