"""
Attendee and response-status reconciliation across calendar providers.

Attendees are identified by email exactly as the provider returns it; no case
folding or other canonicalization is applied.
"""

from collections.abc import Iterable

from app.models.domain.event_group_domain import Attendee, ResponseStatus

_READ_STATUS_MAP = {
    "accepted": ResponseStatus.ACCEPTED,
    "declined": ResponseStatus.DECLINED,
    "tentative": ResponseStatus.TENTATIVE,
    "tentativelyAccepted": ResponseStatus.TENTATIVE,
}

# Value sent to providers for attendees of a confirmed event
CONFIRMED_PROVIDER_STATUS = "accepted"


def map_response_status(status: str | None) -> ResponseStatus:
    """
    Map a provider response string to the canonical status.

    Total: anything unrecognised (including None, "none", "notResponded",
    "needsAction", "organizer") maps to NEEDS_ACTION.
    """
    if not status:
        return ResponseStatus.NEEDS_ACTION
    return _READ_STATUS_MAP.get(status, ResponseStatus.NEEDS_ACTION)


def unique_emails(*groups: Iterable[str | None]) -> list[str]:
    """Order-preserving union of email addresses, skipping empties."""
    seen: dict[str, None] = {}
    for group in groups:
        for email in group:
            if email and email not in seen:
                seen[email] = None
    return list(seen)


def merge_attendee_emails(attendees: list[Attendee], attendee_emails: Iterable[str]) -> list[Attendee]:
    """Add free-typed emails as provider-less attendees unless already present."""
    merged = list(attendees)
    known = {a.email for a in merged}
    for email in attendee_emails:
        if email and email not in known:
            merged.append(Attendee(email=email))
            known.add(email)
    return dedupe_attendees(merged)


def dedupe_attendees(attendees: Iterable[Attendee]) -> list[Attendee]:
    """Keep the first attendee per email, in order."""
    by_email: dict[str, Attendee] = {}
    for attendee in attendees:
        by_email.setdefault(attendee.email, attendee)
    return list(by_email.values())


def reconcile_confirmed_attendees(attendees: Iterable[Attendee]) -> list[Attendee]:
    """
    Attendee list persisted on confirmation.

    Directory-resolved attendees (those with a provider) win over manually typed
    entries with the same email and are stamped NEEDS_ACTION, since the organizer
    has not received their RSVP yet. Position follows the first occurrence.
    """
    order: list[str] = []
    chosen: dict[str, Attendee] = {}

    for attendee in attendees:
        if attendee.provider:
            attendee = attendee.model_copy(update={"response_status": ResponseStatus.NEEDS_ACTION})

        existing = chosen.get(attendee.email)
        if existing is None:
            order.append(attendee.email)
            chosen[attendee.email] = attendee
        elif attendee.provider and not existing.provider:
            chosen[attendee.email] = attendee

    return [chosen[email] for email in order]
