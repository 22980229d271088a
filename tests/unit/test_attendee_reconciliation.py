"""
Tests for attendee and response-status reconciliation.
"""

import pytest

from app.models.domain.event_group_domain import Attendee, ResponseStatus
from app.services.attendee_reconciliation import (
    dedupe_attendees,
    map_response_status,
    merge_attendee_emails,
    reconcile_confirmed_attendees,
    unique_emails,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("accepted", ResponseStatus.ACCEPTED),
        ("declined", ResponseStatus.DECLINED),
        ("tentative", ResponseStatus.TENTATIVE),
        ("tentativelyAccepted", ResponseStatus.TENTATIVE),
        ("needsAction", ResponseStatus.NEEDS_ACTION),
        ("notResponded", ResponseStatus.NEEDS_ACTION),
        ("none", ResponseStatus.NEEDS_ACTION),
        ("organizer", ResponseStatus.NEEDS_ACTION),
        ("", ResponseStatus.NEEDS_ACTION),
        (None, ResponseStatus.NEEDS_ACTION),
    ],
)
def test_map_response_status(raw, expected):
    assert map_response_status(raw) == expected


def test_unique_emails_preserves_first_occurrence():
    assert unique_emails(["a@x.com", "b@x.com"], ["b@x.com", None, "c@x.com", ""]) == [
        "a@x.com",
        "b@x.com",
        "c@x.com",
    ]


def test_unique_emails_is_case_sensitive():
    assert unique_emails(["A@x.com"], ["a@x.com"]) == ["A@x.com", "a@x.com"]


def test_merge_attendee_emails_adds_only_new_addresses():
    existing = [Attendee(email="a@x.com", name="Ann", provider="google")]

    merged = merge_attendee_emails(existing, ["a@x.com", "b@x.com", "b@x.com"])

    assert [a.email for a in merged] == ["a@x.com", "b@x.com"]
    assert merged[0].name == "Ann"
    assert merged[1].provider is None
    assert merged[1].response_status == ResponseStatus.NEEDS_ACTION


def test_dedupe_attendees_keeps_first():
    first = Attendee(email="a@x.com", name="first")
    second = Attendee(email="a@x.com", name="second")

    assert dedupe_attendees([first, second]) == [first]


def test_reconcile_prefers_directory_attendee_and_resets_status():
    manual = Attendee(email="a@x.com", name="typed")
    directory = Attendee(
        email="a@x.com",
        name="Ann",
        provider="azure-ad",
        response_status=ResponseStatus.ACCEPTED,
    )
    other = Attendee(email="b@x.com", response_status=ResponseStatus.DECLINED)

    result = reconcile_confirmed_attendees([manual, other, directory])

    assert [a.email for a in result] == ["a@x.com", "b@x.com"]
    assert result[0].name == "Ann"
    assert result[0].response_status == ResponseStatus.NEEDS_ACTION
    # Manually typed attendees keep what was sent
    assert result[1].response_status == ResponseStatus.DECLINED


def test_reconcile_empty_list():
    assert reconcile_confirmed_attendees([]) == []
