"""
Event Group Store.

Persists event groups and their candidate events. Rows are only ever
soft-deleted; every "is live" filter goes through LIVE so the convention lives
in one place.
"""

import uuid

from psycopg.types.json import Jsonb

from app.db.helpers import execute_query, fetch_all, fetch_one, with_db_retry
from app.db.pool import get_db_transaction
from app.infrastructure.observability.logging import get_logger
from app.models.domain.event_group_domain import Attendee, Event, EventGroup, NewEvent
from app.repositories.account_repository import ACCOUNT_COLUMNS, row_to_account
from app.services.errors import GroupAlreadyConfirmed, NotFound, PrimaryAccountMissing

logger = get_logger(__name__)

LIVE = "deleted_at IS NULL"

GROUP_COLUMNS = """
    id, user_id, account_id, title, create_blocker, is_selection_done,
    confirmed_event_id, created_at, updated_at, deleted_at
"""

EVENT_COLUMNS = """
    id, event_group_id, user_id, account_id, microsoft_id, title, description,
    start_date, end_date, attendees, is_agree_to_event, deleted_at
"""


def _attendees_json(attendees: list[Attendee]) -> Jsonb:
    return Jsonb([a.model_dump(mode="json") for a in attendees])


def _row_to_event(row: dict) -> Event:
    return Event(**{**row, "attendees": row.get("attendees") or []})


def _row_to_group(row: dict, events: list[Event], account_row: dict | None = None) -> EventGroup:
    return EventGroup(
        **row,
        events=events,
        account=row_to_account(account_row) if account_row else None,
    )


class EventGroupRepository:
    """Store handle passed explicitly into every workflow operation."""

    async def create(
        self, user_id: str, title: str, create_blocker: bool, events: list[NewEvent]
    ) -> EventGroup:
        """
        Insert a group and all its events in one transaction under the user's
        primary account.

        Raises:
            PrimaryAccountMissing: the user has no primary account
        """
        async with await get_db_transaction() as conn:
            account_row = await fetch_one(
                f"SELECT {ACCOUNT_COLUMNS} FROM accounts WHERE user_id = %s AND is_primary",
                (user_id,),
                connection=conn,
            )
            if not account_row:
                raise PrimaryAccountMissing(user_id)

            group_row = await fetch_one(
                f"""
                INSERT INTO event_groups (id, user_id, account_id, title, create_blocker)
                VALUES (%s, %s, %s, %s, %s)
                RETURNING {GROUP_COLUMNS}
                """,
                (uuid.uuid4().hex, user_id, account_row["id"], title, create_blocker),
                connection=conn,
            )

            saved_events = []
            for new_event in events:
                event_row = await fetch_one(
                    f"""
                    INSERT INTO events (
                        id, event_group_id, user_id, account_id, title, description,
                        start_date, end_date, attendees, is_agree_to_event
                    ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, TRUE)
                    RETURNING {EVENT_COLUMNS}
                    """,
                    (
                        uuid.uuid4().hex,
                        group_row["id"],
                        user_id,
                        account_row["id"],
                        new_event.title,
                        new_event.description,
                        new_event.start_date,
                        new_event.end_date,
                        _attendees_json(new_event.attendees),
                    ),
                    connection=conn,
                )
                saved_events.append(_row_to_event(event_row))

        group = _row_to_group(group_row, saved_events, account_row)
        logger.info(
            "Event group created",
            group_id=group.id,
            user_id=user_id,
            event_count=len(saved_events),
            create_blocker=create_blocker,
        )
        return group

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def get_by_id(self, group_id: str) -> EventGroup:
        """Live group with its live events (by start date) and owning account."""
        group_row = await fetch_one(
            f"SELECT {GROUP_COLUMNS} FROM event_groups WHERE id = %s AND {LIVE}",
            (group_id,),
        )
        if not group_row:
            raise NotFound("EventGroup", group_id)

        event_rows = await fetch_all(
            f"""
            SELECT {EVENT_COLUMNS} FROM events
            WHERE event_group_id = %s AND {LIVE}
            ORDER BY start_date ASC, id ASC
            """,
            (group_id,),
        )
        account_row = await fetch_one(
            f"SELECT {ACCOUNT_COLUMNS} FROM accounts WHERE id = %s",
            (group_row["account_id"],),
        )
        return _row_to_group(group_row, [_row_to_event(r) for r in event_rows], account_row)

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def get_event(self, event_id: str) -> Event:
        row = await fetch_one(
            f"SELECT {EVENT_COLUMNS} FROM events WHERE id = %s AND {LIVE}",
            (event_id,),
        )
        if not row:
            raise NotFound("Event", event_id)
        return _row_to_event(row)

    async def set_microsoft_id(self, event_id: str, microsoft_id: str) -> None:
        await execute_query(
            "UPDATE events SET microsoft_id = %s WHERE id = %s",
            (microsoft_id, event_id),
        )

    async def confirm_event(
        self,
        group_id: str,
        event_id: str,
        title: str,
        attendees: list[Attendee],
        loser_ids: list[str],
    ) -> Event:
        """
        Winner updated, losers soft-deleted and group marked done, atomically.

        The group row is locked first so concurrent confirms serialize; only
        the first one commits.

        Raises:
            GroupAlreadyConfirmed: another confirm committed first
        """
        async with await get_db_transaction() as conn:
            group_row = await fetch_one(
                f"SELECT is_selection_done FROM event_groups WHERE id = %s AND {LIVE} FOR UPDATE",
                (group_id,),
                connection=conn,
            )
            if not group_row:
                raise NotFound("EventGroup", group_id)
            if group_row["is_selection_done"]:
                raise GroupAlreadyConfirmed(group_id)

            event_row = await fetch_one(
                f"""
                UPDATE events SET title = %s, attendees = %s
                WHERE id = %s AND {LIVE}
                RETURNING {EVENT_COLUMNS}
                """,
                (title, _attendees_json(attendees), event_id),
                connection=conn,
            )
            if not event_row:
                raise NotFound("Event", event_id)

            if loser_ids:
                await execute_query(
                    f"""
                    UPDATE events SET deleted_at = NOW()
                    WHERE event_group_id = %s AND id = ANY(%s) AND {LIVE}
                    """,
                    (group_id, loser_ids),
                    connection=conn,
                )

            await execute_query(
                """
                UPDATE event_groups
                SET is_selection_done = TRUE, confirmed_event_id = %s, updated_at = NOW()
                WHERE id = %s AND NOT is_selection_done
                """,
                (event_id, group_id),
                connection=conn,
            )

        logger.info(
            "Event group slot confirmed",
            group_id=group_id,
            event_id=event_id,
            discarded_count=len(loser_ids),
        )
        return _row_to_event(event_row)

    async def soft_delete_group_and_events(self, group_id: str) -> EventGroup:
        """Stamp deleted_at on the group and every child event; safe to repeat."""
        async with await get_db_transaction() as conn:
            await execute_query(
                "UPDATE events SET deleted_at = NOW() WHERE event_group_id = %s",
                (group_id,),
                connection=conn,
            )
            group_row = await fetch_one(
                f"""
                UPDATE event_groups SET deleted_at = NOW(), updated_at = NOW()
                WHERE id = %s
                RETURNING {GROUP_COLUMNS}
                """,
                (group_id,),
                connection=conn,
            )
            if not group_row:
                raise NotFound("EventGroup", group_id)

            event_rows = await fetch_all(
                f"SELECT {EVENT_COLUMNS} FROM events WHERE event_group_id = %s ORDER BY start_date",
                (group_id,),
                connection=conn,
            )

        logger.info("Event group soft-deleted", group_id=group_id, event_count=len(event_rows))
        return _row_to_group(group_row, [_row_to_event(r) for r in event_rows])
