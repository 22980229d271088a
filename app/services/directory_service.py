"""
Directory search across the caller's linked Google accounts.

The people found here are the "known directory users" a client offers as
attendees; confirm-time reconciliation resets their response status.
"""

from app.infrastructure.observability.logging import get_logger
from app.models.domain.event_group_domain import Account, CallerContext, DirectoryUser, Provider
from app.services.calendar.factory import get_calendar_service
from app.services.event_group_service import CalendarFactory
from app.utils.settle import failures, settle_all

logger = get_logger(__name__)


async def search_directory_users(
    caller: CallerContext,
    search: str,
    *,
    calendar_factory: CalendarFactory = get_calendar_service,
) -> list[DirectoryUser]:
    """
    Fan the search out over every linked Google account.

    Accounts whose directory cannot be read are logged and skipped. Results
    keep account order and are de-duplicated by email.
    """
    search = search.strip()
    if not search:
        return []

    google_accounts = [a for a in caller.accounts if a.provider == Provider.GOOGLE.value]

    async def search_account(account: Account) -> list[DirectoryUser]:
        return await calendar_factory(account).search_directory(search)

    outcomes = await settle_all(google_accounts, search_account)

    for outcome in failures(outcomes):
        logger.warning(
            "Could not search directory for account",
            user_id=caller.user_id,
            account_id=outcome.item.id,
            error=str(outcome.error),
        )

    seen: set[str] = set()
    users = []
    for outcome in outcomes:
        for user in outcome.value or []:
            if user.email not in seen:
                seen.add(user.email)
                users.append(user)

    logger.info(
        "Directory searched",
        user_id=caller.user_id,
        account_count=len(google_accounts),
        result_count=len(users),
    )
    return users
