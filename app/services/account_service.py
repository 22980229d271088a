"""
Account and user lookups for the authenticated caller.
"""

from app.infrastructure.observability.logging import get_logger
from app.models.domain.event_group_domain import Account, CallerContext, User
from app.repositories.account_repository import AccountRepository
from app.repositories.user_repository import UserRepository
from app.services.errors import NotFound

logger = get_logger(__name__)


async def load_caller_context(user_id: str, accounts: AccountRepository) -> CallerContext:
    """Build the caller context every workflow operation receives."""
    linked = await accounts.list_for_user(user_id)
    primaries = [a for a in linked if a.is_primary]
    if len(primaries) > 1:
        logger.error("User has more than one primary account", user_id=user_id)
    return CallerContext(user_id=user_id, accounts=linked)


def my_accounts(caller: CallerContext) -> list[Account]:
    return list(caller.accounts)


async def related_accounts(
    caller: CallerContext,
    accounts: AccountRepository,
    exclude_id: str | None = None,
    exclude_email: str | None = None,
) -> list[Account]:
    """The caller's other accounts, excluding the given id and/or email."""
    return await accounts.list_related(caller.user_id, exclude_id, exclude_email)


async def get_me(caller: CallerContext, users: UserRepository) -> User:
    user = await users.get(caller.user_id)
    if user is None:
        raise NotFound("User", caller.user_id)
    return user


async def get_user(users: UserRepository, user_id: str) -> User:
    user = await users.get(user_id)
    if user is None:
        raise NotFound("User", user_id)
    return user


async def get_user_by_email(users: UserRepository, email: str) -> User:
    user = await users.get_by_email(email)
    if user is None:
        raise NotFound("User", email)
    return user
