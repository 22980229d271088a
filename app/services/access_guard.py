"""
Ownership checks run before any read is returned or any mutation starts.

Order is existence first, then ownership: the store raises NotFound for absent
or soft-deleted rows, and only a loaded resource reaches these checks.
"""

from app.infrastructure.observability.logging import get_logger
from app.models.domain.event_group_domain import Account, CallerContext, EventGroup
from app.services.errors import Unauthorized

logger = get_logger(__name__)


def ensure_owner(resource: str, resource_id: str, owner_id: str, caller: CallerContext) -> None:
    if owner_id != caller.user_id:
        logger.warning(
            "Ownership check failed",
            resource=resource,
            resource_id=resource_id,
            user_id=caller.user_id,
        )
        raise Unauthorized(resource, resource_id, caller.user_id)


def ensure_group_access(group: EventGroup, caller: CallerContext) -> EventGroup:
    """Caller owns the group, and the group's account belongs to the same user."""
    ensure_owner("EventGroup", group.id, group.user_id, caller)

    if group.account is not None and group.account.user_id != group.user_id:
        logger.error(
            "EventGroup ownership chain broken",
            group_id=group.id,
            group_user_id=group.user_id,
            account_id=group.account.id,
        )
        raise Unauthorized("EventGroup", group.id, caller.user_id)

    return group


def ensure_account_access(account: Account, caller: CallerContext) -> Account:
    ensure_owner("Account", account.id, account.user_id, caller)
    return account
