"""
caller.py
---------
Purpose:
    Turns verified JWT claims into the explicit CallerContext (user id plus
    linked accounts) and provides the store handles routes pass to services.
"""

import structlog
from fastapi import Depends, HTTPException, status

from app.auth.verify import auth_dependency
from app.models.domain.event_group_domain import CallerContext
from app.repositories.account_repository import AccountRepository
from app.repositories.event_group_repository import EventGroupRepository
from app.repositories.user_repository import UserRepository
from app.services.account_service import load_caller_context


def get_account_repository() -> AccountRepository:
    return AccountRepository()


def get_event_group_store() -> EventGroupRepository:
    return EventGroupRepository()


def get_user_repository() -> UserRepository:
    return UserRepository()


async def get_caller(
    claims: dict = Depends(auth_dependency),
    accounts: AccountRepository = Depends(get_account_repository),
) -> CallerContext:
    user_id = claims.get("sub")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    structlog.contextvars.bind_contextvars(user_id=user_id)
    return await load_caller_context(user_id, accounts)
