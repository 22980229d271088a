"""
User API Routes
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.auth.caller import get_caller, get_user_repository
from app.infrastructure.observability.logging import get_logger
from app.models.api.account_response import DirectoryUserResponse, UserResponse
from app.models.domain.event_group_domain import CallerContext, User
from app.repositories.user_repository import UserRepository
from app.routes.errors import scheduling_http_error
from app.services import account_service
from app.services.directory_service import search_directory_users
from app.services.errors import SchedulingError

logger = get_logger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


def _user_response(user: User) -> UserResponse:
    return UserResponse(id=user.id, email=user.email, name=user.name, membership=user.membership)


@router.get("/me", response_model=UserResponse)
async def get_me(
    caller: CallerContext = Depends(get_caller),
    users: UserRepository = Depends(get_user_repository),
):
    """Profile of the authenticated user."""
    try:
        return _user_response(await account_service.get_me(caller, users))

    except SchedulingError as e:
        raise scheduling_http_error(e)
    except Exception as e:
        logger.error("Error loading user profile", user_id=caller.user_id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load user",
        )


@router.get("/directory", response_model=list[DirectoryUserResponse])
async def search_directory(
    search: str = Query(..., description="Name or email fragment"),
    caller: CallerContext = Depends(get_caller),
):
    """People from the directories of the caller's Google accounts."""
    try:
        found = await search_directory_users(caller, search)
        return [DirectoryUserResponse(**user.model_dump()) for user in found]

    except SchedulingError as e:
        raise scheduling_http_error(e)
    except Exception as e:
        logger.error("Error searching directory", user_id=caller.user_id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to search directory",
        )


@router.get("", response_model=UserResponse)
async def get_user_by_email(
    email: str = Query(..., description="Exact email address"),
    caller: CallerContext = Depends(get_caller),
    users: UserRepository = Depends(get_user_repository),
):
    try:
        return _user_response(await account_service.get_user_by_email(users, email))

    except SchedulingError as e:
        raise scheduling_http_error(e)
    except Exception as e:
        logger.error("Error looking up user by email", user_id=caller.user_id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load user",
        )


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    caller: CallerContext = Depends(get_caller),
    users: UserRepository = Depends(get_user_repository),
):
    try:
        return _user_response(await account_service.get_user(users, user_id))

    except SchedulingError as e:
        raise scheduling_http_error(e)
    except Exception as e:
        logger.error("Error looking up user", user_id=caller.user_id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load user",
        )
