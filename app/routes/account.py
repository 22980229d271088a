"""
Account API Routes
Linked calendar accounts of the authenticated user.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.auth.caller import get_account_repository, get_caller
from app.infrastructure.observability.logging import get_logger
from app.models.api.account_response import AccountResponse, RelatedAccountResponse
from app.models.domain.event_group_domain import CallerContext
from app.repositories.account_repository import AccountRepository
from app.services import account_service

logger = get_logger(__name__)

router = APIRouter(prefix="/accounts", tags=["accounts"])


@router.get("/me", response_model=list[AccountResponse])
async def get_my_accounts(caller: CallerContext = Depends(get_caller)):
    """All accounts linked by the caller, primary first."""
    return [AccountResponse.from_domain(a) for a in account_service.my_accounts(caller)]


@router.get("/related", response_model=list[RelatedAccountResponse])
async def get_related_accounts(
    caller: CallerContext = Depends(get_caller),
    accounts: AccountRepository = Depends(get_account_repository),
    exclude_id: str | None = Query(default=None, description="Account id to leave out"),
    exclude_email: str | None = Query(default=None, description="Account email to leave out"),
):
    try:
        related = await account_service.related_accounts(
            caller, accounts, exclude_id, exclude_email
        )
        return [
            RelatedAccountResponse(id=a.id, provider=a.provider, email=a.email) for a in related
        ]

    except Exception as e:
        logger.error("Error listing related accounts", user_id=caller.user_id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list related accounts",
        )
