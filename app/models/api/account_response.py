# app/models/api/account_response.py
"""
Account and user API response models.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from app.models.domain.event_group_domain import Account, Membership


class AccountResponse(BaseModel):
    """A linked calendar account without its credentials."""

    id: str = Field(..., description="Account id")
    user_id: str = Field(..., description="Owner")
    provider: str = Field(..., description="google or azure-ad")
    email: str | None = Field(None, description="Account email")
    is_primary: bool = Field(..., description="Default account for new event groups")
    created_at: datetime | None = Field(None, description="When the account was linked")

    @classmethod
    def from_domain(cls, account: Account) -> "AccountResponse":
        return cls(
            id=account.id,
            user_id=account.user_id,
            provider=account.provider,
            email=account.email,
            is_primary=account.is_primary,
            created_at=account.created_at,
        )


class RelatedAccountResponse(BaseModel):
    id: str
    provider: str
    email: str | None = None


class UserResponse(BaseModel):
    id: str
    email: str | None = None
    name: str | None = None
    membership: Membership


class DirectoryUserResponse(BaseModel):
    email: str
    name: str = ""
    surname: str = ""
    provider: str
