"""
Tests for caller context loading, account listing and account linking.
"""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock

import pytest
from conftest import OTHER_USER_ID, USER_ID, make_account

from app.models.domain.event_group_domain import CallerContext, Membership, User
from app.repositories import account_repository
from app.repositories.account_repository import AccountRepository
from app.services import account_service
from app.services.errors import NotFound, Unauthorized
from app.services.infrastructure.encryption_service import decrypt_token, encrypt_token


@pytest.mark.asyncio
async def test_load_caller_context_uses_linked_accounts():
    accounts = AsyncMock()
    accounts.list_for_user.return_value = [
        make_account("acc-1"),
        make_account("acc-2", is_primary=False, email="second@example.com"),
    ]

    caller = await account_service.load_caller_context(USER_ID, accounts)

    accounts.list_for_user.assert_awaited_once_with(USER_ID)
    assert caller.user_id == USER_ID
    assert caller.primary_account.id == "acc-1"
    assert caller.account_emails() == ["organizer@example.com", "second@example.com"]


@pytest.mark.asyncio
async def test_related_accounts_passes_exclusions():
    accounts = AsyncMock()
    accounts.list_related.return_value = [make_account("acc-2", is_primary=False)]
    caller = CallerContext(user_id=USER_ID)

    related = await account_service.related_accounts(
        caller, accounts, exclude_id="acc-1", exclude_email="organizer@example.com"
    )

    accounts.list_related.assert_awaited_once_with(USER_ID, "acc-1", "organizer@example.com")
    assert [a.id for a in related] == ["acc-2"]


@pytest.mark.asyncio
async def test_get_me_missing_user_not_found():
    users = AsyncMock()
    users.get.return_value = None

    with pytest.raises(NotFound):
        await account_service.get_me(CallerContext(user_id=USER_ID), users)


@pytest.mark.asyncio
async def test_get_me_returns_user():
    users = AsyncMock()
    users.get.return_value = User(id=USER_ID, email="organizer@example.com")

    user = await account_service.get_me(CallerContext(user_id=USER_ID), users)

    assert user.membership == Membership.FREE


def test_row_to_account_decrypts_tokens():
    row = {
        "id": "acc-1",
        "user_id": USER_ID,
        "provider": "google",
        "provider_account_id": "sub-1",
        "email": "organizer@example.com",
        "access_token": memoryview(encrypt_token("access")),
        "refresh_token": None,
        "is_primary": True,
        "created_at": None,
    }

    account = account_repository.row_to_account(row)

    assert account.access_token == "access"
    assert account.refresh_token is None


class FakeAccountsTable:
    """Answers the queries link_account issues."""

    def __init__(self, existing: int, owner: str | None = None):
        self.existing = existing
        self.owner = owner
        self.inserted: tuple | None = None

    async def fetch_one(self, query, params=(), *, connection=None):
        if "FOR UPDATE" in query:
            return {"id": params[0]}
        if "COUNT(*)" in query:
            return {"n": self.existing}
        self.inserted = params
        account_id, user_id, provider, provider_account_id, email, access, refresh, primary = params
        if self.owner is not None and self.owner != user_id:
            return None
        assert "WHERE accounts.user_id = EXCLUDED.user_id" in query
        return {
            "id": account_id,
            "user_id": user_id,
            "provider": provider,
            "provider_account_id": provider_account_id,
            "email": email,
            "access_token": access,
            "refresh_token": refresh,
            "is_primary": primary,
            "created_at": None,
        }


@pytest.fixture
def accounts_table(monkeypatch):
    def _install(existing: int, owner: str | None = None) -> FakeAccountsTable:
        table = FakeAccountsTable(existing, owner)

        @asynccontextmanager
        async def transaction():
            yield object()

        async def get_db_transaction():
            return transaction()

        monkeypatch.setattr(account_repository, "get_db_transaction", get_db_transaction)
        monkeypatch.setattr(account_repository, "fetch_one", table.fetch_one)
        return table

    return _install


@pytest.mark.asyncio
async def test_first_linked_account_becomes_primary(accounts_table):
    table = accounts_table(existing=0)

    account = await AccountRepository().link_account(
        USER_ID, "google", "sub-1", "organizer@example.com", "access", "refresh"
    )

    assert account.is_primary is True
    assert account.access_token == "access"
    assert account.refresh_token == "refresh"
    # Stored ciphertext, never the raw token
    assert table.inserted[5] != b"access"
    assert decrypt_token(table.inserted[5]) == "access"


@pytest.mark.asyncio
async def test_additional_linked_account_is_not_primary(accounts_table):
    accounts_table(existing=1)

    account = await AccountRepository().link_account(
        USER_ID, "azure-ad", "sub-2", "me@outlook.com", "access"
    )

    assert account.is_primary is False
    assert account.refresh_token is None


@pytest.mark.asyncio
async def test_get_user_by_id():
    users = AsyncMock()
    users.get.return_value = User(id="user-456", email="other@example.com")

    user = await account_service.get_user(users, "user-456")

    users.get.assert_awaited_once_with("user-456")
    assert user.email == "other@example.com"


@pytest.mark.asyncio
async def test_get_user_by_email_missing_not_found():
    users = AsyncMock()
    users.get_by_email.return_value = None

    with pytest.raises(NotFound) as exc:
        await account_service.get_user_by_email(users, "nobody@example.com")

    assert "nobody@example.com" in str(exc.value)


@pytest.mark.asyncio
async def test_linking_another_users_account_is_rejected(accounts_table):
    accounts_table(existing=1, owner=OTHER_USER_ID)

    with pytest.raises(Unauthorized):
        await AccountRepository().link_account(
            USER_ID, "google", "sub-taken", "shared@example.com", "access"
        )
