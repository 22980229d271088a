"""
Persistence for linked calendar accounts.

Tokens are encrypted at rest; rows are decrypted into Account domain models on
read. Only link_account writes, and it owns the first-account-is-primary rule.
"""

import uuid

from app.db.helpers import fetch_all, fetch_one, with_db_retry
from app.db.pool import get_db_transaction
from app.infrastructure.observability.logging import get_logger
from app.models.domain.event_group_domain import Account
from app.services.errors import Unauthorized
from app.services.infrastructure.encryption_service import (
    decrypt_oauth_tokens,
    encrypt_oauth_tokens,
)

logger = get_logger(__name__)

ACCOUNT_COLUMNS = """
    id, user_id, provider, provider_account_id, email,
    access_token, refresh_token, is_primary, created_at
"""


def row_to_account(row: dict) -> Account:
    access_token, refresh_token = decrypt_oauth_tokens(
        row.get("access_token"), row.get("refresh_token")
    )
    return Account(
        id=row["id"],
        user_id=row["user_id"],
        provider=row["provider"],
        provider_account_id=row.get("provider_account_id"),
        email=row.get("email"),
        access_token=access_token,
        refresh_token=refresh_token,
        is_primary=row.get("is_primary", False),
        created_at=row.get("created_at"),
    )


class AccountRepository:
    """Queries over the accounts table, always scoped to one user."""

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def list_for_user(self, user_id: str) -> list[Account]:
        rows = await fetch_all(
            f"""
            SELECT {ACCOUNT_COLUMNS}
            FROM accounts
            WHERE user_id = %s
            ORDER BY is_primary DESC, created_at ASC
            """,
            (user_id,),
        )
        return [row_to_account(row) for row in rows]

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def list_related(
        self, user_id: str, exclude_id: str | None = None, exclude_email: str | None = None
    ) -> list[Account]:
        rows = await fetch_all(
            f"""
            SELECT {ACCOUNT_COLUMNS}
            FROM accounts
            WHERE user_id = %s
              AND (%s::text IS NULL OR id <> %s)
              AND (%s::text IS NULL OR email IS DISTINCT FROM %s)
            ORDER BY created_at ASC
            """,
            (user_id, exclude_id, exclude_id, exclude_email, exclude_email),
        )
        return [row_to_account(row) for row in rows]

    async def link_account(
        self,
        user_id: str,
        provider: str,
        provider_account_id: str,
        email: str | None,
        access_token: str | None,
        refresh_token: str | None = None,
    ) -> Account:
        """
        Insert or refresh a linked account.

        A newly inserted account is primary only if the user had no account
        before; re-linking an existing account keeps its primary flag.

        Raises:
            Unauthorized: the provider account is linked to a different user
        """
        encrypted_access, encrypted_refresh = encrypt_oauth_tokens(access_token, refresh_token)

        async with await get_db_transaction() as conn:
            # Serialize concurrent links for the same user
            await fetch_one("SELECT id FROM users WHERE id = %s FOR UPDATE", (user_id,), connection=conn)
            existing = await fetch_one(
                "SELECT COUNT(*) AS n FROM accounts WHERE user_id = %s",
                (user_id,),
                connection=conn,
            )
            is_first = not existing or existing["n"] == 0

            row = await fetch_one(
                f"""
                INSERT INTO accounts (
                    id, user_id, provider, provider_account_id, email,
                    access_token, refresh_token, is_primary
                ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                ON CONFLICT (provider, provider_account_id)
                DO UPDATE SET
                    email = EXCLUDED.email,
                    access_token = EXCLUDED.access_token,
                    refresh_token = COALESCE(EXCLUDED.refresh_token, accounts.refresh_token)
                WHERE accounts.user_id = EXCLUDED.user_id
                RETURNING {ACCOUNT_COLUMNS}
                """,
                (
                    uuid.uuid4().hex,
                    user_id,
                    provider,
                    provider_account_id,
                    email,
                    encrypted_access,
                    encrypted_refresh,
                    is_first,
                ),
                connection=conn,
            )
            if not row:
                logger.warning(
                    "Account already linked to another user",
                    user_id=user_id,
                    provider=provider,
                )
                raise Unauthorized("Account", provider_account_id, user_id)

        account = row_to_account(row)
        logger.info(
            "Account linked",
            user_id=user_id,
            account_id=account.id,
            provider=provider,
            is_primary=account.is_primary,
        )
        return account
