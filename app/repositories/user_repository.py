from app.db.helpers import fetch_one, with_db_retry
from app.models.domain.event_group_domain import User

USER_COLUMNS = "id, email, name, membership, created_at"


class UserRepository:
    @with_db_retry(max_retries=3, base_delay=0.1)
    async def get(self, user_id: str) -> User | None:
        row = await fetch_one(f"SELECT {USER_COLUMNS} FROM users WHERE id = %s", (user_id,))
        return User(**row) if row else None

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def get_by_email(self, email: str) -> User | None:
        row = await fetch_one(f"SELECT {USER_COLUMNS} FROM users WHERE email = %s", (email,))
        return User(**row) if row else None
