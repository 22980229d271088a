"""
Error taxonomy for the event-group workflow.

Routes translate these into HTTP responses; everything below SchedulingError is
a typed, expected failure. Persistence failures surface as app.db.helpers.DatabaseError.
"""


class SchedulingError(Exception):
    """Base class for workflow failures."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(SchedulingError):
    """Resource absent or soft-deleted."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(f"{resource} with id {resource_id} not found")
        self.resource = resource
        self.resource_id = resource_id


class Unauthorized(SchedulingError):
    """Resource exists but the caller does not own it."""

    def __init__(self, resource: str, resource_id: str, user_id: str):
        super().__init__(f"{resource} with id {resource_id} does not belong to user {user_id}")
        self.resource = resource
        self.resource_id = resource_id
        self.user_id = user_id


class PrimaryAccountMissing(SchedulingError):
    def __init__(self, user_id: str):
        super().__init__(f"User {user_id} has no primary account")
        self.user_id = user_id


class UnsupportedProvider(SchedulingError):
    def __init__(self, provider: str | None):
        super().__init__(f"Provider {provider} not supported")
        self.provider = provider


class NoSlotSelected(SchedulingError):
    def __init__(self):
        super().__init__("No slot selected")


class GroupAlreadyConfirmed(SchedulingError):
    def __init__(self, group_id: str):
        super().__init__(f"EventGroup with id {group_id} is already confirmed")
        self.group_id = group_id


class ProviderError(SchedulingError):
    """Any failure talking to an external calendar provider."""

    def __init__(
        self,
        provider: str,
        message: str,
        status_code: int | None = None,
        cause: BaseException | None = None,
        response_data: dict | None = None,
    ):
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.status_code = status_code
        self.cause = cause
        self.response_data = response_data or {}

    @property
    def is_gone(self) -> bool:
        """The provider reports the target as already deleted or missing."""
        return self.status_code in (404, 410)
