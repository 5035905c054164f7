class DomainError(Exception):
    """Base for errors that surface to the caller as explicit results."""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class Unauthorized(DomainError):
    """No acting user, or the acting user is not the resource owner."""


class NotFound(DomainError):
    pass


class NotCompleted(DomainError):
    """Certificate requested before the course reached 100%."""


class StoreFailure(DomainError):
    """The underlying persistence call failed."""


class Conflict(StoreFailure):
    """A unique constraint rejected the write."""


def ensure_owner(actor_id: str | None, user_id: str) -> None:
    if not actor_id:
        raise Unauthorized("Authentication required")
    if actor_id != user_id:
        raise Unauthorized("Not allowed to act for another user")
