"""Domain exceptions surfaced to API callers."""


class CrashDispatchError(Exception):
    """Base exception for accident intake and dispatch errors."""

    pass


class InvalidInputError(CrashDispatchError):
    """Rejected input: bad evidence file, malformed facts."""

    pass


class NotFoundError(CrashDispatchError):
    """Lookup by id or report number matched nothing."""

    pass


class ConflictError(CrashDispatchError):
    """Uniqueness or concurrent-update conflict."""

    pass


class InvalidTransitionError(ConflictError):
    """Status change not allowed from the current status."""

    def __init__(self, entity: str, current: str, requested: str):
        self.entity = entity
        self.current = current
        self.requested = requested
        super().__init__(
            f"Cannot change {entity} status from '{current}' to '{requested}'"
        )
