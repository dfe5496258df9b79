"""Error taxonomy shared by the domain, the services and the HTTP layer."""


class KudosError(Exception):
    """Base class for every error the core surfaces to its callers."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(KudosError):
    """Malformed input: empty or oversized title, unknown enum value, bad identifier."""

    status_code = 422


class NotFoundError(KudosError):
    status_code = 404

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class AlreadyCompletedError(KudosError):
    """Second completion of the same task. A benign conflict, never a crash."""

    status_code = 409

    def __init__(self, task_id: str):
        super().__init__(f"Task is already completed: {task_id}")
        self.task_id = task_id


class ConstraintViolationError(KudosError):
    """Uniqueness or referential violation such as a duplicate email or category name."""

    status_code = 409


class PersistenceError(KudosError):
    """Storage unavailable or timed out. Callers may retry with backoff."""

    status_code = 503


class ConcurrencyConflictError(PersistenceError):
    """A versioned row changed underneath the current transaction."""
