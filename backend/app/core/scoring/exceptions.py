"""
Exceptions raised by result calculation.

Endpoints translate these into HTTP errors: ScoringNotFoundError -> 404,
ScoringPreconditionError -> 400, ResultConflictError -> 409,
DataIntegrityError -> 500.
"""


class ScoringError(Exception):
    """Base class for result calculation failures."""


class ScoringNotFoundError(ScoringError):
    """The attempt or result to calculate from does not exist."""

    def __init__(self, entity: str, entity_id: int):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class ScoringPreconditionError(ScoringError):
    """The attempt is not in a state that can be scored."""

    def __init__(self, attempt_id: int, status: str):
        self.attempt_id = attempt_id
        self.status = status
        super().__init__(
            f"Attempt {attempt_id} has status '{status}'; only completed attempts are scored"
        )


class ResultConflictError(ScoringError):
    """A result already exists and recalculation was not forced."""

    def __init__(self, attempt_id: int):
        self.attempt_id = attempt_id
        super().__init__(f"A result already exists for attempt {attempt_id}")


class DataIntegrityError(ScoringError):
    """Rows the result depends on are missing or inconsistent."""
