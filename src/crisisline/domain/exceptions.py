"""
Domain Exceptions

Error taxonomy shared by all services. The API layer maps each
class to an HTTP status; nothing below the API layer knows about HTTP.

- ValidationError: missing or malformed input (4xx)
- NotFoundError: referenced entity absent
- ConflictError: entity already exists or is read-only
- CarrierError: external send/delivery failure. Captured by the
  messaging gateway as a failed Message, never raised to its callers.
- InternalError: anything unexpected
"""

from typing import Optional, Sequence


class CrisislineError(Exception):
    """Base exception for all domain errors."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(CrisislineError):
    """Missing or malformed required input."""

    status_code = 400


class IncompleteResponseError(ValidationError):
    """Assessment scoring is missing answers to required questions."""

    def __init__(self, missing_question_ids: Sequence[str]) -> None:
        self.missing_question_ids = list(missing_question_ids)
        super().__init__(
            "Missing responses for required questions: "
            + ", ".join(self.missing_question_ids)
        )


class DefinitionError(ValidationError):
    """Risk level definitions violate the interval invariant."""


class NotFoundError(CrisislineError):
    """Referenced entity does not exist."""

    status_code = 404

    def __init__(self, entity: str, key: str) -> None:
        super().__init__(f"{entity} not found: {key}")
        self.entity = entity
        self.key = key


class ConflictError(CrisislineError):
    """Entity already exists or may no longer be modified."""

    status_code = 409


class CarrierError(CrisislineError):
    """SMS carrier rejected or failed a request."""

    status_code = 502

    def __init__(
        self,
        message: str,
        is_retryable: bool = False,
        original_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(message)
        self.is_retryable = is_retryable
        self.original_error = original_error


class InternalError(CrisislineError):
    """Unexpected failure (persistence, programming defect)."""

    status_code = 500
