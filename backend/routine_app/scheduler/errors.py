from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    validation = "validation"
    invalid_transition = "invalid_transition"
    ordering_violation = "ordering_violation"
    persistence = "persistence"


class RoutineError(Exception):
    """Base class for scheduling engine failures."""

    kind: ErrorKind

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class ValidationError(RoutineError):
    """Raised for malformed templates, task titles or time strings."""

    kind = ErrorKind.validation


class InvalidTransition(RoutineError):
    """Raised when a lifecycle operation is attempted from the wrong status."""

    kind = ErrorKind.invalid_transition


class OrderingViolation(RoutineError):
    """Raised when a timed task is completed before an earlier timed task."""

    kind = ErrorKind.ordering_violation


class PersistenceError(RoutineError):
    """Raised when the run store fails or a write is only partially applied."""

    kind = ErrorKind.persistence


ERRORS_BY_KIND: dict[ErrorKind, type[RoutineError]] = {
    ErrorKind.validation: ValidationError,
    ErrorKind.invalid_transition: InvalidTransition,
    ErrorKind.ordering_violation: OrderingViolation,
    ErrorKind.persistence: PersistenceError,
}
