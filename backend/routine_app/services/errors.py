from __future__ import annotations

from routine_app.scheduler.errors import ErrorKind, RoutineError

_STATUS_BY_KIND: dict[ErrorKind, tuple[int, str]] = {
    ErrorKind.validation: (400, "VALIDATION_ERROR"),
    ErrorKind.invalid_transition: (409, "INVALID_TRANSITION"),
    ErrorKind.ordering_violation: (409, "ORDERING_VIOLATION"),
    ErrorKind.persistence: (503, "PERSISTENCE_ERROR"),
}


class ApiError(Exception):
    def __init__(self, *, status_code: int, code: str, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message

    @classmethod
    def from_routine_error(cls, exc: RoutineError) -> ApiError:
        status_code, code = _STATUS_BY_KIND[exc.kind]
        return cls(status_code=status_code, code=code, message=exc.detail)
