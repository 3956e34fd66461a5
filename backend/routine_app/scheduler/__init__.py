from routine_app.scheduler.errors import (
    ErrorKind,
    InvalidTransition,
    OrderingViolation,
    PersistenceError,
    RoutineError,
    ValidationError,
)
from routine_app.scheduler.gate import can_complete, evaluate_completion
from routine_app.scheduler.instantiate import build_run
from routine_app.scheduler.ordering import canonical_order
from routine_app.scheduler.resync import resync_run
from routine_app.scheduler.timing import project_target_time

__all__ = [
    "build_run",
    "can_complete",
    "canonical_order",
    "evaluate_completion",
    "project_target_time",
    "resync_run",
    "ErrorKind",
    "RoutineError",
    "ValidationError",
    "InvalidTransition",
    "OrderingViolation",
    "PersistenceError",
]
