"""TaskMgmt Engine — Errors, configuration, logging, request context."""

from taskmgmt.engine.errors import (  # noqa: F401
    ConflictError,
    NotFoundError,
    PersistenceError,
    TaskMgmtError,
    UnauthorizedError,
    ValidationError,
)

__all__ = [
    "TaskMgmtError",
    "NotFoundError",
    "ConflictError",
    "UnauthorizedError",
    "ValidationError",
    "PersistenceError",
]
