"""
TaskMgmt Error Hierarchy — Typed exceptions raised by the rules engines.

Every error carries a human-readable message plus a list of detail strings,
which is exactly what the transport layer needs to build a failure payload.

Hierarchy:
    TaskMgmtError
    ├── NotFoundError       — Referenced entity absent            (404)
    ├── ConflictError       — Business invariant violated         (400)
    ├── UnauthorizedError   — Ownership mismatch                  (400)
    ├── ValidationError     — Malformed input (empty id / field)  (400)
    └── PersistenceError    — Storage failure (connectivity, ...) (500)
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


class TaskMgmtError(Exception):
    """
    Base error for all rules-engine failures.
    All context is serializable to JSON for structured logging.
    """

    status_code: int = 400

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.error_type: str = self.__class__.__name__
        self.details: List[str] = list(context.pop("details", None) or [])
        self.context: Dict[str, Any] = context
        self.timestamp: str = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize error to JSON-compatible dict for logging."""
        return {
            "error_type": self.error_type,
            "message": self.message,
            "status_code": self.status_code,
            "details": self.details,
            "timestamp": self.timestamp,
            "context": {k: str(v) for k, v in self.context.items()},
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)

    def __repr__(self) -> str:
        parts = [f"{self.error_type}: {self.message}"]
        for key in ("entity", "entity_id", "rule"):
            value = self.context.get(key)
            if value is not None:
                parts.append(f"{key}={value}")
        return " | ".join(parts)


class NotFoundError(TaskMgmtError):
    """Referenced project, task or comment does not exist."""

    status_code = 404

    def __init__(self, message: str, **context: Any):
        self.entity: Optional[str] = context.get("entity")
        self.entity_id: Optional[str] = (
            str(context["entity_id"]) if context.get("entity_id") is not None else None
        )
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["entity"] = self.entity
        d["entity_id"] = self.entity_id
        return d


class ConflictError(TaskMgmtError):
    """
    A business invariant would be violated.
    ``rule`` names the invariant: duplicate_name, task_limit, pending_tasks,
    immutable_priority, unique_constraint.
    """

    def __init__(self, message: str, **context: Any):
        self.rule: Optional[str] = context.get("rule")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["rule"] = self.rule
        return d


class UnauthorizedError(TaskMgmtError):
    """The requesting user does not own the target project."""

    def __init__(self, message: str, **context: Any):
        self.user_id: Optional[str] = (
            str(context["user_id"]) if context.get("user_id") is not None else None
        )
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["user_id"] = self.user_id
        return d


class ValidationError(TaskMgmtError):
    """
    Input validation failed (empty id, field too long, bad enum value).
    Includes field-level error details.
    """

    def __init__(self, message: str, **context: Any):
        self.validation_errors: Optional[list] = context.get("validation_errors")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["validation_errors"] = self.validation_errors
        return d


class PersistenceError(TaskMgmtError):
    """Storage layer failure. Surfaced to callers as a generic internal error."""

    status_code = 500
