"""
Per-request context, carried through the rules engines via contextvars.

Usage:
    from taskmgmt.engine.context import RequestContext, set_request_context
"""

from __future__ import annotations

import uuid
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

current_request_context: ContextVar[Optional["RequestContext"]] = ContextVar(
    "request_context", default=None
)


@dataclass
class RequestContext:
    """Identity of the request being served. Set by the transport layer."""

    user_id: Optional[uuid.UUID] = None
    request_id: str = field(default_factory=lambda: f"req_{uuid.uuid4().hex[:12]}")
    method: Optional[str] = None
    path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": str(self.user_id) if self.user_id else None,
            "request_id": self.request_id,
            "method": self.method,
            "path": self.path,
        }


def set_request_context(ctx: RequestContext) -> None:
    current_request_context.set(ctx)


def get_request_context() -> Optional[RequestContext]:
    """Get the current request context. Returns None if not set."""
    return current_request_context.get()


def clear_request_context() -> None:
    current_request_context.set(None)
