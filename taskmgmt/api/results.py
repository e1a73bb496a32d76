"""Response envelope shared by every endpoint."""

from __future__ import annotations

from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ApiResult(BaseModel, Generic[T]):
    """``success`` plus either ``data`` or a message with detail strings."""

    success: bool
    message: Optional[str] = None
    data: Optional[T] = None
    errors: List[str] = Field(default_factory=list)

    @classmethod
    def ok(cls, data: Optional[T] = None, message: Optional[str] = None) -> "ApiResult[T]":
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(cls, message: str, errors: Optional[List[str]] = None) -> "ApiResult[T]":
        return cls(success=False, message=message, errors=list(errors or []))
