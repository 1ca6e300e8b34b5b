"""Uniform result envelope returned by every service operation."""

from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ErrorCode(str, Enum):
    """Failure taxonomy carried by failed results; the transport maps it to a status code."""

    NOT_FOUND = "not_found"
    INVALID_CREDENTIAL = "invalid_credential"
    ACCOUNT_INELIGIBLE = "account_ineligible"
    POLICY_VIOLATION = "policy_violation"
    CONFLICT = "conflict"
    ALREADY_INACTIVE = "already_inactive"
    UNEXPECTED = "unexpected"


class ApiResponse(BaseModel, Generic[T]):
    """{success, message, data} envelope; `error` is set only on failure."""

    success: bool = Field(..., description="Whether the operation succeeded")
    message: str = Field(default="", description="Human-readable outcome")
    data: T | None = Field(default=None, description="Payload on success")
    error: ErrorCode | None = Field(default=None, description="Failure category")

    @classmethod
    def ok(cls, data: Any = None, message: str = "") -> "ApiResponse[Any]":
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, message: str, error: ErrorCode) -> "ApiResponse[Any]":
        return cls(success=False, message=message, error=error)
