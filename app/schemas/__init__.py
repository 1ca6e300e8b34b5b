"""Pydantic request/response schemas."""

from app.schemas.auth import (
    AccountOut,
    CurrentUser,
    LoginRequest,
    LoginResult,
    RegisterRequest,
    TokenPair,
    TokenResponse,
)
from app.schemas.common import ApiResponse, ErrorCode
from app.schemas.health import HealthResponse
from app.schemas.permissions import (
    CapabilityNode,
    ModuleNode,
    ModuleWithCapabilities,
    RoleWithPermissions,
)

__all__ = [
    "AccountOut",
    "ApiResponse",
    "CapabilityNode",
    "CurrentUser",
    "ErrorCode",
    "HealthResponse",
    "LoginRequest",
    "LoginResult",
    "ModuleNode",
    "ModuleWithCapabilities",
    "RegisterRequest",
    "RoleWithPermissions",
    "TokenPair",
    "TokenResponse",
]
