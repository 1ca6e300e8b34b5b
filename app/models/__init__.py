"""SQLAlchemy ORM models."""

from app.models.account import Account, Role
from app.models.base import Base
from app.models.catalog import Capability, Module, RoleCapability
from app.models.refresh_token import RefreshToken

__all__ = [
    "Account",
    "Base",
    "Capability",
    "Module",
    "RefreshToken",
    "Role",
    "RoleCapability",
]
