"""Well-known role tiers and capability reference codes used by policy checks."""

from enum import Enum


class RoleTier(str, Enum):
    """
    Role tiers with special rules. Any other role code is a free-form, extensible tier.

    SYSADMIN is the top tier: it cannot be registered, frozen, deleted, have its
    grants edited or its password reset by an admin. USERADMIN may only be created
    by a SYSADMIN and is the only tier removable through the admin-scoped delete.
    """

    SYSADMIN = "SYSADMIN"
    USERADMIN = "USERADMIN"

    @classmethod
    def of(cls, code: str | None) -> "RoleTier | None":
        """Resolve a role reference code to a well-known tier (case-insensitive)."""
        if not code:
            return None
        normalized = code.strip().upper()
        for tier in cls:
            if tier.value == normalized:
                return tier
        return None


def is_top_tier(code: str | None) -> bool:
    return RoleTier.of(code) is RoleTier.SYSADMIN


def is_user_admin(code: str | None) -> bool:
    return RoleTier.of(code) is RoleTier.USERADMIN


def is_at_least_user_admin(code: str | None) -> bool:
    """True for SYSADMIN and USERADMIN."""
    return RoleTier.of(code) is not None


# Capability reference codes required by the HTTP surface.
ADMIN_CREATE = "ADMIN_CREATE"
ADMIN_READ = "ADMIN_READ"
ADMIN_UPDATE = "ADMIN_UPDATE"
ADMIN_DELETE = "ADMIN_DELETE"
ADMIN_CHANGE_PASSWORD = "ADMIN_CHANGE_PASSWORD"

FEATURES_READ_ROLES = "FEATURES_READ_ROLES"
FEATURES_READ_PERMISSIONS = "FEATURES_READ_PERMISSIONS"
FEATURES_UPDATE_ROLE_PERMISSIONS = "FEATURES_UPDATE_ROLE_PERMISSIONS"

MODULE_READ = "MODULE_READ"

EMPLOYEE_READ = "EMPLOYEE_READ"
EMPLOYEE_CREATE = "EMPLOYEE_CREATE"
EMPLOYEE_UPDATE = "EMPLOYEE_UPDATE"
EMPLOYEE_DELETE = "EMPLOYEE_DELETE"

MANAGER_READ = "MANAGER_READ"
MANAGER_CREATE = "MANAGER_CREATE"
MANAGER_UPDATE = "MANAGER_UPDATE"
MANAGER_DELETE = "MANAGER_DELETE"
