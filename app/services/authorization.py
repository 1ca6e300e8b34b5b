"""Authorization evaluator: grant checks, permission/module trees and role administration.

Two views of a role's capabilities exist. The grant set (flat capability ids) is what
has_permission enforces. The display tree renders the visible granted capabilities as a
nested forest annotated with has_permission, for presentation only.
"""

import logging

from app.core.roles import RoleTier, is_top_tier
from app.models import Account, Capability, Module, Role, RoleCapability
from app.models.base import utcnow
from app.repositories import UnitOfWork
from app.schemas.common import ApiResponse, ErrorCode
from app.schemas.permissions import (
    CapabilityNode,
    CapabilityTree,
    CreateRoleRequest,
    ModulesList,
    ModulesWithCapabilitiesList,
    PermissionCodes,
    RoleGrantsResult,
    RoleOut,
    RolesWithPermissionsList,
    RoleWithPermissions,
    UpdateRoleRequest,
)
from app.services.boundary import service_boundary
from app.services.permission_tree import (
    build_module_capability_tree,
    build_module_tree,
    build_permission_tree,
)

logger = logging.getLogger(__name__)

NO_MODULES_FOR_ROLE = "No modules found for the specified user role."
NO_CAPABILITIES_FOR_ROLE = "No module accesses found for the specified user role."


def _role_out(role: Role) -> RoleOut:
    return RoleOut(
        id=role.id,
        name=role.name,
        ref_code=role.ref_code,
        description=role.description or "",
        is_visible=bool(role.is_visible),
        created_at=role.created_at,
    )


class AuthorizationEvaluator:
    """Reads role grants and the capability catalog; owns grant and role mutations."""

    def __init__(self, uow: UnitOfWork) -> None:
        self.uow = uow

    def granted_capability_ids(self, role_id: int) -> list[int]:
        """The role's grant set. Duplicate grants collapse to one id."""
        grants = self.uow.role_capabilities.find(RoleCapability.role_id == role_id)
        return sorted({g.capability_id for g in grants})

    def permission_tree_for_role(self, role_id: int) -> list[CapabilityNode]:
        """Display tree of the visible capabilities granted to a role."""
        granted_ids = self.granted_capability_ids(role_id)
        capabilities = (
            self.uow.capabilities.find(
                Capability.is_visible.is_(True), Capability.id.in_(granted_ids)
            )
            if granted_ids
            else []
        )
        modules = self.uow.modules.get_all()
        return build_permission_tree(capabilities, modules, granted_ids)

    def has_permission(self, role_code: str, capability_code: str) -> bool:
        """
        Whether the role holds the capability. Fails closed: unknown role, unknown
        capability or any lookup error yields False.
        """
        try:
            role = self.uow.roles.find_first(Role.ref_code == role_code)
            if role is None:
                return False
            granted_ids = self.granted_capability_ids(role.id)
            if not granted_ids:
                return False
            return self.uow.capabilities.exists(
                Capability.id.in_(granted_ids), Capability.ref_code == capability_code
            )
        except Exception:
            logger.exception(
                "Permission check failed for role=%s capability=%s", role_code, capability_code
            )
            return False

    @service_boundary("Error retrieving permissions")
    def role_permission_codes(self, role_code: str) -> ApiResponse[PermissionCodes]:
        """Flat reference codes of the role's grants."""
        role = self.uow.roles.find_first(Role.ref_code == role_code)
        if role is None:
            return ApiResponse.fail("Role not found", ErrorCode.NOT_FOUND)
        granted_ids = self.granted_capability_ids(role.id)
        capabilities = (
            self.uow.capabilities.find(Capability.id.in_(granted_ids)) if granted_ids else []
        )
        return ApiResponse.ok(
            PermissionCodes(permissions=[c.ref_code for c in capabilities]),
            "Permissions retrieved successfully",
        )

    @service_boundary("Error retrieving role with permissions")
    def role_with_permissions(self, role_id: int) -> ApiResponse[RoleWithPermissions]:
        role = self.uow.roles.get_by_id(role_id)
        if role is None:
            return ApiResponse.fail("Role not found", ErrorCode.NOT_FOUND)
        tree = self.permission_tree_for_role(role.id)
        return ApiResponse.ok(
            RoleWithPermissions(**_role_out(role).model_dump(), capabilities=tree),
            "Role retrieved successfully",
        )

    @service_boundary("Error retrieving roles with permissions")
    def roles_with_permissions(self) -> ApiResponse[RolesWithPermissionsList]:
        roles = self.uow.roles.find(Role.is_visible.is_(True))
        items = [
            RoleWithPermissions(
                **_role_out(role).model_dump(),
                capabilities=self.permission_tree_for_role(role.id),
            )
            for role in roles
        ]
        return ApiResponse.ok(RolesWithPermissionsList(roles=items), "Roles retrieved successfully")

    @service_boundary("Error retrieving permissions")
    def all_permissions(self) -> ApiResponse[CapabilityTree]:
        """Every visible capability as a tree, with no grant annotation."""
        capabilities = self.uow.capabilities.find(Capability.is_visible.is_(True))
        modules = self.uow.modules.get_all()
        return ApiResponse.ok(
            CapabilityTree(capabilities=build_permission_tree(capabilities, modules)),
            "Permissions retrieved successfully",
        )

    @service_boundary("An error occurred while retrieving all modules with permissions")
    def modules_with_capabilities(self) -> ApiResponse[ModulesWithCapabilitiesList]:
        """Navigation listing: what capabilities exist under each module."""
        modules = self.uow.modules.get_all()
        capabilities = self.uow.capabilities.find(Capability.is_visible.is_(True))
        return ApiResponse.ok(
            ModulesWithCapabilitiesList(
                modules=build_module_capability_tree(modules, capabilities)
            ),
            "All modules with permissions retrieved successfully.",
        )

    @service_boundary("An error occurred while retrieving allowed modules")
    def accessible_modules(self, role_code: str) -> ApiResponse[ModulesList]:
        """
        Module forest a role can reach through its grants, ordered by sort_order.

        Each stage is a precondition: unknown role, a role with no grants, grants that
        resolve to no capabilities, and capabilities whose modules are all hidden are
        distinct failures.
        """
        role = self.uow.roles.find_first(Role.ref_code == role_code)
        if role is None:
            return ApiResponse.fail(
                f"User role with ref code '{role_code}' does not exist.", ErrorCode.NOT_FOUND
            )

        granted_ids = self.granted_capability_ids(role.id)
        if not granted_ids:
            return ApiResponse.fail(NO_MODULES_FOR_ROLE, ErrorCode.NOT_FOUND)

        capabilities = self.uow.capabilities.find(Capability.id.in_(granted_ids))
        if not capabilities:
            return ApiResponse.fail(NO_CAPABILITIES_FOR_ROLE, ErrorCode.NOT_FOUND)

        module_ids = sorted({c.module_id for c in capabilities})
        modules = self.uow.modules.find(Module.id.in_(module_ids), Module.is_visible.is_(True))
        if not modules:
            return ApiResponse.fail(NO_MODULES_FOR_ROLE, ErrorCode.NOT_FOUND)

        return ApiResponse.ok(
            ModulesList(modules=build_module_tree(modules)),
            "Allowed modules retrieved successfully.",
        )

    @service_boundary("Error updating role permissions")
    def update_role_permissions(
        self, role_id: int, capability_ids: list[int], updated_by: int
    ) -> ApiResponse[RoleGrantsResult]:
        """
        Replace the role's grants with exactly capability_ids (delete all, insert all).

        Callers submit the complete desired set. The top tier is rejected before any change.
        """
        role = self.uow.roles.get_by_id(role_id)
        if role is None:
            return ApiResponse.fail("Role not found", ErrorCode.NOT_FOUND)
        if is_top_tier(role.ref_code):
            return ApiResponse.fail(
                f"Cannot modify permissions for {RoleTier.SYSADMIN.value} role",
                ErrorCode.POLICY_VIOLATION,
            )

        wanted = sorted(set(capability_ids))
        if wanted:
            known = self.uow.capabilities.find(Capability.id.in_(wanted))
            missing = sorted(set(wanted) - {c.id for c in known})
            if missing:
                return ApiResponse.fail(
                    f"Unknown capability ids: {missing}", ErrorCode.NOT_FOUND
                )
        else:
            known = []

        now = utcnow()
        with self.uow.transaction():
            current = self.uow.role_capabilities.find(RoleCapability.role_id == role_id)
            self.uow.role_capabilities.delete_many(current)
            self.uow.flush()
            self.uow.role_capabilities.add_many(
                RoleCapability(
                    role_id=role_id,
                    capability_id=capability_id,
                    created_at=now,
                    created_by=updated_by,
                )
                for capability_id in wanted
            )

        logger.info(
            "Replaced grants for role_id=%s by account_id=%s: %s capabilities",
            role_id,
            updated_by,
            len(wanted),
        )
        return ApiResponse.ok(
            RoleGrantsResult(
                role_id=role.id,
                role_name=role.name,
                capability_codes=[c.ref_code for c in known],
            ),
            "Role permissions updated successfully",
        )

    @service_boundary("Error creating role")
    def create_role(self, request: CreateRoleRequest, created_by: int) -> ApiResponse[RoleOut]:
        if self.uow.roles.exists(
            (Role.name == request.name) | (Role.ref_code == request.ref_code)
        ):
            return ApiResponse.fail(
                "Role name or reference code already exists.", ErrorCode.CONFLICT
            )

        role = Role(
            name=request.name,
            ref_code=request.ref_code,
            description=request.description,
            is_visible=True,
            created_by=created_by,
        )
        with self.uow.transaction():
            self.uow.roles.add(role)
        return ApiResponse.ok(_role_out(role), "Role created successfully")

    @service_boundary("Error updating role")
    def update_role(
        self, role_id: int, request: UpdateRoleRequest, updated_by: int
    ) -> ApiResponse[RoleOut]:
        """Rename/describe a role. The reference code never changes."""
        role = self.uow.roles.get_by_id(role_id)
        if role is None:
            return ApiResponse.fail("Role not found", ErrorCode.NOT_FOUND)
        if self.uow.roles.exists(Role.name == request.name, Role.id != role_id):
            return ApiResponse.fail("Role name already exists.", ErrorCode.CONFLICT)

        with self.uow.transaction():
            role.name = request.name
            role.description = request.description
            role.updated_by = updated_by
            self.uow.roles.update(role)
        return ApiResponse.ok(_role_out(role), "Role updated successfully")

    @service_boundary("Error deleting role")
    def delete_role(self, role_id: int) -> ApiResponse[str]:
        role = self.uow.roles.get_by_id(role_id)
        if role is None:
            return ApiResponse.fail("Role not found", ErrorCode.NOT_FOUND)
        if RoleTier.of(role.ref_code) is not None:
            return ApiResponse.fail(
                "Cannot delete SYSADMIN or USERADMIN role", ErrorCode.POLICY_VIOLATION
            )
        if self.uow.accounts.exists(Account.role_id == role_id):
            return ApiResponse.fail(
                "Role is still assigned to one or more users", ErrorCode.CONFLICT
            )

        with self.uow.transaction():
            grants = self.uow.role_capabilities.find(RoleCapability.role_id == role_id)
            self.uow.role_capabilities.delete_many(grants)
            self.uow.flush()
            self.uow.roles.delete(role)
        logger.info("Deleted role id=%s (%s)", role_id, role.ref_code)
        return ApiResponse.ok("Role deleted successfully", "Role deleted successfully")
