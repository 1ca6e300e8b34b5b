"""Schemas for roles, the capability forest and the module forest."""

from datetime import datetime

from pydantic import BaseModel, Field


class CapabilityNode(BaseModel):
    """One capability in a rendered tree. has_permission is only meaningful in role views."""

    id: int
    module_id: int
    module_name: str = ""
    name: str
    parent_id: int | None = None
    ref_code: str
    description: str = ""
    is_visible: bool = True
    has_permission: bool = False
    children: list["CapabilityNode"] = Field(default_factory=list)


class ModuleNode(BaseModel):
    """One module in the navigation forest."""

    id: int
    name: str
    ref_code: str
    parent_id: int | None = None
    is_visible: bool = True
    logo_name: str | None = None
    redirect_page: str | None = None
    sort_order: int = 0
    description: str | None = None
    children: list["ModuleNode"] = Field(default_factory=list)


class ModuleWithCapabilities(BaseModel):
    id: int
    name: str
    ref_code: str
    capabilities: list[CapabilityNode] = Field(default_factory=list)


class ModulesList(BaseModel):
    modules: list[ModuleNode]


class ModulesWithCapabilitiesList(BaseModel):
    modules: list[ModuleWithCapabilities]


class CapabilityTree(BaseModel):
    capabilities: list[CapabilityNode]


class RoleOut(BaseModel):
    id: int
    name: str
    ref_code: str
    description: str = ""
    is_visible: bool = True
    created_at: datetime | None = None


class RoleWithPermissions(RoleOut):
    capabilities: list[CapabilityNode] = Field(default_factory=list)


class RolesWithPermissionsList(BaseModel):
    roles: list[RoleWithPermissions]


class UpdateRolePermissionsRequest(BaseModel):
    """Complete desired grant set; anything not listed is removed."""

    capability_ids: list[int] = Field(default_factory=list)


class RoleGrantsResult(BaseModel):
    role_id: int
    role_name: str
    capability_codes: list[str]


class CreateRoleRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    ref_code: str = Field(..., min_length=1, max_length=50)
    description: str | None = Field(default=None, max_length=500)


class UpdateRoleRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)


class PermissionCodes(BaseModel):
    permissions: list[str]


class PermissionCheckRequest(BaseModel):
    permission: str = Field(..., min_length=1, max_length=50)


class PermissionCheckResult(BaseModel):
    permission: str
    has_permission: bool
