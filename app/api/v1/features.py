"""Role and grant administration routes."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, status

from app.api.deps import get_evaluator, require_permission, respond
from app.core.roles import (
    FEATURES_READ_PERMISSIONS,
    FEATURES_READ_ROLES,
    FEATURES_UPDATE_ROLE_PERMISSIONS,
)
from app.schemas.auth import CurrentUser
from app.schemas.common import ApiResponse
from app.schemas.permissions import (
    CapabilityTree,
    CreateRoleRequest,
    RoleGrantsResult,
    RoleOut,
    RolesWithPermissionsList,
    RoleWithPermissions,
    UpdateRolePermissionsRequest,
    UpdateRoleRequest,
)
from app.services.authorization import AuthorizationEvaluator

router = APIRouter()

Evaluator = Annotated[AuthorizationEvaluator, Depends(get_evaluator)]
CanReadRoles = Annotated[CurrentUser, Depends(require_permission(FEATURES_READ_ROLES))]
CanUpdateRoles = Annotated[
    CurrentUser, Depends(require_permission(FEATURES_UPDATE_ROLE_PERMISSIONS))
]


@router.get("/roles", response_model=ApiResponse[RolesWithPermissionsList])
def roles_with_permissions(_user: CanReadRoles, evaluator: Evaluator) -> Any:
    return respond(evaluator.roles_with_permissions())


@router.get("/roles/{role_id}", response_model=ApiResponse[RoleWithPermissions])
def role_with_permissions(role_id: int, _user: CanReadRoles, evaluator: Evaluator) -> Any:
    return respond(evaluator.role_with_permissions(role_id))


@router.get("/permissions", response_model=ApiResponse[CapabilityTree])
def all_permissions(
    _user: Annotated[CurrentUser, Depends(require_permission(FEATURES_READ_PERMISSIONS))],
    evaluator: Evaluator,
) -> Any:
    return respond(evaluator.all_permissions())


@router.put("/roles/{role_id}/permissions", response_model=ApiResponse[RoleGrantsResult])
def update_role_permissions(
    role_id: int,
    body: UpdateRolePermissionsRequest,
    current_user: CanUpdateRoles,
    evaluator: Evaluator,
) -> Any:
    """Replace the role's grants with exactly body.capability_ids."""
    return respond(
        evaluator.update_role_permissions(role_id, body.capability_ids, current_user.id)
    )


@router.post("/roles", response_model=ApiResponse[RoleOut], status_code=status.HTTP_201_CREATED)
def create_role(body: CreateRoleRequest, current_user: CanUpdateRoles, evaluator: Evaluator) -> Any:
    return respond(evaluator.create_role(body, current_user.id))


@router.put("/roles/{role_id}", response_model=ApiResponse[RoleOut])
def update_role(
    role_id: int, body: UpdateRoleRequest, current_user: CanUpdateRoles, evaluator: Evaluator
) -> Any:
    return respond(evaluator.update_role(role_id, body, current_user.id))


@router.delete("/roles/{role_id}", response_model=ApiResponse[str])
def delete_role(role_id: int, _user: CanUpdateRoles, evaluator: Evaluator) -> Any:
    return respond(evaluator.delete_role(role_id))
