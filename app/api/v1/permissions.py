"""Permission queries for the calling account."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends

from app.api.deps import get_current_user, get_evaluator, respond
from app.schemas.auth import CurrentUser
from app.schemas.common import ApiResponse
from app.schemas.permissions import (
    PermissionCheckRequest,
    PermissionCheckResult,
    PermissionCodes,
)
from app.services.authorization import AuthorizationEvaluator

router = APIRouter()


@router.get("/my-permissions", response_model=ApiResponse[PermissionCodes])
def my_permissions(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    evaluator: Annotated[AuthorizationEvaluator, Depends(get_evaluator)],
) -> Any:
    """Flat capability codes granted to the caller's role."""
    return respond(evaluator.role_permission_codes(current_user.role))


@router.post("/check", response_model=ApiResponse[PermissionCheckResult])
def check_permission(
    body: PermissionCheckRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    evaluator: Annotated[AuthorizationEvaluator, Depends(get_evaluator)],
) -> ApiResponse[PermissionCheckResult]:
    allowed = evaluator.has_permission(current_user.role, body.permission)
    return ApiResponse.ok(
        PermissionCheckResult(permission=body.permission, has_permission=allowed),
        "Permission check completed",
    )
