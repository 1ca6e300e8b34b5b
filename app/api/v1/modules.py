"""Navigation: modules reachable by the caller's role and the module/capability catalog."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends

from app.api.deps import get_current_user, get_evaluator, require_permission, respond
from app.core.roles import MODULE_READ
from app.schemas.auth import CurrentUser
from app.schemas.common import ApiResponse
from app.schemas.permissions import ModulesList, ModulesWithCapabilitiesList
from app.services.authorization import AuthorizationEvaluator

router = APIRouter()


@router.get("", response_model=ApiResponse[ModulesList])
def accessible_modules(
    current_user: Annotated[CurrentUser, Depends(require_permission(MODULE_READ))],
    evaluator: Annotated[AuthorizationEvaluator, Depends(get_evaluator)],
) -> Any:
    return respond(evaluator.accessible_modules(current_user.role))


@router.get("/with-permissions", response_model=ApiResponse[ModulesWithCapabilitiesList])
def modules_with_permissions(
    _user: Annotated[CurrentUser, Depends(get_current_user)],
    evaluator: Annotated[AuthorizationEvaluator, Depends(get_evaluator)],
) -> Any:
    return respond(evaluator.modules_with_capabilities())
