"""Request-scoped wiring: unit of work, services, bearer authentication and permission checks."""

import logging
from collections.abc import Callable
from typing import Annotated, Any

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.repositories import UnitOfWork
from app.schemas.auth import CurrentUser
from app.schemas.common import ApiResponse, ErrorCode
from app.services.accounts import AccountLifecycleManager
from app.services.authorization import AuthorizationEvaluator
from app.services.tokens import TokenService, verify_access_token

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

ERROR_STATUS: dict[ErrorCode, int] = {
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.INVALID_CREDENTIAL: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.ACCOUNT_INELIGIBLE: status.HTTP_403_FORBIDDEN,
    ErrorCode.POLICY_VIOLATION: status.HTTP_403_FORBIDDEN,
    ErrorCode.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCode.ALREADY_INACTIVE: status.HTTP_409_CONFLICT,
    ErrorCode.UNEXPECTED: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

BEARER_CHALLENGE = {"WWW-Authenticate": "Bearer"}


def respond(result: ApiResponse[Any]) -> ApiResponse[Any] | JSONResponse:
    """Pass successful results through; render failures with the status their category maps to."""
    if result.success:
        return result
    code = ERROR_STATUS.get(result.error, status.HTTP_500_INTERNAL_SERVER_ERROR)
    headers = BEARER_CHALLENGE if code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse(
        status_code=code, content=result.model_dump(mode="json"), headers=headers
    )


def get_uow(db: Annotated[Session, Depends(get_db)]) -> UnitOfWork:
    return UnitOfWork(db)


def get_token_service(
    uow: Annotated[UnitOfWork, Depends(get_uow)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> TokenService:
    return TokenService(uow, settings)


def get_evaluator(uow: Annotated[UnitOfWork, Depends(get_uow)]) -> AuthorizationEvaluator:
    return AuthorizationEvaluator(uow)


def get_account_manager(
    uow: Annotated[UnitOfWork, Depends(get_uow)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> AccountLifecycleManager:
    return AccountLifecycleManager(uow, tokens, settings)


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> CurrentUser:
    """Dependency: require a valid Bearer access token. Identity comes from its claims only."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers=BEARER_CHALLENGE,
        )
    try:
        return verify_access_token(credentials.credentials, settings)
    except (jwt.PyJWTError, KeyError, TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers=BEARER_CHALLENGE,
        )


def require_permission(capability_code: str) -> Callable[..., CurrentUser]:
    """Dependency factory: the caller's role must hold capability_code, else 403."""

    def dependency(
        current_user: Annotated[CurrentUser, Depends(get_current_user)],
        evaluator: Annotated[AuthorizationEvaluator, Depends(get_evaluator)],
    ) -> CurrentUser:
        if not evaluator.has_permission(current_user.role, capability_code):
            logger.info(
                "Permission %s denied for account_id=%s role=%s",
                capability_code,
                current_user.id,
                current_user.role,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Missing permission: {capability_code}",
            )
        return current_user

    return dependency
