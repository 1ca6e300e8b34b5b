"""Authentication routes: login, refresh-token rotation via cookie, logout, revocation and passwords."""

from datetime import datetime
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from app.api.deps import (
    get_account_manager,
    get_current_user,
    get_evaluator,
    get_token_service,
    require_permission,
    respond,
)
from app.core.config import Settings, get_settings
from app.core.roles import ADMIN_CHANGE_PASSWORD, ADMIN_UPDATE
from app.schemas.auth import (
    AccountOut,
    AdminChangePasswordRequest,
    ChangePasswordRequest,
    CurrentUser,
    LoginRequest,
    RevokeAllRequest,
    RevokeAllResult,
    RevokeTokenRequest,
    TokenResponse,
)
from app.schemas.common import ApiResponse, ErrorCode
from app.services.accounts import AccountLifecycleManager
from app.services.authorization import AuthorizationEvaluator
from app.services.tokens import TokenService

router = APIRouter()


def _set_refresh_cookie(
    response: Response, settings: Settings, token: str, expires_at: datetime
) -> None:
    response.set_cookie(
        key=settings.REFRESH_TOKEN_COOKIE_NAME,
        value=token,
        expires=expires_at,
        httponly=True,
        secure=settings.REFRESH_TOKEN_COOKIE_SECURE,
        samesite="strict",
    )


def _clear_refresh_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.REFRESH_TOKEN_COOKIE_NAME,
        httponly=True,
        secure=settings.REFRESH_TOKEN_COOKIE_SECURE,
        samesite="strict",
    )


@router.post("/login", response_model=ApiResponse[TokenResponse])
def login(
    body: LoginRequest,
    response: Response,
    accounts: Annotated[AccountLifecycleManager, Depends(get_account_manager)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> Any:
    """
    Authenticate with username and password.

    The access token is returned in the body; send it as `Authorization: Bearer <token>`.
    The refresh token is set as an HttpOnly cookie.
    """
    result = accounts.login(body.username, body.password)
    if not result.success:
        return respond(result)
    pair = result.data
    _set_refresh_cookie(response, settings, pair.refresh_token, pair.refresh_token_expires_at)
    return ApiResponse.ok(
        TokenResponse(
            access_token=pair.access_token,
            expires_at=pair.access_token_expires_at,
            account=pair.account,
        ),
        result.message,
    )


@router.get("/me", response_model=ApiResponse[AccountOut])
def me(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    accounts: Annotated[AccountLifecycleManager, Depends(get_account_manager)],
) -> Any:
    return respond(accounts.current_user(current_user.id))


@router.post("/refresh-token", response_model=ApiResponse[TokenResponse])
def refresh_token(
    request: Request,
    response: Response,
    tokens: Annotated[TokenService, Depends(get_token_service)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> Any:
    """Redeem the refresh-token cookie for a new pair; the old refresh token is revoked."""
    token_string = request.cookies.get(settings.REFRESH_TOKEN_COOKIE_NAME)
    if not token_string:
        return respond(
            ApiResponse.fail("Refresh token not found", ErrorCode.INVALID_CREDENTIAL)
        )
    result = tokens.refresh(token_string)
    if not result.success:
        failure = respond(result)
        _clear_refresh_cookie(failure, settings)
        return failure
    pair = result.data
    _set_refresh_cookie(response, settings, pair.refresh_token, pair.refresh_token_expires_at)
    return ApiResponse.ok(
        TokenResponse(access_token=pair.access_token, expires_at=pair.access_token_expires_at),
        result.message,
    )


@router.post("/logout", response_model=ApiResponse[str])
def logout(
    request: Request,
    response: Response,
    tokens: Annotated[TokenService, Depends(get_token_service)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> Any:
    """Revoke the refresh-token cookie if present and clear it. Always succeeds."""
    token_string = request.cookies.get(settings.REFRESH_TOKEN_COOKIE_NAME)
    if token_string:
        result = tokens.logout(token_string)
    else:
        result = ApiResponse.ok("Logged out successfully", "User logged out successfully")
    _clear_refresh_cookie(response, settings)
    return result


@router.post("/revoke-token", response_model=ApiResponse[str])
def revoke_token(
    body: RevokeTokenRequest,
    _user: Annotated[CurrentUser, Depends(get_current_user)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
) -> Any:
    return respond(tokens.revoke(body.refresh_token, body.reason))


@router.post("/revoke-all-tokens/{account_id}", response_model=ApiResponse[RevokeAllResult])
def revoke_all_tokens(
    account_id: int,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
    evaluator: Annotated[AuthorizationEvaluator, Depends(get_evaluator)],
    body: RevokeAllRequest | None = None,
) -> Any:
    """Sign an account out everywhere. Allowed for the account itself or holders of ADMIN_UPDATE."""
    if account_id != current_user.id and not evaluator.has_permission(
        current_user.role, ADMIN_UPDATE
    ):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Missing permission: {ADMIN_UPDATE}",
        )
    return respond(tokens.revoke_all(account_id, body.reason if body else None))


@router.post("/change-password", response_model=ApiResponse[str])
def change_password(
    body: ChangePasswordRequest,
    response: Response,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    accounts: Annotated[AccountLifecycleManager, Depends(get_account_manager)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> Any:
    """Change the caller's own password. All of the caller's refresh tokens are revoked."""
    result = accounts.change_password(
        current_user.id, body.current_password, body.new_password
    )
    if result.success:
        _clear_refresh_cookie(response, settings)
    return respond(result)


@router.post("/admin-change-password/{account_id}", response_model=ApiResponse[str])
def admin_change_password(
    account_id: int,
    body: AdminChangePasswordRequest,
    current_user: Annotated[CurrentUser, Depends(require_permission(ADMIN_CHANGE_PASSWORD))],
    accounts: Annotated[AccountLifecycleManager, Depends(get_account_manager)],
) -> Any:
    return respond(
        accounts.admin_change_password(account_id, body.new_password, current_user.id)
    )
