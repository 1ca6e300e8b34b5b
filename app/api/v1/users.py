"""Account administration routes (permission-gated)."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_account_manager, require_permission, respond
from app.core.roles import ADMIN_CREATE, ADMIN_DELETE, ADMIN_READ, ADMIN_UPDATE
from app.schemas.auth import (
    AccountOut,
    AccountsList,
    CurrentUser,
    FreezeRequest,
    RegisterRequest,
    RegisterResult,
    UpdateAccountRequest,
)
from app.schemas.common import ApiResponse
from app.services.accounts import AccountLifecycleManager

router = APIRouter()

Accounts = Annotated[AccountLifecycleManager, Depends(get_account_manager)]


@router.get("", response_model=ApiResponse[AccountsList])
def list_users(
    _admin: Annotated[CurrentUser, Depends(require_permission(ADMIN_READ))],
    accounts: Accounts,
    role_codes: Annotated[list[str], Query(min_length=1)],
) -> Any:
    """List accounts holding any of the given role codes, e.g. ?role_codes=USERADMIN."""
    return respond(accounts.list_accounts(role_codes))


@router.get("/{account_id}", response_model=ApiResponse[AccountOut])
def get_user(
    account_id: int,
    _admin: Annotated[CurrentUser, Depends(require_permission(ADMIN_READ))],
    accounts: Accounts,
) -> Any:
    return respond(accounts.get_account(account_id))


@router.post("", response_model=ApiResponse[RegisterResult], status_code=status.HTTP_201_CREATED)
def create_user(
    body: RegisterRequest,
    current_user: Annotated[CurrentUser, Depends(require_permission(ADMIN_CREATE))],
    accounts: Accounts,
) -> Any:
    return respond(accounts.register(current_user.id, body))


@router.put("/{account_id}", response_model=ApiResponse[AccountOut])
def update_user(
    account_id: int,
    body: UpdateAccountRequest,
    current_user: Annotated[CurrentUser, Depends(require_permission(ADMIN_UPDATE))],
    accounts: Accounts,
) -> Any:
    return respond(accounts.update_profile(account_id, body, current_user.id))


@router.patch("/{account_id}/freeze", response_model=ApiResponse[AccountOut])
def freeze_user(
    account_id: int,
    body: FreezeRequest,
    current_user: Annotated[CurrentUser, Depends(require_permission(ADMIN_UPDATE))],
    accounts: Accounts,
) -> Any:
    """Freeze (revoking every refresh token) or unfreeze an account."""
    return respond(accounts.set_frozen(account_id, body.is_frozen, current_user.id))


@router.delete("/{account_id}", response_model=ApiResponse[str])
def delete_user(
    account_id: int,
    _admin: Annotated[CurrentUser, Depends(require_permission(ADMIN_DELETE))],
    accounts: Accounts,
) -> Any:
    """Delete a USERADMIN account."""
    return respond(accounts.delete_user_admin(account_id))
